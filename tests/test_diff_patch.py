from __future__ import annotations

import textwrap

from artiflow.tools.diff_patch import (
    DEFAULT_HTML,
    apply_diff_patches,
    extract_diff_blocks,
    has_diff_blocks,
    is_default_html,
    iter_patch_blocks,
    normalize_html,
)


def _block(search: str, replace: str) -> str:
    return f"<<<<<<< SEARCH\n{search}\n=======\n{replace}\n>>>>>>> REPLACE\n"


def test_single_block_replaces_first_line() -> None:
    result = apply_diff_patches("foo\nbaz", _block("foo", "bar"))

    assert result.modified_content == "bar\nbaz"
    assert result.touched_line_ranges == [(1, 1)]
    assert result.has_changes is True


def test_empty_search_prepends_replacement() -> None:
    result = apply_diff_patches("existing", _block("", "line1\nline2"))

    assert result.modified_content == "line1\nline2\nexisting"
    assert result.touched_line_ranges == [(1, 2)]
    assert result.has_changes is True


def test_text_without_triplets_is_a_no_op() -> None:
    original = "alpha\nbeta\n"

    result = apply_diff_patches(original, "just some prose, no markers")

    assert result.modified_content == original
    assert result.has_changes is False
    assert result.touched_line_ranges == []


def test_blocks_apply_sequentially_against_mutated_content() -> None:
    patch = _block("one", "two") + _block("two", "three")

    result = apply_diff_patches("one\nend", patch)

    assert result.modified_content == "three\nend"
    assert result.touched_line_ranges == [(1, 1), (1, 1)]


def test_missing_search_text_is_skipped_without_error() -> None:
    patch = _block("absent", "x") + _block("beta", "gamma\ndelta")

    result = apply_diff_patches("alpha\nbeta\nomega", patch)

    assert result.modified_content == "alpha\ngamma\ndelta\nomega"
    assert result.touched_line_ranges == [(2, 3)]
    assert result.has_changes is True


def test_only_unmatched_blocks_reports_no_changes() -> None:
    result = apply_diff_patches("alpha", _block("nope", "yes"))

    assert result.has_changes is False
    assert result.modified_content == "alpha"


def test_malformed_trailing_block_keeps_earlier_results() -> None:
    patch = _block("alpha", "ALPHA") + "<<<<<<< SEARCH\nbeta\n=======\nBETA\n"

    result = apply_diff_patches("alpha\nbeta", patch)

    assert result.modified_content == "ALPHA\nbeta"
    assert result.touched_line_ranges == [(1, 1)]


def test_only_first_occurrence_is_replaced() -> None:
    result = apply_diff_patches("x\nx\nx", _block("x", "y"))

    assert result.modified_content == "y\nx\nx"


def test_marker_content_is_trimmed() -> None:
    blocks = list(iter_patch_blocks("<<<<<<< SEARCH\n\n   foo  \n\n=======\n  bar\n>>>>>>> REPLACE"))

    assert len(blocks) == 1
    assert blocks[0].search_text == "foo"
    assert blocks[0].replace_text == "bar"


def test_iter_patch_blocks_stops_at_missing_divider() -> None:
    text = _block("a", "b") + "<<<<<<< SEARCH\nc\n" + ">>>>>>> REPLACE\n"

    assert [block.search_text for block in iter_patch_blocks(text)] == ["a"]


def test_has_diff_blocks_requires_all_markers() -> None:
    assert has_diff_blocks(_block("a", "b")) is True
    assert has_diff_blocks("<<<<<<< SEARCH\na\n=======\nb\n") is False


def test_extract_diff_blocks_drops_surrounding_prose() -> None:
    text = "Intro line\n" + _block("a", "b") + "Outro line"

    extracted = extract_diff_blocks(text)

    assert "Intro line" not in extracted
    assert "Outro line" not in extracted
    assert extracted.startswith("<<<<<<< SEARCH")
    assert extracted.endswith(">>>>>>> REPLACE")


def test_default_html_detection_ignores_comments_and_whitespace() -> None:
    decorated = DEFAULT_HTML.replace("<body>", "<body>\n  <!-- placeholder -->\n\n")

    assert is_default_html(decorated) is True
    assert is_default_html(DEFAULT_HTML.replace("Generated Website", "Shop")) is False
    assert normalize_html("<p>\n  a   b\n</p>") == "<p> a b </p>"


def test_patch_against_html_document() -> None:
    original = textwrap.dedent(
        """
        <html>
          <body>
            <h1>Old</h1>
          </body>
        </html>
        """
    ).strip()

    result = apply_diff_patches(original, _block("<h1>Old</h1>", "<h1>New</h1>\n<p>Intro</p>"))

    assert "<h1>New</h1>\n<p>Intro</p>" in result.modified_content
    assert result.touched_line_ranges == [(3, 4)]
