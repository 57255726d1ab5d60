"""Superficial, advisory checks for generated project files.

None of these checks parse the code; they catch the obvious breakage that
streamed output tends to produce (truncated JSON, unbalanced brackets,
missing default exports) and nothing more.
"""

from __future__ import annotations

import json
import posixpath
import re
from dataclasses import dataclass, field
from typing import Dict, List, Mapping

MAX_FILE_SIZE = 1024 * 1024

_SCRIPT_EXTENSIONS = (".js", ".jsx", ".ts", ".tsx")
_OPEN_TAG_RE = re.compile(r"<[^/>][^>]*(?<!/)>")
_CLOSE_TAG_RE = re.compile(r"</[^>]*>")
_RELATIVE_IMPORT_RE = re.compile(r"import.*from\s+['\"](\.\.?/[^'\"]*)['\"]")
_NAMED_IMPORT_RE = re.compile(r"import\s+\{([^}]+)\}\s+from[^\n;]*;?")
_STRIP_RE = re.compile(
    r"\"(?:\\.|[^\"\\\n])*\""
    r"|'(?:\\.|[^'\\\n])*'"
    r"|`(?:\\.|[^`\\])*`"
    r"|/\*[\s\S]*?\*/"
    r"|//[^\n]*"
)
_PAIRS = {")": "(", "]": "[", "}": "{"}


@dataclass(slots=True)
class ValidationResult:
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def to_dict(self) -> dict[str, object]:
        return {"is_valid": self.is_valid, "errors": list(self.errors), "warnings": list(self.warnings)}


def brackets_balanced(source: str) -> bool:
    """Return ``True`` when ``()[]{}`` nest correctly outside strings and comments."""
    stack: list[str] = []
    for char in _STRIP_RE.sub("", source):
        if char in "([{":
            stack.append(char)
        elif char in _PAIRS:
            if not stack or stack.pop() != _PAIRS[char]:
                return False
    return not stack


class FileValidator:
    """Validate file contents by extension; results never block a write."""

    def validate_file(self, path: str, content: str) -> ValidationResult:
        result = ValidationResult()

        if path.endswith((".ts", ".tsx")):
            result.errors.extend(self._validate_typescript(content))
        if path.endswith((".js", ".jsx")):
            result.errors.extend(self._validate_javascript(content))
        if path.endswith(".json"):
            result.errors.extend(self._validate_json(content))
        if posixpath.basename(path) == "package.json":
            result.warnings.extend(self._validate_dependencies(content))

        result.warnings.extend(self._validate_imports(content))

        if len(content) > MAX_FILE_SIZE:
            result.warnings.append(f"File {path} is very large ({round(len(content) / 1024)}KB)")
        return result

    def validate_files(self, files: Mapping[str, str]) -> Dict[str, ValidationResult]:
        return {path: self.validate_file(path, content) for path, content in files.items()}

    def _validate_typescript(self, content: str) -> List[str]:
        errors: List[str] = []
        if "App" in content and "export default" not in content:
            errors.append("App component should have a default export")
        if "React" in content and "import React" not in content:
            errors.append("Missing React import")
        if len(_OPEN_TAG_RE.findall(content)) != len(_CLOSE_TAG_RE.findall(content)):
            errors.append("Mismatched JSX tags")
        return errors

    def _validate_javascript(self, content: str) -> List[str]:
        errors: List[str] = []
        if "App" in content and "export default" not in content:
            errors.append("App component should have a default export")
        if not brackets_balanced(content):
            errors.append("Invalid JavaScript syntax")
        return errors

    def _validate_json(self, content: str) -> List[str]:
        try:
            json.loads(content)
        except json.JSONDecodeError as error:
            return [f"Invalid JSON: {error.msg}"]
        return []

    def _validate_dependencies(self, content: str) -> List[str]:
        try:
            package = json.loads(content)
        except json.JSONDecodeError:
            return ["Could not validate package.json"]
        if not isinstance(package, dict):
            return ["Could not validate package.json"]

        warnings: List[str] = []
        dependencies = package.get("dependencies")
        if not isinstance(dependencies, dict):
            dependencies = {}
        missing = [name for name in ("react", "react-dom") if not dependencies.get(name)]
        if missing:
            warnings.append(f"Missing required dependencies: {', '.join(missing)}")
        react = dependencies.get("react")
        if isinstance(react, str) and react and not react.startswith("^18"):
            warnings.append("Consider using React 18 for better performance")
        return warnings

    def _validate_imports(self, content: str) -> List[str]:
        warnings: List[str] = []
        for match in _RELATIVE_IMPORT_RE.finditer(content):
            import_path = match.group(1)
            if not import_path.endswith(_SCRIPT_EXTENSIONS):
                warnings.append(f"Consider adding file extension to import: {import_path}")

        for match in _NAMED_IMPORT_RE.finditer(content):
            remainder = content[: match.start()] + content[match.end() :]
            for raw_name in match.group(1).split(","):
                name = raw_name.strip()
                if not name:
                    continue
                local = name.split(" as ")[-1].strip()
                if not re.search(rf"\b{re.escape(local)}\b", remainder):
                    warnings.append(f"Potentially unused import: {name}")
        return warnings


__all__ = ["FileValidator", "MAX_FILE_SIZE", "ValidationResult", "brackets_balanced"]
