"""Identifier helpers shared by queues, batches and snapshots."""

from __future__ import annotations

import secrets
import time

_SUFFIX_ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyz"


def generate_id(prefix: str, *, suffix_length: int = 9) -> str:
    """Return ``<prefix>_<ms timestamp>_<random base-36 suffix>``."""
    stamp = int(time.time() * 1000)
    suffix = "".join(secrets.choice(_SUFFIX_ALPHABET) for _ in range(suffix_length))
    return f"{prefix}_{stamp}_{suffix}"
