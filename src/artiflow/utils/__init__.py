"""Small shared helpers."""

from .hashing import content_hash, rolling_hash32, to_base36
from .ids import generate_id

__all__ = ["content_hash", "generate_id", "rolling_hash32", "to_base36"]
