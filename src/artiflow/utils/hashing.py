"""Cheap, deterministic content hashing used for block deduplication."""

from __future__ import annotations

_BASE36_DIGITS = "0123456789abcdefghijklmnopqrstuvwxyz"
_UINT32_MASK = 0xFFFFFFFF


def rolling_hash32(text: str) -> int:
    """Return the signed 32-bit ``h * 31 + unit`` hash of ``text``.

    The hash walks UTF-16 code units so values match those produced by
    JavaScript's ``charCodeAt`` loop. It is a dedup heuristic only: collisions
    are possible and accepted.
    """
    value = 0
    data = text.encode("utf-16-le", "surrogatepass")
    for index in range(0, len(data), 2):
        unit = data[index] | (data[index + 1] << 8)
        value = ((value << 5) - value + unit) & _UINT32_MASK
    if value >= 0x80000000:
        value -= 0x100000000
    return value


def to_base36(value: int) -> str:
    """Render ``value`` in base 36, keeping a leading minus sign."""
    if value == 0:
        return "0"
    sign = "-" if value < 0 else ""
    remaining = abs(value)
    digits: list[str] = []
    while remaining:
        remaining, digit = divmod(remaining, 36)
        digits.append(_BASE36_DIGITS[digit])
    return sign + "".join(reversed(digits))


def content_hash(text: str) -> str:
    """Return the base-36 rolling hash of ``text`` used as a dedup key."""
    return to_base36(rolling_hash32(text))


__all__ = ["content_hash", "rolling_hash32", "to_base36"]
