"""Parsers that turn streaming model output into actions and blocks."""

from .classifier import BlockClassifier
from .stream import ParserCallbacks, ParserSession, StreamingTagParser

__all__ = ["BlockClassifier", "ParserCallbacks", "ParserSession", "StreamingTagParser"]
