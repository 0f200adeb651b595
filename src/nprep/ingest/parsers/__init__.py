"""Document parsers keyed by file extension."""

from .markdown import MarkdownParser

PARSERS = {
    ".md": MarkdownParser,
}

__all__ = ["PARSERS", "MarkdownParser"]
