"""Text normalization for vectorization input."""

import re

FENCED_CODE_RE = re.compile(r"```.*?```", re.DOTALL)
INLINE_CODE_RE = re.compile(r"`[^`]+`")
URL_RE = re.compile(r"https?://\S+")
IMAGE_RE = re.compile(r"!\[[^\]]*\]\([^)]+\)")
LINK_RE = re.compile(r"\[([^\]]+)\]\([^)]+\)")
WIKI_LINK_RE = re.compile(r"\[\[([^\]]+)\]\]")
PUNCTUATION_RE = re.compile(r"[^\w\s]")
WHITESPACE_RE = re.compile(r"\s+")


def strip_code_and_urls(text: str) -> str:
    """Remove fenced code, inline code and bare URLs."""
    text = FENCED_CODE_RE.sub("", text)
    text = INLINE_CODE_RE.sub("", text)
    return URL_RE.sub("", text)


def normalize_for_vectorization(content: str) -> str:
    """Reduce markdown to plain words separated by single spaces.

    Case is preserved; the vectorizer lowercases.
    """
    text = strip_code_and_urls(content)
    text = IMAGE_RE.sub("", text)
    text = LINK_RE.sub(r"\1", text)
    text = WIKI_LINK_RE.sub(r"\1", text)
    text = PUNCTUATION_RE.sub(" ", text)
    return WHITESPACE_RE.sub(" ", text).strip()
