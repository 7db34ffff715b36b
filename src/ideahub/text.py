from __future__ import annotations

import re
import unicodedata

_TAG_RE = re.compile(r"<[^>]*>")
_SCRIPT_BLOCK_RE = re.compile(r"<\s*(script|style)[^>]*>.*?<\s*/\s*\1\s*>", re.IGNORECASE | re.DOTALL)
_SCRIPT_URI_RE = re.compile(r"\b(?:javascript|vbscript|data)\s*:", re.IGNORECASE)
_EVENT_ATTR_RE = re.compile(r"\bon[a-z]+\s*=", re.IGNORECASE)
_MENTION_RE = re.compile(r"@(everyone|here)", re.IGNORECASE)
_SPACES_RE = re.compile(r"[ \t]+")
_BLANK_LINES_RE = re.compile(r"\n{3,}")
_HASHTAG_RE = re.compile(r"#(\w+)", re.UNICODE)


def sanitize(text: str) -> str:
    """Strip markup and script-like constructs and normalise whitespace.

    Newlines are kept (ideas are often multi-line) but collapsed to at most one
    blank line. Mass mentions are defused with a zero-width space so a
    published idea can never ping the whole channel.
    """
    s = unicodedata.normalize("NFC", text or "")
    s = _SCRIPT_BLOCK_RE.sub("", s)
    s = _TAG_RE.sub("", s)
    s = _SCRIPT_URI_RE.sub("", s)
    s = _EVENT_ATTR_RE.sub("", s)
    s = s.replace("\r\n", "\n").replace("\r", "\n")
    s = "".join(ch for ch in s if ch in "\n\t" or unicodedata.category(ch) != "Cc")
    s = _MENTION_RE.sub("@\u200b\\1", s)
    s = "\n".join(_SPACES_RE.sub(" ", line).strip() for line in s.split("\n"))
    s = _BLANK_LINES_RE.sub("\n\n", s)
    return s.strip()


def extract_hashtags(text: str) -> list[str]:
    """Hashtags in order of first appearance, de-duplicated case-insensitively."""
    seen: set[str] = set()
    tags: list[str] = []
    for match in _HASHTAG_RE.finditer(text or ""):
        word = match.group(1)
        # "#8" style references are idea numbers, not tags
        if word.isdigit():
            continue
        key = word.lower()
        if key in seen:
            continue
        seen.add(key)
        tags.append(f"#{word}")
    return tags


def truncate(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return text[: max(0, limit - 1)] + "…"
