"""Search-term cleanup for the SOP full-text search"""
import re

MAX_QUERY_LENGTH = 500

_UNSAFE_CHARS = re.compile(r"[<>\"'%;()&+]")
_WHITESPACE = re.compile(r"\s+")


def sanitize_search_query(query: str) -> str:
    """
    Strip characters that have meaning to SQL LIKE or HTML, collapse whitespace,
    and cap the length. Thai text passes through untouched.
    """
    if not query:
        return ""
    cleaned = _UNSAFE_CHARS.sub("", query)
    cleaned = _WHITESPACE.sub(" ", cleaned).strip()
    return cleaned[:MAX_QUERY_LENGTH]


def search_terms(query: str) -> list:
    """Split a sanitized query into distinct lowercase terms"""
    seen = []
    for term in sanitize_search_query(query).lower().split(" "):
        if term and term not in seen:
            seen.append(term)
    return seen
