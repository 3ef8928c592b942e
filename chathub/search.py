"""
Substring search and ranking over conversation documents.

Matching is case-insensitive on the raw document (header included).
Scores combine match position and frequency:

    score = (position + frequency) / 2
    position  = 1 - first_match_index / len(content)
    frequency = min(occurrences, 10) / 10

Occurrences are counted over the whole raw document while the snippet
comes from the body, so a term repeated in the header raises the score
without appearing in the snippet.
"""

from typing import Optional, Union

from .frontmatter import parse
from .types import SearchResult

SNIPPET_CONTEXT_CHARS = 100
FREQUENCY_SATURATION = 10


def extract_snippet(content: str, idx: int, query_len: int, context_chars: int = SNIPPET_CONTEXT_CHARS) -> str:
    """Excerpt of content around a match, whitespace-normalized, with ellipses where clipped."""
    start = max(0, idx - context_chars)
    end = min(len(content), idx + query_len + context_chars)

    snippet = content[start:end].replace("\n", " ")
    snippet = " ".join(snippet.split())

    if start > 0:
        snippet = "..." + snippet
    if end < len(content):
        snippet = snippet + "..."
    return snippet


def _clamp(value: float) -> float:
    return min(1.0, max(0.0, value))


def position_score(first_idx: int, content_len: int) -> float:
    """Earlier matches score higher."""
    if content_len <= 0:
        return 1.0
    return _clamp(1.0 - first_idx / content_len)


def frequency_score(count: int) -> float:
    """More occurrences score higher, saturating at FREQUENCY_SATURATION."""
    return _clamp(min(count, FREQUENCY_SATURATION) / FREQUENCY_SATURATION)


def calculate_score(content: str, query: str, first_idx: int) -> float:
    """Relevance in [0, 1] for a lower-cased document and query."""
    count = content.count(query)
    return (position_score(first_idx, len(content)) + frequency_score(count)) / 2.0


def match_document(path: str, raw: Union[bytes, str], query: str) -> Optional[SearchResult]:
    """
    Match a lower-cased query against one document.

    Returns:
        SearchResult, or None when the query does not occur

    Raises:
        InvalidFrontmatterError: The document matched but its header is malformed
    """
    text = raw.decode("utf-8", errors="replace") if isinstance(raw, bytes) else raw
    content_lower = text.lower()
    idx = content_lower.find(query)
    if idx == -1:
        return None

    metadata, body = parse(text)
    title = metadata.title if metadata else ""

    # Snippet is anchored on the first match inside the body; a match that
    # only occurs in the header shows the start of the body.
    body_idx = body.lower().find(query)
    if body_idx == -1:
        body_idx = 0

    return SearchResult(
        path=path,
        title=title,
        snippet=extract_snippet(body, body_idx, len(query)),
        score=calculate_score(content_lower, query, idx),
    )
