"""Free-text search over loaded sessions.

Ranking is plain term frequency: every case-insensitive occurrence of every
query term in a message adds one point, and a session whose title contains
any term gets a fixed bonus. Terms are matched literally, never as patterns.
"""

import re

from .core import SearchMatch, SearchResult, Session

CONTEXT_LENGTH = 80
FALLBACK_LENGTH = 200
TITLE_BONUS = 5
ELLIPSIS = "..."


class SearchEngine:
    """Ranks sessions against a whitespace-separated query."""

    def __init__(self, context: int = CONTEXT_LENGTH, title_bonus: int = TITLE_BONUS):
        self.context = context
        self.title_bonus = title_bonus

    def search(self, sessions: list[Session], query: str) -> list[SearchResult]:
        terms = parse_query(query)
        if not terms:
            return []

        patterns = [re.compile(re.escape(term), re.IGNORECASE) for term in terms]
        results = []

        for session in sessions:
            result = SearchResult(session=session)

            for index, message in enumerate(session.messages):
                spans = [
                    (m.start(), m.end())
                    for pattern in patterns
                    for m in pattern.finditer(message.content)
                ]
                if not spans:
                    continue

                result.matches.append(SearchMatch(
                    message_index=index,
                    highlights=self._highlights(message.content, spans),
                ))
                result.score += len(spans)

            if not result.matches:
                continue

            if session.title:
                title = session.title.lower()
                if any(term in title for term in terms):
                    result.score += self.title_bonus

            results.append(result)

        # list.sort is stable, so equal scores keep corpus order
        results.sort(key=lambda r: r.score, reverse=True)
        return results

    def _highlights(self, content: str, spans: list[tuple[int, int]]) -> list[str]:
        """One excerpt per occurrence, skipping occurrences already on screen."""
        highlights: list[str] = []
        windows: list[tuple[int, int]] = []

        for start, end in sorted(spans):
            if any(w_start <= start and end <= w_end for w_start, w_end in windows):
                continue
            windows.append((max(0, start - self.context), min(len(content), end + self.context)))

            highlight = make_highlight(content, start, end - start, self.context)
            if highlight and highlight not in highlights:
                highlights.append(highlight)

        if not highlights:
            highlights.append(content[:FALLBACK_LENGTH])
        return highlights


def parse_query(query: str) -> list[str]:
    """Lower-cased whitespace-separated terms; repeats are kept and count again."""
    return query.lower().split()


def make_highlight(text: str, start: int, length: int, context: int = CONTEXT_LENGTH) -> str:
    """Excerpt of ``text`` around ``text[start:start + length]``.

    The window spans up to ``context`` characters on either side. Where the
    window cuts through a word, the partial word is dropped (unless that would
    eat into the match) and an ellipsis marks each truncated side, so the
    result is never longer than ``2 * context + length + 6``.
    """
    win_start = max(0, start - context)
    win_end = min(len(text), start + length + context)

    snippet = text[win_start:win_end]
    match_start = start - win_start
    match_end = match_start + length
    prefix = suffix = ""

    if win_end < len(text):
        if not text[win_end].isspace():
            tail = snippet[match_end:]
            cut = max(tail.rfind(" "), tail.rfind("\n"), tail.rfind("\t"))
            if cut >= 0:
                snippet = snippet[:match_end + cut]
        suffix = ELLIPSIS

    if win_start > 0:
        if not text[win_start - 1].isspace():
            head = re.search(r"\s", snippet[:match_start])
            if head:
                snippet = snippet[head.end():]
        prefix = ELLIPSIS

    return prefix + snippet.strip() + suffix


def search_sessions(sessions: list[Session], query: str) -> list[SearchResult]:
    return SearchEngine().search(sessions, query)
