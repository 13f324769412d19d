"""
Noteworthy Backend - Title Synthesizer
========================================

What:  Derives a display title from free-form note content.
Who:   NoteService.create() when the caller supplies no title.
When:  Creation only; edits never re-run it.

Algorithm (first rule that applies wins):
    1. Blank content                          → "Untitled Note"
    2. Scan left to right, toggling quote depth on '"'. Outside quotes,
       '.', '!', '?' and a line break are candidate boundaries.
    3. Boundary inside the first 50 characters → text up to and including
       the terminator (a line break itself is not kept)
    4. Content of at most 50 characters       → the whole content
    5. Otherwise cut at the last whitespace at or before character 50 and
       append "..."; a single long token is hard-cut at 50.

Examples:
    "Wow! This is amazing"                    → "Wow!"
    "My Note Title\\nBody text"               → "My Note Title"
    'She said "Stop. Now." and left ...'      → quoted periods are skipped

The function is pure and never raises; every result is trimmed, non-empty
and at most TITLE_MAX_CHARS + len(ELLIPSIS) characters long.
"""

FALLBACK_TITLE = "Untitled Note"
TITLE_MAX_CHARS = 50
ELLIPSIS = "..."

SENTENCE_TERMINATORS = frozenset(".!?")
LINE_BREAKS = frozenset("\n\r")
QUOTE = '"'


def synthesize_title(content: str) -> str:
    text = (content or "").strip()
    if not text:
        return FALLBACK_TITLE

    boundary = _first_boundary(text)
    if boundary is not None:
        return boundary

    if len(text) <= TITLE_MAX_CHARS:
        return text

    return _truncate_at_word(text)


def _first_boundary(text: str):
    """Return the title ending at the first unquoted boundary, or None."""
    in_quote = False
    for index, char in enumerate(text[:TITLE_MAX_CHARS]):
        if char == QUOTE:
            in_quote = not in_quote
            continue
        if in_quote:
            continue
        if char in SENTENCE_TERMINATORS:
            return text[: index + 1].strip()
        if char in LINE_BREAKS:
            candidate = text[:index].strip()
            if candidate:
                return candidate
    return None


def _truncate_at_word(text: str) -> str:
    # A cut at index k keeps text[:k]; k == TITLE_MAX_CHARS is allowed when
    # the character right after the window is whitespace.
    window = text[: TITLE_MAX_CHARS + 1]
    for cut in range(len(window) - 1, 0, -1):
        if window[cut].isspace():
            head = text[:cut].rstrip()
            if head:
                return head + ELLIPSIS
            break
    return text[:TITLE_MAX_CHARS].rstrip() + ELLIPSIS


def count_words(content: str) -> int:
    """Number of whitespace-delimited tokens in the trimmed content."""
    return len((content or "").split())
