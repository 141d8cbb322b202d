"""Word counting and statement truncation."""


def count_words(text: str) -> int:
    """Whitespace-delimited word count, ignoring empty tokens."""
    return len(text.split())


def exceeds_word_limit(text: str, limit: int | None) -> bool:
    if not limit or limit <= 0:
        return False
    return count_words(text) > limit


def enforce_word_limit(text: str, limit: int | None) -> str:
    """Truncate text to the first ``limit`` words plus "...".

    Text already within the limit is returned as the same object. A limit
    of None or <= 0 disables truncation.
    """
    if not exceeds_word_limit(text, limit):
        return text
    return " ".join(text.split()[:limit]) + "..."
