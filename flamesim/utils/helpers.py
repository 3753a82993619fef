"""Shared helpers."""

HASHTAG = "#炎上シミュレーター"
DISCLAIMER = "※炎上シミュレーターで生成"


def compose_post_text(text: str, add_hashtag: bool, add_disclaimer: bool) -> str:
    """Text exactly as the remote side posts it: hashtag appended inline, disclaimer after a blank line."""
    final = text
    if add_hashtag:
        final += f" {HASHTAG}"
    if add_disclaimer:
        final += f"\n\n{DISCLAIMER}"
    return final


def is_blank(value: str | None) -> bool:
    """True for None, empty or whitespace-only strings."""
    return not (value or "").strip()


def truncate(value: str, limit: int = 200) -> str:
    """Shorten long remote error bodies for logs and user messages."""
    return value if len(value) <= limit else value[:limit]
