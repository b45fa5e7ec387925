"""
Input validation helpers.
"""

import re

from shared.config.constants import Limits


def escape_like_pattern(value: str) -> str:
    """
    Escape special characters in LIKE patterns.

    SQL LIKE uses % and _ as wildcards. Menu item names such as
    "50% Lager" must match literally, so both are escaped (use with
    `escape="\\\\"`).
    """
    if not value:
        return value

    # Escape the escape character first, then the wildcards
    value = value.replace("\\", "\\\\")
    value = value.replace("%", "\\%")
    value = value.replace("_", "\\_")
    return value


def sanitize_text(text: str | None, max_length: int = Limits.MAX_NOTES_LENGTH) -> str | None:
    """
    Trim free text (kitchen notes, addresses) and strip control characters.
    """
    if text is None:
        return None

    text = text.strip()[:max_length]
    text = re.sub(r"[\x00-\x1f\x7f-\x9f]", "", text)
    return text or None
