"""Free-text sanitization applied before storing user input server-side."""

import re

from accountform.core.config import SANITIZE_MAX_LENGTH

_ANGLE_BRACKETS = re.compile(r"[<>]")
_JS_SCHEME = re.compile(r"javascript:", re.IGNORECASE)
_EVENT_HANDLER = re.compile(r"on\w+=", re.IGNORECASE)


def sanitize_input(value: str, max_length: int = SANITIZE_MAX_LENGTH) -> str:
    """Strip markup-like fragments and truncate.

    Example:
        >>> sanitize_input('  <b onclick=x>ACME</b> ')
        'b xACME/b'
    """
    cleaned = value.strip()
    cleaned = _ANGLE_BRACKETS.sub("", cleaned)
    cleaned = _JS_SCHEME.sub("", cleaned)
    cleaned = _EVENT_HANDLER.sub("", cleaned)
    return cleaned[:max_length]
