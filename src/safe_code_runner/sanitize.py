from __future__ import annotations

import re

_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f-\x9f]")
MAX_LOG_TEXT = 200


def sanitize_for_log(value: object, limit: int = MAX_LOG_TEXT) -> str:
    """Flatten untrusted text (compiler/process errors) into a safe log field.

    Example:
        ```python
        sanitize_for_log("line1\\nline2")  # "line1 line2"
        ```
    """
    text = str(value).replace("\r", " ").replace("\n", " ")
    text = _CONTROL_CHARS.sub("", text)
    return text[:limit]
