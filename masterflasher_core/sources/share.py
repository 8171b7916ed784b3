"""Classification of text shared into the app."""

import re
from typing import Literal

from pydantic import BaseModel

_URL_RE = re.compile(r"^https?://\S+$", re.IGNORECASE)

ShareMode = Literal["text", "url"]


class IncomingShare(BaseModel):
    """Payload received from the platform share sheet."""

    mode: ShareMode
    content: str


def parse_incoming_share(
    value: str | None, mode: ShareMode | None = None
) -> IncomingShare | None:
    """Classify a shared string as a URL to clip or text to process.

    A mode reported by the native layer wins; otherwise a lone http(s) URL
    is treated as a URL and anything else as text.

    Args:
        value: Shared string
        mode: Mode detected by the native share receiver, if any

    Returns:
        The classified share, or None when nothing was shared
    """
    if value is None or not value.strip():
        return None
    content = value.strip()
    if mode is None:
        mode = "url" if _URL_RE.match(content) else "text"
    return IncomingShare(mode=mode, content=content)
