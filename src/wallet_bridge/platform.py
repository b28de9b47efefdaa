"""
Chat surface classification, used to pick between deep-link and QR presentation.
"""

from typing import Optional

from pydantic import BaseModel


class PlatformInfo(BaseModel):
    is_mobile: bool
    is_desktop: bool
    chat_type: Optional[str] = None


def detect_platform(chat_type: Optional[str]) -> PlatformInfo:
    # Private chats are assumed to come from the phone the wallet app lives on.
    is_mobile = chat_type == "private"
    return PlatformInfo(is_mobile=is_mobile, is_desktop=not is_mobile, chat_type=chat_type)
