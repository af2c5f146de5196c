from typing import Optional

from ticket_router.schemas.provider import ProviderMessage

# Prefixed to every message this service sends itself; their echoes are already stored.
MESSAGE_MARKER = "\u200e"

BROADCAST_JID = "status@broadcast"

SUPPORTED_MESSAGE_TYPES = frozenset({"chat", "audio", "ptt", "video", "image", "document", "vcard", "sticker"})

# Types an outgoing message may have while still carrying no media.
TEXTUAL_MESSAGE_TYPES = frozenset({"chat", "vcard"})


def is_already_recorded(msg: ProviderMessage) -> bool:
    return msg.fromMe and msg.body[:1] == MESSAGE_MARKER


def is_media_placeholder(msg: ProviderMessage) -> bool:
    """Outgoing media announced before its upload finished.

    The provider sends it again through media_uploaded once the media is
    attached; only that second event is stored.
    """
    return msg.fromMe and not msg.hasMedia and msg.type not in TEXTUAL_MESSAGE_TYPES


def skip_reason(msg: ProviderMessage) -> Optional[str]:
    """Why a provider message is not stored, or None when it should be."""
    if msg.from_ == BROADCAST_JID:
        return "broadcast"
    if msg.type not in SUPPORTED_MESSAGE_TYPES:
        return "unsupported_type"
    if is_already_recorded(msg):
        return "already_recorded"
    if is_media_placeholder(msg):
        return "media_placeholder"
    return None
