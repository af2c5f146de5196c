from enum import IntEnum
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class MessageAck(IntEnum):
    ERROR = -1
    PENDING = 0
    SERVER = 1
    DEVICE = 2
    READ = 3
    PLAYED = 4


class MessageKey(BaseModel):
    id: str
    remote: Optional[str] = None
    fromMe: bool = False
    serialized: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("_serialized", "serialized"),
    )


class ProviderMessage(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: MessageKey
    body: str = ""
    type: str = "chat"  # chat, audio, ptt, video, image, document, vcard, sticker, ...
    from_: str = Field(alias="from")
    to: str
    fromMe: bool = False
    author: Optional[str] = None  # individual sender inside a group chat
    hasMedia: bool = False
    hasQuotedMsg: bool = False
    quotedMsgId: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("quotedMsgId", "quotedStanzaID"),
    )
    timestamp: Optional[int] = None
    ack: int = MessageAck.PENDING

    @property
    def message_id(self) -> str:
        return self.id.id

    @property
    def chat_id(self) -> str:
        """Jid of the conversation this message belongs to."""
        return self.to if self.fromMe else self.from_


class ContactId(BaseModel):
    user: str
    server: str = "c.us"
    serialized: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("_serialized", "serialized"),
    )

    @property
    def jid(self) -> str:
        return self.serialized or f"{self.user}@{self.server}"


class ProviderContact(BaseModel):
    id: ContactId
    name: Optional[str] = None
    pushname: Optional[str] = None
    isGroup: bool = False

    @property
    def display_name(self) -> str:
        return self.name or self.pushname or self.id.user


class ProviderChat(BaseModel):
    id: str
    isGroup: bool = False
    unreadCount: int = 0


class MediaPayload(BaseModel):
    data: str  # base64
    mimetype: str
    filename: Optional[str] = None


class AckEvent(BaseModel):
    message: ProviderMessage
    ack: int


class BatteryEvent(BaseModel):
    battery: int
    plugged: bool = False


class ProviderEventEnvelope(BaseModel):
    event: str  # message_create, media_uploaded, message_ack, change_battery
    data: dict[str, Any]


class EventAccepted(BaseModel):
    success: bool
    message: str


class DeviceStatus(BaseModel):
    success: bool
    status: str
    battery: Optional[int] = None
    plugged: Optional[bool] = None
