from ticket_router.schemas.provider import (
    AckEvent,
    BatteryEvent,
    MediaPayload,
    MessageAck,
    ProviderChat,
    ProviderContact,
    ProviderEventEnvelope,
    ProviderMessage,
)

__all__ = [
    "AckEvent",
    "BatteryEvent",
    "MediaPayload",
    "MessageAck",
    "ProviderChat",
    "ProviderContact",
    "ProviderEventEnvelope",
    "ProviderMessage",
]
