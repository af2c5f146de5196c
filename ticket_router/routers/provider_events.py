from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status
from sqlalchemy.orm import Session

from ticket_router.config import settings
from ticket_router.database import get_db
from ticket_router.logging_config import get_logger
from ticket_router.models import Whatsapp
from ticket_router.schemas.provider import DeviceStatus, EventAccepted, ProviderEventEnvelope
from ticket_router.services.message_listener import EVENT_HANDLERS, dispatch_event
from ticket_router.services.provider_session import ProviderError
from ticket_router.services.session_context import SessionContext, SessionRegistry, registry

logger = get_logger("provider_events")

router = APIRouter()


def get_registry() -> SessionRegistry:
    return registry


def get_session_context(
    whatsapp_id: int,
    db: Session = Depends(get_db),
    sessions: SessionRegistry = Depends(get_registry),
) -> SessionContext:
    ctx = sessions.get(whatsapp_id)
    if ctx is not None:
        return ctx
    whatsapp = db.query(Whatsapp).filter(Whatsapp.id == whatsapp_id).first()
    if not whatsapp:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Unknown provider session")
    return sessions.open(whatsapp.id, whatsapp.name)


@router.post(
    "/sessions/{whatsapp_id}/events",
    response_model=EventAccepted,
    status_code=status.HTTP_202_ACCEPTED,
)
async def receive_provider_event(
    envelope: ProviderEventEnvelope,
    ctx: SessionContext = Depends(get_session_context),
):
    """Accept one provider event; handling runs in the background."""
    if envelope.event not in EVENT_HANDLERS:
        logger.debug("Ignoring provider event", extra={"context": {"event": envelope.event}})
        return EventAccepted(success=True, message="Event ignored")

    ctx.spawn(dispatch_event(envelope, ctx))
    return EventAccepted(success=True, message="Event accepted")


@router.get("/sessions/{whatsapp_id}/device", response_model=DeviceStatus)
async def device_status(
    request: Request,
    ctx: SessionContext = Depends(get_session_context),
    x_device_token: Optional[str] = Header(default=None),
):
    token = x_device_token or request.query_params.get("token")
    if settings.device_token and token != settings.device_token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Wrong token")

    try:
        state = await ctx.provider.get_state()
    except ProviderError as e:
        logger.warning("Device state unavailable", extra={"context": {"whatsapp_id": ctx.whatsapp_id, "error": str(e)}})
        state = "disconnected"

    return DeviceStatus(
        success=True,
        status=state,
        battery=ctx.device.battery,
        plugged=ctx.device.plugged,
    )
