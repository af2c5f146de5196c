from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.orm import Session

from ticket_router.config import settings
from ticket_router.database import get_db
from ticket_router.logging_config import get_logger, setup_logging
from ticket_router.models import Message, Ticket
from ticket_router.routers import provider_events, tickets_ws
from ticket_router.services.session_context import registry

setup_logging(settings.log_level)

app = FastAPI(
    title="Ticket Router",
    description="Turns chat-provider session events into tickets and messages",
    version="0.1.0",
)

cors_origins = [origin.strip() for origin in settings.cors_allow_origins.split(",") if origin.strip()]
if not cors_origins:
    cors_origins = ["*"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(provider_events.router)
app.include_router(tickets_ws.router)

logger = get_logger("main")


@app.on_event("shutdown")
async def close_sessions() -> None:
    await registry.close_all()
    logger.info("Provider session contexts closed")


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.get("/db-check")
def db_check(db: Session = Depends(get_db)):
    return {
        "status": "ok",
        "tickets": db.query(Ticket).count(),
        "messages": db.query(Message).count(),
    }
