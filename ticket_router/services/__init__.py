from ticket_router.services.ack_service import handle_message_ack, reconcile_ack
from ticket_router.services.contact_service import create_or_update_contact
from ticket_router.services.message_listener import (
    EVENT_HANDLERS,
    dispatch_event,
    handle_battery_change,
    handle_message,
)
from ticket_router.services.message_service import create_message, find_message, update_ack
from ticket_router.services.session_context import SessionContext, SessionRegistry
from ticket_router.services.ticket_service import find_or_create_ticket
