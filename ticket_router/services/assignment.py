from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence

from ticket_router.services.event_filter import MESSAGE_MARKER
from ticket_router.services.queue_service import QueueOption


class AssignmentState(str, Enum):
    UNASSIGNED = "unassigned"
    ASSIGNED = "assigned"


class AssignmentAction(str, Enum):
    ASSIGN_ONLY_QUEUE = "assign_only_queue"
    ASSIGN_SELECTED = "assign_selected"
    PROMPT_MENU = "prompt_menu"


@dataclass
class AssignmentDecision:
    action: AssignmentAction
    queue: Optional[QueueOption] = None


def assignment_state(ticket) -> AssignmentState:
    return AssignmentState.ASSIGNED if ticket.queue_id else AssignmentState.UNASSIGNED


def needs_queue_assignment(ticket, *, is_group: bool, from_me: bool, queue_count: int) -> bool:
    """Whether an inbound event should run the queue selection flow."""
    return (
        assignment_state(ticket) == AssignmentState.UNASSIGNED
        and not is_group
        and not from_me
        and not ticket.user_id
        and queue_count >= 1
    )


def select_queue(body: str, queues: Sequence[QueueOption]) -> Optional[QueueOption]:
    """Queue picked by the first character of the body, 1-based; None if it picks nothing."""
    option = (body or "")[:1]
    if not (option.isascii() and option.isdigit()):
        return None
    index = int(option) - 1
    if index < 0 or index >= len(queues):
        return None
    return queues[index]


def decide_assignment(body: str, queues: Sequence[QueueOption]) -> AssignmentDecision:
    if len(queues) == 1:
        return AssignmentDecision(AssignmentAction.ASSIGN_ONLY_QUEUE, queues[0])

    chosen = select_queue(body, queues)
    if chosen:
        return AssignmentDecision(AssignmentAction.ASSIGN_SELECTED, chosen)
    return AssignmentDecision(AssignmentAction.PROMPT_MENU)


def build_menu_body(greeting_message: str, queues: Sequence[QueueOption]) -> str:
    options = "".join(f"*{index}* - {queue.name}\n" for index, queue in enumerate(queues, start=1))
    return f"{MESSAGE_MARKER}{greeting_message}\n{options}"


def build_confirmation_body(queue: QueueOption) -> str:
    return f"{MESSAGE_MARKER}{queue.greeting_message or queue.name}"
