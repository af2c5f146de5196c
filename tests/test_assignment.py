from unittest.mock import Mock

from ticket_router.services.assignment import (
    AssignmentAction,
    AssignmentState,
    assignment_state,
    build_confirmation_body,
    build_menu_body,
    decide_assignment,
    needs_queue_assignment,
    select_queue,
)
from ticket_router.services.event_filter import MESSAGE_MARKER
from ticket_router.services.queue_service import QueueOption

QUEUES = [
    QueueOption(id=10, name="Sales", position=1, greeting_message="Sales here, how can we help?"),
    QueueOption(id=20, name="Support", position=2, greeting_message="Support here."),
    QueueOption(id=30, name="Billing", position=3, greeting_message=None),
]


class TestAssignmentState:
    def test_unassigned_without_queue(self):
        assert assignment_state(Mock(queue_id=None)) == AssignmentState.UNASSIGNED

    def test_assigned_with_queue(self):
        assert assignment_state(Mock(queue_id=10)) == AssignmentState.ASSIGNED


class TestNeedsQueueAssignment:
    def test_unassigned_inbound_direct_message(self):
        ticket = Mock(queue_id=None, user_id=None)
        assert needs_queue_assignment(ticket, is_group=False, from_me=False, queue_count=2) is True

    def test_group_chat_never_assigned(self):
        ticket = Mock(queue_id=None, user_id=None)
        assert needs_queue_assignment(ticket, is_group=True, from_me=False, queue_count=2) is False

    def test_outgoing_message_never_assigns(self):
        ticket = Mock(queue_id=None, user_id=None)
        assert needs_queue_assignment(ticket, is_group=False, from_me=True, queue_count=2) is False

    def test_ticket_with_operator_is_left_alone(self):
        ticket = Mock(queue_id=None, user_id=7)
        assert needs_queue_assignment(ticket, is_group=False, from_me=False, queue_count=2) is False

    def test_session_without_queues(self):
        ticket = Mock(queue_id=None, user_id=None)
        assert needs_queue_assignment(ticket, is_group=False, from_me=False, queue_count=0) is False

    def test_already_assigned(self):
        ticket = Mock(queue_id=10, user_id=None)
        assert needs_queue_assignment(ticket, is_group=False, from_me=False, queue_count=2) is False


class TestSelectQueue:
    def test_selects_by_one_based_position(self):
        assert select_queue("1", QUEUES).id == 10
        assert select_queue("3", QUEUES).id == 30

    def test_only_first_character_counts(self):
        assert select_queue("2 please", QUEUES).id == 20
        assert select_queue("21", QUEUES).id == 20

    def test_zero_selects_nothing(self):
        assert select_queue("0", QUEUES) is None

    def test_out_of_range_selects_nothing(self):
        assert select_queue("4", QUEUES) is None
        assert select_queue("9", QUEUES) is None

    def test_non_digit_selects_nothing(self):
        assert select_queue("hello", QUEUES) is None
        assert select_queue(" 1", QUEUES) is None

    def test_non_ascii_digits_select_nothing(self):
        assert select_queue("²", QUEUES) is None
        assert select_queue("٢", QUEUES) is None
        assert select_queue("٢ please", QUEUES) is None

    def test_empty_body_selects_nothing(self):
        assert select_queue("", QUEUES) is None
        assert select_queue(None, QUEUES) is None


class TestDecideAssignment:
    def test_single_queue_assigned_regardless_of_body(self):
        decision = decide_assignment("hello", QUEUES[:1])
        assert decision.action == AssignmentAction.ASSIGN_ONLY_QUEUE
        assert decision.queue.id == 10

    def test_valid_selector_assigns_chosen_queue(self):
        decision = decide_assignment("2", QUEUES)
        assert decision.action == AssignmentAction.ASSIGN_SELECTED
        assert decision.queue.id == 20

    def test_anything_else_prompts_menu(self):
        decision = decide_assignment("good morning", QUEUES)
        assert decision.action == AssignmentAction.PROMPT_MENU
        assert decision.queue is None


class TestMessageBodies:
    def test_menu_lists_queues_in_order(self):
        body = build_menu_body("Welcome!", QUEUES)
        assert body == f"{MESSAGE_MARKER}Welcome!\n*1* - Sales\n*2* - Support\n*3* - Billing\n"

    def test_menu_with_empty_greeting(self):
        body = build_menu_body("", QUEUES[:2])
        assert body == f"{MESSAGE_MARKER}\n*1* - Sales\n*2* - Support\n"

    def test_confirmation_uses_queue_greeting(self):
        assert build_confirmation_body(QUEUES[1]) == f"{MESSAGE_MARKER}Support here."

    def test_confirmation_falls_back_to_queue_name(self):
        assert build_confirmation_body(QUEUES[2]) == f"{MESSAGE_MARKER}Billing"
