import pytest

from errors import ValidationError
from status import AGENT_TRANSITIONS, LISTING_TRANSITIONS, AgentStatus, ListingStatus, check_transition


@pytest.mark.parametrize(
    "current,target",
    [
        (None, "pending"),
        ("pending", "approved"),
        ("pending", "rejected"),
        ("approved", "rejected"),
    ],
)
def test_allowed_listing_transitions(current, target):
    check_transition(LISTING_TRANSITIONS, current, target, "Listing")


@pytest.mark.parametrize(
    "current,target",
    [
        (None, "approved"),
        ("rejected", "pending"),
        ("rejected", "approved"),
        ("approved", "pending"),
        ("pending", "pending"),
        ("archived", "approved"),
        ("pending", "archived"),
    ],
)
def test_forbidden_listing_transitions(current, target):
    with pytest.raises(ValidationError):
        check_transition(LISTING_TRANSITIONS, current, target, "Listing")


def test_agents_are_terminal_once_decided():
    for decided in (AgentStatus.APPROVED, AgentStatus.REJECTED):
        for target in AgentStatus:
            with pytest.raises(ValidationError):
                check_transition(AGENT_TRANSITIONS, decided, target, "Agent")


def test_error_message_names_both_states():
    with pytest.raises(ValidationError) as exc:
        check_transition(LISTING_TRANSITIONS, ListingStatus.REJECTED, ListingStatus.PENDING, "Listing")
    assert exc.value.message == "Listing cannot move from rejected to pending"
