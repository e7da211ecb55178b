"""Status enums and the transitions allowed between them."""

from enum import Enum
from typing import Dict, FrozenSet, Optional, Type, Union

from errors import ValidationError


class ListingStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class AgentStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class EscrowStatus(str, Enum):
    INITIATED = "initiated"


# None is the state of a document that does not exist yet.
LISTING_TRANSITIONS: Dict[Optional[ListingStatus], FrozenSet[ListingStatus]] = {
    None: frozenset({ListingStatus.PENDING}),
    ListingStatus.PENDING: frozenset({ListingStatus.APPROVED, ListingStatus.REJECTED}),
    ListingStatus.APPROVED: frozenset({ListingStatus.REJECTED}),
    ListingStatus.REJECTED: frozenset(),
}

# Agents are decided exactly once.
AGENT_TRANSITIONS: Dict[Optional[AgentStatus], FrozenSet[AgentStatus]] = {
    None: frozenset({AgentStatus.PENDING}),
    AgentStatus.PENDING: frozenset({AgentStatus.APPROVED, AgentStatus.REJECTED}),
    AgentStatus.APPROVED: frozenset(),
    AgentStatus.REJECTED: frozenset(),
}


def check_transition(
    transitions: Dict,
    current: Union[str, Enum, None],
    target: Union[str, Enum],
    label: str,
) -> None:
    """Raise ValidationError unless ``current -> target`` is in ``transitions``.

    Stored values that are not members of the enum are treated as a dead end,
    so a corrupted status can never be moved anywhere.
    """
    kind: Type[Enum] = type(next(iter(transitions[None])))
    try:
        target_status = kind(target)
    except ValueError:
        raise ValidationError(f"Unknown {label.lower()} status: {target}")

    current_status = None
    if current is not None:
        try:
            current_status = kind(current)
        except ValueError:
            raise ValidationError(f"{label} has an unrecognised status: {current}")

    if target_status not in transitions.get(current_status, frozenset()):
        source = current_status.value if current_status is not None else "new"
        raise ValidationError(f"{label} cannot move from {source} to {target_status.value}")
