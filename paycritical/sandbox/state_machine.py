"""Payment lifecycle transitions enforced by the sandbox simulator."""

REQUESTED = "Requested"
COMPLETED = "Completed"
REJECTED_BY_USER = "RejectedByUser"
CANCELLED = "Cancelled"
EXPIRED = "Expired"
REFUNDED = "Refunded"

ALLOWED_TRANSITIONS: dict[str, set[str]] = {
    REQUESTED: {COMPLETED, REJECTED_BY_USER, CANCELLED, EXPIRED},
    COMPLETED: {REFUNDED},
    REJECTED_BY_USER: set(),
    CANCELLED: set(),
    EXPIRED: set(),
    REFUNDED: set(),
}


class InvalidTransition(ValueError):
    def __init__(self, current: str, new: str) -> None:
        super().__init__(f"Invalid transition: {current} -> {new}")
        self.current = current
        self.new = new


def validate_transition(current: str, new: str) -> None:
    """Raise when a transition is not allowed by the state machine."""

    if new not in ALLOWED_TRANSITIONS.get(current, set()):
        raise InvalidTransition(current, new)
