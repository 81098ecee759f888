from enum import Enum

from app.receipts.exceptions import InvalidStatusTransitionError


class ReceiptStatus(str, Enum):
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    VALIDATED = "VALIDATED"


# PROCESSING -> PROCESSING is accepted so a retried job can mark the receipt again
TRANSITIONS: dict[ReceiptStatus, frozenset[ReceiptStatus]] = {
    ReceiptStatus.PROCESSING: frozenset(
        {ReceiptStatus.PROCESSING, ReceiptStatus.COMPLETED, ReceiptStatus.FAILED}
    ),
    ReceiptStatus.COMPLETED: frozenset({ReceiptStatus.VALIDATED}),
    ReceiptStatus.FAILED: frozenset(),
    ReceiptStatus.VALIDATED: frozenset(),
}


def can_transition(current: ReceiptStatus | str, target: ReceiptStatus | str) -> bool:
    return ReceiptStatus(target) in TRANSITIONS[ReceiptStatus(current)]


def ensure_transition(current: ReceiptStatus | str, target: ReceiptStatus | str) -> None:
    """Raise InvalidStatusTransitionError unless ``current`` may move to ``target``."""
    if not can_transition(current, target):
        raise InvalidStatusTransitionError(
            f"Cannot move receipt from {ReceiptStatus(current).value} "
            f"to {ReceiptStatus(target).value}"
        )


def sources_of(target: ReceiptStatus) -> list[str]:
    """Statuses that may move to ``target``, as stored in the database."""
    return [status.value for status, targets in TRANSITIONS.items() if target in targets]
