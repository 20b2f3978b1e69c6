"""
Local reconciliation after a confirmed issue-out or damage.

The OPLPS API is the source of truth; the dashboard only mirrors the known
effect of a mutation the API has already accepted, until the next full fetch.
"""

import dataclasses
import enum
from typing import List, Optional, Sequence, TypeVar

T = TypeVar("T")


class ValidationError(ValueError):
    """User input rejected before any request is sent."""


def reconcile(collection: Sequence[T], target_id: str, quantity_delta: int) -> List[T]:
    """Return a new list with ``quantity_delta`` units taken from ``target_id``.

    The target is dropped when nothing remains, otherwise replaced by a copy
    with the reduced quantity. Every other item is kept as the same object and
    in the same order. ``collection`` itself is not modified.
    """
    if isinstance(quantity_delta, bool) or not isinstance(quantity_delta, int) or quantity_delta <= 0:
        raise ValueError(f"quantity_delta must be a positive integer, got {quantity_delta!r}")
    matches = [item for item in collection if item.id == target_id]
    if len(matches) != 1:
        raise ValueError(f"expected exactly one item with id {target_id!r}, found {len(matches)}")

    result: List[T] = []
    for item in collection:
        if item.id != target_id:
            result.append(item)
            continue
        remaining = item.quantity - quantity_delta
        if remaining > 0:
            result.append(dataclasses.replace(item, quantity=remaining))
    return result


# ---------- pending action state machine ----------

class ActionState(enum.Enum):
    IDLE = "idle"
    AWAITING = "awaiting_server_response"
    RECONCILED = "reconciled"
    FAILED = "failed"


class PendingAction:
    """Lifecycle of one user-initiated mutation.

    IDLE -> AWAITING -> RECONCILED | FAILED, each step exactly once.
    """

    def __init__(self, kind: str, target_id: str, quantity: int):
        self.kind = kind
        self.target_id = target_id
        self.quantity = quantity
        self.state = ActionState.IDLE
        self.error: Optional[str] = None

    def _move(self, expected: ActionState, new: ActionState) -> None:
        if self.state is not expected:
            raise RuntimeError(f"cannot go from {self.state.value} to {new.value}")
        self.state = new

    def begin(self) -> None:
        self._move(ActionState.IDLE, ActionState.AWAITING)

    def succeed(self) -> None:
        self._move(ActionState.AWAITING, ActionState.RECONCILED)

    def fail(self, error: str) -> None:
        self._move(ActionState.AWAITING, ActionState.FAILED)
        self.error = error

    @property
    def is_finished(self) -> bool:
        return self.state in (ActionState.RECONCILED, ActionState.FAILED)


# ---------- input validation ----------

ISSUE_MESSAGES = (
    "Please enter a valid positive quantity to issue.",
    "Cannot issue {quantity}. Only {available} available.",
)
DAMAGE_MESSAGES = (
    "Please enter a valid positive quantity for damaged items.",
    "Cannot mark {quantity} as damaged. Only {available} available.",
)
EDIT_MESSAGES = (
    "Please enter a valid positive quantity.",
    "Quantity ({quantity}) cannot exceed {available}.",
)


def parse_quantity(raw, available: Optional[int] = None, messages=ISSUE_MESSAGES) -> int:
    """Positive whole quantity not exceeding ``available``."""
    invalid, exceeded = messages
    text = str(raw if raw is not None else "").strip()
    try:
        number = float(text)
    except ValueError:
        raise ValidationError(invalid) from None
    if number <= 0 or not number.is_integer():
        raise ValidationError(invalid)
    quantity = int(number)
    if available is not None and quantity > available:
        raise ValidationError(exceeded.format(quantity=quantity, available=available))
    return quantity


def parse_stock_quantity(raw) -> int:
    """Non-negative whole quantity for newly registered parts."""
    text = str(raw if raw is not None else "").strip()
    try:
        number = float(text)
    except ValueError:
        raise ValidationError("Please enter a valid non-negative whole quantity.") from None
    if number < 0 or not number.is_integer():
        raise ValidationError("Please enter a valid non-negative whole quantity.")
    return int(number)


def clean_remark(raw, required: bool) -> Optional[str]:
    remark = (raw or "").strip()
    if required and not remark:
        raise ValidationError("Remarks are required when marking items as damaged.")
    return remark or None
