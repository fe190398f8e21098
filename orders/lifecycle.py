"""
Order lifecycle rules.

Decides how an order's (status, stock reservation) pair changes on a status
update and which stock side effect the caller must apply. Pure functions:
no database access, no stock mutation.
"""
from dataclasses import dataclass
from enum import Enum

from core.exceptions import ConflictError, ValidationError
from .models import Order

Status = Order.Status

# Entering one of these statuses requires the order's stock to be withheld
RESERVING_STATUSES = frozenset({Status.PENDING.value, Status.DELIVERED.value})


class StockEffect(Enum):
    NONE = 'none'
    RESERVE = 'reserve'
    RESTORE = 'restore'


@dataclass(frozen=True)
class OrderState:
    """
    Status together with the reservation flag.

    A cancelled order never holds stock, so ``OrderState('cancelled', True)``
    cannot be constructed.
    """
    status: str
    reserved: bool

    def __post_init__(self):
        if self.status not in Status.values:
            raise ValidationError(f"Unknown order status: {self.status!r}")
        if self.status == Status.CANCELLED and self.reserved:
            raise ConflictError("A cancelled order cannot hold reserved stock")

    @classmethod
    def of(cls, order: Order) -> 'OrderState':
        return cls(status=order.status, reserved=order.stock_reserved)


@dataclass(frozen=True)
class Transition:
    source: OrderState
    target: OrderState
    effect: StockEffect

    @property
    def changes_stock(self) -> bool:
        return self.effect is not StockEffect.NONE


def normalize_status(value) -> str:
    """
    Match ``value`` case-insensitively against the known statuses.

    Raises:
        ValidationError: If the value is empty or not a known status
    """
    if value is None or not str(value).strip():
        raise ValidationError("Valid status is required")
    status = str(value).strip().lower()
    if status not in Status.values:
        raise ValidationError(
            f"Valid status is required, one of: {', '.join(Status.values)}"
        )
    return status


def plan_transition(state: OrderState, new_status: str) -> Transition:
    """
    Compute the target state and stock effect of moving to ``new_status``,
    which must already be normalized (see ``normalize_status``).

    Rules, first match wins:
        1. delivered -> pending keeps the reservation as is, no stock change
        2. pending/delivered while not reserved -> reserve stock
        3. cancelled from any other status while reserved -> restore stock
        4. anything else only changes the status
    """
    if new_status == Status.PENDING and state.status == Status.DELIVERED:
        return Transition(state, OrderState(new_status, state.reserved), StockEffect.NONE)

    if new_status in RESERVING_STATUSES and not state.reserved:
        return Transition(state, OrderState(new_status, True), StockEffect.RESERVE)

    if new_status == Status.CANCELLED and state.status != Status.CANCELLED and state.reserved:
        return Transition(state, OrderState(new_status, False), StockEffect.RESTORE)

    return Transition(state, OrderState(new_status, state.reserved), StockEffect.NONE)
