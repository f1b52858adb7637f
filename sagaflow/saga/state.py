"""Per-transaction saga state machine."""

from __future__ import annotations

import enum
import logging
from collections import OrderedDict
from typing import Dict, FrozenSet, Optional

from ..constants import DEFAULT_MAX_TRANSACTIONS

logger = logging.getLogger(__name__)


class SagaState(str, enum.Enum):
    """Lifecycle states of one order saga."""

    INITIATED = "initiated"
    PAYMENT_PENDING = "payment_pending"
    SHIPPING_PENDING = "shipping_pending"
    INVENTORY_PENDING = "inventory_pending"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (SagaState.COMPLETED, SagaState.FAILED)


TRANSITIONS: Dict[SagaState, FrozenSet[SagaState]] = {
    SagaState.INITIATED: frozenset({SagaState.PAYMENT_PENDING, SagaState.FAILED}),
    SagaState.PAYMENT_PENDING: frozenset({SagaState.SHIPPING_PENDING, SagaState.FAILED}),
    SagaState.SHIPPING_PENDING: frozenset(
        {SagaState.INVENTORY_PENDING, SagaState.COMPLETED, SagaState.FAILED}
    ),
    SagaState.INVENTORY_PENDING: frozenset({SagaState.COMPLETED, SagaState.FAILED}),
    SagaState.COMPLETED: frozenset(),
    SagaState.FAILED: frozenset(),
}


class SagaTracker:
    """Records the current state of each transaction.

    A transaction first seen mid-saga (its initiating event was handled by
    another process, or was evicted) may enter at any state. Illegal
    transitions are logged and not applied; they never raise, since
    redelivered and reordered events are expected.
    """

    def __init__(self, max_entries: int = DEFAULT_MAX_TRANSACTIONS) -> None:
        self.max_entries = max_entries
        self._states: OrderedDict[str, SagaState] = OrderedDict()

    def state(self, transaction_id: str) -> Optional[SagaState]:
        return self._states.get(transaction_id)

    def advance(self, transaction_id: str, new_state: SagaState) -> bool:
        current = self._states.get(transaction_id)
        if current is not None and new_state not in TRANSITIONS[current]:
            logger.warning(
                f"Ignoring transition {current.value} -> {new_state.value} "
                f"for transaction {transaction_id}"
            )
            return False
        self._states[transaction_id] = new_state
        self._states.move_to_end(transaction_id)
        while len(self._states) > self.max_entries:
            self._states.popitem(last=False)
        logger.info(f"Transaction {transaction_id} is {new_state.value}")
        return True
