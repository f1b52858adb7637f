"""Transaction-keyed cache of the original request for each saga."""

from __future__ import annotations

import copy
import logging
import time
from collections import OrderedDict
from typing import Any, Callable, Dict, Optional

from pydantic import BaseModel, ConfigDict

from ..constants import DEFAULT_MAX_TRANSACTIONS

logger = logging.getLogger(__name__)


class TransactionContext(BaseModel):
    """Original payload of a transaction, captured when the saga starts."""

    model_config = ConfigDict(frozen=True)

    transaction_id: str
    original_payload: Dict[str, Any]
    created_at: float


class TransactionContextStore:
    """Bounded, write-once mapping from transaction id to its context.

    Entries are evicted least-recently-used once ``max_entries`` is reached,
    and treated as absent once older than ``ttl_seconds`` (when set). Readers
    receive copies, so a stored payload never changes after creation.
    """

    def __init__(
        self,
        max_entries: int = DEFAULT_MAX_TRANSACTIONS,
        ttl_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.max_entries = max_entries
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: OrderedDict[str, TransactionContext] = OrderedDict()

    def put(self, transaction_id: str, payload: Dict[str, Any]) -> TransactionContext:
        """Store ``payload`` for ``transaction_id`` unless already present."""
        existing = self._live(transaction_id)
        if existing is not None:
            logger.warning(
                f"Context for transaction {transaction_id} already cached; keeping the original"
            )
            return existing
        context = TransactionContext(
            transaction_id=transaction_id,
            original_payload=copy.deepcopy(payload),
            created_at=self._clock(),
        )
        self._entries[transaction_id] = context
        while len(self._entries) > self.max_entries:
            evicted, _ = self._entries.popitem(last=False)
            logger.info(f"Evicted context for transaction {evicted}")
        return context

    def get(self, transaction_id: str) -> Optional[TransactionContext]:
        context = self._live(transaction_id)
        if context is None:
            return None
        self._entries.move_to_end(transaction_id)
        return context.model_copy(
            update={"original_payload": copy.deepcopy(context.original_payload)}
        )

    def discard(self, transaction_id: str) -> None:
        self._entries.pop(transaction_id, None)

    def _live(self, transaction_id: str) -> Optional[TransactionContext]:
        context = self._entries.get(transaction_id)
        if context is None:
            return None
        if self.ttl_seconds is not None and self._clock() - context.created_at > self.ttl_seconds:
            del self._entries[transaction_id]
            logger.info(f"Context for transaction {transaction_id} expired")
            return None
        return context

    def __contains__(self, transaction_id: str) -> bool:
        return self._live(transaction_id) is not None

    def __len__(self) -> int:
        return len(self._entries)
