"""Asynchronous saga coordination over a durable broker."""

from .context import TransactionContext, TransactionContextStore
from .coordinator import SagaCoordinator
from .state import SagaState, SagaTracker

__all__ = [
    "SagaCoordinator",
    "SagaState",
    "SagaTracker",
    "TransactionContext",
    "TransactionContextStore",
]
