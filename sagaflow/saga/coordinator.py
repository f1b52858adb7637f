"""Queue-driven saga coordinator: order -> payment -> shipping -> inventory."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, Optional, Tuple

from pydantic import BaseModel, ValidationError

from ..constants import (
    CATALOG_SERVICE,
    DEFAULT_CONNECT_RETRIES,
    DEFAULT_CONNECT_RETRY_DELAY,
    ORDER_INITIATION_QUEUE,
    PAYMENT_COMMAND_QUEUE,
    PAYMENT_COMPLETED_QUEUE,
    SAGA_QUEUES,
    SHIPPING_COMMAND_QUEUE,
    SHIPPING_COMPLETED_QUEUE,
)
from ..contracts import OrderInitiated, PaymentCompleted, SagaMessage, ShippingCompleted
from ..errors import SagaflowError
from ..transports import BaseTransport
from . import steps
from .context import TransactionContextStore
from .state import SagaState, SagaTracker

if TYPE_CHECKING:
    from ..invoker import ServiceInvoker

logger = logging.getLogger(__name__)

_ID_KEYS = ("transactionId", "orderId", "transaction_id")


def _parse_order(message: SagaMessage) -> OrderInitiated:
    if "id" not in message.payload:
        raise ValueError(f"Order message {message.message_id} has no id")
    return OrderInitiated(payload=message.payload)


def _with_transaction_id(message: SagaMessage) -> Dict[str, Any]:
    data = dict(message.payload)
    if not any(key in data for key in _ID_KEYS):
        data["transactionId"] = message.correlation_id
    return data


def _parse_payment(message: SagaMessage) -> PaymentCompleted:
    return PaymentCompleted.model_validate(_with_transaction_id(message))


def _parse_shipping(message: SagaMessage) -> ShippingCompleted:
    return ShippingCompleted.model_validate(_with_transaction_id(message))


class SagaCoordinator:
    """Drives each transaction forward as step-completion events arrive.

    One consumer loop runs per queue; loops for different queues run
    concurrently, each handling one message at a time. A message is
    acknowledged only after the handler's side effect has been attempted, so
    a crash before the ack causes redelivery (at-least-once).
    """

    def __init__(
        self,
        transport: BaseTransport,
        invoker: "ServiceInvoker",
        contexts: Optional[TransactionContextStore] = None,
        tracker: Optional[SagaTracker] = None,
        connect_retries: int = DEFAULT_CONNECT_RETRIES,
        connect_retry_delay: float = DEFAULT_CONNECT_RETRY_DELAY,
    ) -> None:
        self._transport = transport
        self._invoker = invoker
        self.contexts = contexts or TransactionContextStore()
        self.tracker = tracker or SagaTracker()
        self.connect_retries = connect_retries
        self.connect_retry_delay = connect_retry_delay
        self.connected = False
        self._routes: Dict[
            str, Tuple[Callable[[SagaMessage], BaseModel], Callable[[Any], Awaitable[None]]]
        ] = {
            ORDER_INITIATION_QUEUE: (_parse_order, self.on_order_initiated),
            PAYMENT_COMPLETED_QUEUE: (_parse_payment, self.on_payment_completed),
            SHIPPING_COMPLETED_QUEUE: (_parse_shipping, self.on_shipping_completed),
        }

    # ------------------------------------------------------------------
    # Connection
    async def connect(self) -> bool:
        """Connect with a fixed retry budget and declare every saga queue.

        Returns ``False`` once the budget is exhausted; the coordinator then
        stays idle until the process is restarted.
        """
        for attempt in range(1, self.connect_retries + 1):
            try:
                await self._transport.connect()
                for queue in SAGA_QUEUES:
                    await self._transport.declare(queue)
            except Exception as e:
                remaining = self.connect_retries - attempt
                logger.error(
                    f"Coordinator failed to connect to broker (attempt {attempt}, "
                    f"retries left: {remaining}): {e}"
                )
                if remaining:
                    await asyncio.sleep(self.connect_retry_delay)
                continue
            self.connected = True
            logger.info("Coordinator connected to broker")
            return True

        logger.error(
            f"Coordinator could not connect to broker after {self.connect_retries} attempts"
        )
        return False

    async def start(self, lifespan: Optional[float] = None) -> None:
        """Connect, then consume every saga queue until ``lifespan`` elapses."""
        if not self.connected and not await self.connect():
            return
        await asyncio.gather(
            *(self._consume(queue, lifespan) for queue in self._routes)
        )

    async def close(self) -> None:
        await self._transport.disconnect()
        self.connected = False

    async def _consume(self, queue: str, lifespan: Optional[float]) -> None:
        async for raw_message, message in self._transport.subscribe(queue, lifespan=lifespan):
            await self.dispatch(queue, raw_message, message)

    async def dispatch(self, queue: str, raw_message: Any, message: SagaMessage) -> bool:
        """Handle one message from ``queue`` and settle it with the broker.

        Returns ``True`` when the message was acknowledged.
        """
        parse, handler = self._routes[queue]
        try:
            event = parse(message)
        except (ValidationError, ValueError) as e:
            logger.error(f"Rejecting malformed message {message.message_id} on {queue}: {e}")
            await self._transport.nack(raw_message, requeue=False)
            return False

        try:
            await handler(event)
        except Exception:
            logger.exception(
                f"Handler for {queue} failed on correlation_id={message.correlation_id}; "
                "leaving message for redelivery"
            )
            await self._transport.nack(raw_message, requeue=True)
            return False

        await self._transport.ack(raw_message)
        return True

    # ------------------------------------------------------------------
    # Step handlers
    async def _publish(self, queue: str, transaction_id: str, kind: str, payload: Dict[str, Any]) -> None:
        await self._transport.publish(
            queue, SagaMessage(correlation_id=transaction_id, kind=kind, payload=payload)
        )
        logger.info(f"Sent {kind} to {queue} for transaction {transaction_id}")

    async def on_order_initiated(self, event: OrderInitiated) -> None:
        transaction_id = event.transaction_id
        logger.info(f"Received order {transaction_id}")
        self.contexts.put(transaction_id, event.payload)
        self.tracker.advance(transaction_id, SagaState.INITIATED)
        await self._publish(PAYMENT_COMMAND_QUEUE, transaction_id, "PaymentCommand", event.payload)
        self.tracker.advance(transaction_id, SagaState.PAYMENT_PENDING)

    async def on_payment_completed(self, event: PaymentCompleted) -> None:
        transaction_id = event.transaction_id
        logger.info(f"Received payment result for transaction {transaction_id}: {event.status}")
        if not steps.is_success(event.status):
            self._fail(transaction_id, f"payment reported status {event.status}")
            return

        context = self.contexts.get(transaction_id)
        if context is not None:
            command = steps.shipping_command(context.original_payload)
        else:
            logger.warning(
                f"No cached order for transaction {transaction_id}; "
                "sending shipping command reconstructed from the payment event"
            )
            command = steps.fallback_shipping_command(event)

        await self._publish(SHIPPING_COMMAND_QUEUE, transaction_id, "ShippingCommand", command)
        self.tracker.advance(transaction_id, SagaState.SHIPPING_PENDING)

    async def on_shipping_completed(self, event: ShippingCompleted) -> None:
        transaction_id = event.transaction_id
        logger.info(f"Received shipping result for transaction {transaction_id}: {event.status}")
        if not steps.is_success(event.status):
            self._fail(transaction_id, f"shipping reported status {event.status}")
            return

        if event.product_id and event.quantity:
            self.tracker.advance(transaction_id, SagaState.INVENTORY_PENDING)
            try:
                await self._invoker.call(
                    CATALOG_SERVICE,
                    "updateStock",
                    steps.stock_update(event.product_id, event.quantity),
                )
            except SagaflowError as e:
                logger.error(
                    f"Transaction {transaction_id} completed but stock update for "
                    f"product {event.product_id} failed: {e}"
                )
            except Exception:
                logger.exception(
                    f"Transaction {transaction_id} completed but stock update for "
                    f"product {event.product_id} raised unexpectedly"
                )
            else:
                logger.info(
                    f"Stock updated for product {event.product_id} (transaction {transaction_id})"
                )

        self.tracker.advance(transaction_id, SagaState.COMPLETED)
        self.contexts.discard(transaction_id)

    def _fail(self, transaction_id: str, reason: str) -> None:
        logger.error(f"Saga for transaction {transaction_id} failed: {reason}")
        self.tracker.advance(transaction_id, SagaState.FAILED)
        self.contexts.discard(transaction_id)
