"""Synchronous orchestration facade and component wiring."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from .auth import ServiceTokenIssuer, TokenConfig
from .config import SagaflowConfig, load_config
from .constants import (
    CATALOG_SERVICE,
    ORDER_INITIATION_QUEUE,
    ORDERS_SERVICE,
    PAYMENTS_SERVICE,
    PLACE_ORDER_WORKFLOW,
    SHIPPING_SERVICE,
)
from .contracts import SagaMessage
from .errors import NotFoundError, SagaflowError
from .invoker import ServiceInvoker
from .persistence import RunContext, RunRepository, RunResult, RunStatus, get_repository
from .registry import get_registry
from .saga import SagaCoordinator, SagaTracker, TransactionContextStore, steps
from .transports import BaseTransport, get_transport
from .workflow import WorkflowCatalog, WorkflowDefinition, WorkflowInterpreter, default_catalog

logger = logging.getLogger(__name__)

STATUS_LOOKUPS = (
    ("order", ORDERS_SERVICE, "getOrder", "Order details not found or Orders service unavailable."),
    (
        "payment",
        PAYMENTS_SERVICE,
        "getPayment",
        "Payment details not found or Payments service unavailable.",
    ),
    (
        "shipping",
        SHIPPING_SERVICE,
        "getShipping",
        "Shipping details not found or Shipping service unavailable.",
    ),
)


def build_invoker(config: SagaflowConfig) -> ServiceInvoker:
    credentials = config.credentials
    tokens = ServiceTokenIssuer(
        TokenConfig(
            secret=credentials.secret,
            subject=credentials.subject,
            scopes=credentials.scopes,
            ttl_seconds=credentials.ttl_seconds,
        )
    )
    return ServiceInvoker(get_registry(config), tokens, timeout=config.invoker.timeout)


def build_coordinator(
    config: Optional[SagaflowConfig] = None,
    transport: Optional[BaseTransport] = None,
    invoker: Optional[ServiceInvoker] = None,
) -> SagaCoordinator:
    config = config or load_config()
    history = config.history
    return SagaCoordinator(
        transport or get_transport(config=config),
        invoker or build_invoker(config),
        contexts=TransactionContextStore(
            max_entries=history.max_transactions, ttl_seconds=history.transaction_ttl_seconds
        ),
        tracker=SagaTracker(max_entries=history.max_transactions),
        connect_retries=config.transport.connect_retries,
        connect_retry_delay=config.transport.connect_retry_delay,
    )


class OrchestratorService:
    """Entry point for synchronous callers: run workflows and inspect runs."""

    def __init__(
        self,
        catalog: WorkflowCatalog,
        interpreter: WorkflowInterpreter,
        repository: RunRepository,
        transport: Optional[BaseTransport] = None,
        legacy_events: bool = True,
    ) -> None:
        self.catalog = catalog
        self.interpreter = interpreter
        self.repository = repository
        self.transport = transport
        self.legacy_events = legacy_events

    @classmethod
    def from_config(
        cls,
        config: Optional[SagaflowConfig] = None,
        transport: Optional[BaseTransport] = None,
    ) -> "OrchestratorService":
        # an explicit config selects its own backend; otherwise reuse the process-wide repository
        repository = get_repository(config=config)
        config = config or load_config()
        catalog = default_catalog(config.workflows_path)
        if transport is not None and transport.in_process and config.legacy_events:
            # nothing outside this process would ever drain order_initiation_queue
            logger.warning(
                f"{type(transport).__name__} keeps messages in this process; "
                f"order events will not be published"
            )
            transport = None
        interpreter = WorkflowInterpreter(catalog, build_invoker(config), repository)
        return cls(
            catalog,
            interpreter,
            repository,
            transport=transport,
            legacy_events=config.legacy_events,
        )

    async def execute(self, workflow_name: str, payload: Any) -> RunResult:
        """Run ``workflow_name`` synchronously.

        Raises:
            NotFoundError: If the workflow is not registered.
        """
        return await self.interpreter.execute(workflow_name, payload)

    async def place_order(self, order: Dict[str, Any]) -> RunResult:
        """Run PlaceOrder and, on success, emit the order for queue-driven consumers."""
        result = await self.execute(PLACE_ORDER_WORKFLOW, order)
        if result.status is RunStatus.COMPLETED and self.legacy_events and self.transport:
            await self._publish_legacy_order(order)
        return result

    async def _publish_legacy_order(self, order: Dict[str, Any]) -> None:
        correlation_id = str(order.get("id"))
        try:
            await self.transport.publish(
                ORDER_INITIATION_QUEUE,
                SagaMessage(correlation_id=correlation_id, kind="OrderInitiated", payload=order),
            )
        except Exception as e:
            # the run already completed; the compatibility event is advisory
            logger.error(f"Failed to publish order {correlation_id} to {ORDER_INITIATION_QUEUE}: {e}")
            return
        logger.info(f"Order {correlation_id} also sent to {ORDER_INITIATION_QUEUE}")

    def list_workflows(self) -> List[str]:
        return self.catalog.names()

    def get_workflow_definition(self, name: str) -> WorkflowDefinition:
        return self.catalog.get(name)

    async def list_runs(self) -> List[RunContext]:
        return await self.repository.list_runs()

    async def get_run(self, run_id: str) -> RunContext:
        run = await self.repository.get_run(run_id)
        if run is None:
            raise NotFoundError("Execution", run_id)
        return run

    async def workflow_status(self, order_id: str) -> Dict[str, Any]:
        """Collect the order, payment and shipping records for ``order_id``.

        A collaborator that is down or has no record yields a ``not_found``
        entry instead of failing the whole lookup.
        """
        details: Dict[str, Any] = {}
        for key, service_name, operation, missing_message in STATUS_LOOKUPS:
            try:
                details[key] = await self.interpreter.invoker.call(
                    service_name, operation, {"orderId": order_id}
                )
            except SagaflowError as e:
                logger.warning(f"{operation} for order {order_id} failed: {e}")
                details[key] = {"status": "not_found", "message": missing_message}
        return {"orderId": order_id, "details": details}

    async def update_catalog_stock(self, product_id: str, quantity: Any) -> Dict[str, Any]:
        """Ask the catalog to reduce stock of ``product_id`` by ``quantity``.

        Raises:
            ValueError: If ``quantity`` is missing or not a positive number.
            SagaflowError: If the catalog cannot be resolved or rejects the update.
        """
        if isinstance(quantity, bool) or not isinstance(quantity, (int, float)) or quantity <= 0:
            raise ValueError("Quantity must be a positive number")
        return await self.interpreter.invoker.call(
            CATALOG_SERVICE, "updateStock", steps.stock_update(product_id, quantity)
        )
