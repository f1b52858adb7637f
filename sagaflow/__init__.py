"""sagaflow: workflow orchestration and queue-driven sagas for order processing."""

from .contracts import OrderInitiated, PaymentCompleted, SagaMessage, ShippingCompleted
from .errors import (
    DiscoveryError,
    FaultRaised,
    InvocationError,
    NotFoundError,
    SagaflowError,
)
from .invoker import ServiceInvoker
from .persistence import RunContext, RunResult, RunStatus, get_repository
from .saga import SagaCoordinator, SagaState, TransactionContextStore
from .service import OrchestratorService, build_coordinator
from .transports import get_transport
from .workflow import WorkflowCatalog, WorkflowDefinition, WorkflowInterpreter

__version__ = "0.1.0"
__all__ = [
    "DiscoveryError",
    "FaultRaised",
    "InvocationError",
    "NotFoundError",
    "OrchestratorService",
    "OrderInitiated",
    "PaymentCompleted",
    "RunContext",
    "RunResult",
    "RunStatus",
    "SagaCoordinator",
    "SagaMessage",
    "SagaState",
    "SagaflowError",
    "ServiceInvoker",
    "ShippingCompleted",
    "TransactionContextStore",
    "WorkflowCatalog",
    "WorkflowDefinition",
    "WorkflowInterpreter",
    "build_coordinator",
    "get_repository",
    "get_transport",
]
