"""Registry of workflow definitions and the built-in PlaceOrder workflow."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional

import yaml
from pydantic import ValidationError

from ..constants import (
    CATALOG_SERVICE,
    ORDERS_SERVICE,
    PAYMENTS_SERVICE,
    PLACE_ORDER_WORKFLOW,
    SHIPPING_SERVICE,
)
from ..errors import ConfigurationError, NotFoundError
from .definition import WorkflowDefinition

logger = logging.getLogger(__name__)

PLACE_ORDER_DOCUMENT = {
    "name": PLACE_ORDER_WORKFLOW,
    "version": "1.0",
    "description": "Complete order placement workflow",
    "inputVariable": "orderData",
    "variables": {
        "orderData": None,
        "orderResult": None,
        "paymentResult": None,
        "shippingResult": None,
        "catalogUpdateResult": None,
    },
    "activities": [
        {"type": "receive", "name": "receiveOrder", "operation": "placeOrder", "messageType": "orderRequest"},
        {
            "type": "invoke",
            "name": "createOrder",
            "service": ORDERS_SERVICE,
            "operation": "createOrder",
            "inputVariable": "orderData",
            "outputVariable": "orderResult",
        },
        {
            "type": "invoke",
            "name": "processPayment",
            "service": PAYMENTS_SERVICE,
            "operation": "processPayment",
            "inputVariable": "orderData",
            "outputVariable": "paymentResult",
        },
        {
            "type": "if",
            "name": "checkPaymentSuccess",
            "condition": 'paymentResult.status === "completed"',
            "then": [
                {
                    "type": "invoke",
                    "name": "processShipping",
                    "service": SHIPPING_SERVICE,
                    "operation": "processShipping",
                    "inputVariable": "orderData",
                    "outputVariable": "shippingResult",
                },
                {
                    "type": "if",
                    "name": "checkShippingSuccess",
                    "condition": 'shippingResult.status === "completed"',
                    "then": [
                        {
                            "type": "invoke",
                            "name": "updateCatalogStock",
                            "service": CATALOG_SERVICE,
                            "operation": "updateStock",
                            "inputVariable": "orderData",
                            "outputVariable": "catalogUpdateResult",
                            "bestEffort": True,
                        }
                    ],
                    "else": [
                        {"type": "throw", "name": "shippingFailed", "faultName": "ShippingFailedFault"}
                    ],
                },
            ],
            "else": [
                {"type": "throw", "name": "paymentFailed", "faultName": "PaymentFailedFault"}
            ],
        },
        {
            "type": "reply",
            "name": "replyOrderComplete",
            "operation": "placeOrder",
            "messageType": "orderResponse",
            "output": {
                "orderId": "${orderData.id}",
                "status": "completed",
                "message": "Order processed successfully",
            },
        },
    ],
}


def place_order_definition() -> WorkflowDefinition:
    return WorkflowDefinition.model_validate(PLACE_ORDER_DOCUMENT)


class WorkflowCatalog:
    """Holds the definitions a process can execute, keyed by name."""

    def __init__(self, definitions: Iterable[WorkflowDefinition] = ()) -> None:
        self._definitions: Dict[str, WorkflowDefinition] = {}
        for definition in definitions:
            self.register(definition)

    def register(self, definition: WorkflowDefinition) -> None:
        if definition.name in self._definitions:
            logger.warning(f"Replacing workflow definition {definition.name}")
        self._definitions[definition.name] = definition

    def get(self, name: str) -> WorkflowDefinition:
        try:
            return self._definitions[name]
        except KeyError:
            raise NotFoundError("Workflow", name) from None

    def names(self) -> List[str]:
        return list(self._definitions)

    def __contains__(self, name: str) -> bool:
        return name in self._definitions


def load_definitions(path: str | Path) -> List[WorkflowDefinition]:
    """Load definitions from a YAML file or a directory of YAML files.

    A file may hold a single definition or a list of them.
    """
    path = Path(path)
    if path.is_dir():
        files = sorted([*path.glob("*.yaml"), *path.glob("*.yml")])
    elif path.exists():
        files = [path]
    else:
        raise ConfigurationError(f"Workflow definitions path does not exist: {path}")

    definitions: List[WorkflowDefinition] = []
    for file in files:
        with open(file) as f:
            data = yaml.safe_load(f) or []
        documents = data if isinstance(data, list) else [data]
        for document in documents:
            try:
                definitions.append(WorkflowDefinition.model_validate(document))
            except ValidationError as e:
                raise ConfigurationError(f"Invalid workflow definition in {file}: {e}") from e
        logger.info(f"Loaded {len(documents)} workflow definition(s) from {file}")
    return definitions


def default_catalog(extra_path: Optional[str | Path] = None) -> WorkflowCatalog:
    """Catalog with PlaceOrder plus any definitions found at ``extra_path``."""
    catalog = WorkflowCatalog([place_order_definition()])
    if extra_path:
        for definition in load_definitions(extra_path):
            catalog.register(definition)
    return catalog
