"""Business step logic shared by the workflow interpreter and the saga coordinator.

Both execution paths build downstream requests and commands through these
functions, so the order, payment, shipping and stock steps have one definition.
"""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

from ..contracts import PaymentCompleted

UNIT_PRICE = 100
COMPLETED = "completed"
FAILED = "failed"

_FALLBACK_FIELDS = ("item", "quantity", "customerName", "shippingAddress")


def is_success(status: Optional[str]) -> bool:
    """A step succeeded unless it reported a status other than ``completed``.

    Producers that omit the status entirely are treated as successful.
    """
    return status is None or status == COMPLETED


def payment_request(order: Mapping[str, Any]) -> Dict[str, Any]:
    quantity = order.get("quantity") or 0
    return {
        "orderId": order.get("id"),
        "amount": quantity * UNIT_PRICE,
        "customerName": order.get("customerName"),
    }


def shipping_request(order: Mapping[str, Any]) -> Dict[str, Any]:
    return {
        "orderId": order.get("id"),
        "customerName": order.get("customerName"),
        "shippingAddress": order.get("shippingAddress"),
    }


def product_id_of(order: Mapping[str, Any]) -> Optional[str]:
    product_id = order.get("productId") or order.get("item")
    return str(product_id) if product_id is not None else None


def stock_update(product_id: Optional[str], quantity: Optional[int]) -> Dict[str, Any]:
    return {"productId": product_id, "quantity": quantity}


def shipping_command(order: Mapping[str, Any]) -> Dict[str, Any]:
    """Shipping command built from the original order (carries the address)."""
    return dict(order)


def fallback_shipping_command(event: PaymentCompleted) -> Dict[str, Any]:
    """Minimal shipping command from the payment event alone.

    Used when no cached order exists for the transaction. Only fields the
    payment producer chose to include can be carried forward.
    """
    known = {"item": event.item, "quantity": event.quantity, **(event.model_extra or {})}
    command: Dict[str, Any] = {"id": event.transaction_id}
    for field in _FALLBACK_FIELDS:
        if known.get(field) is not None:
            command[field] = known[field]
    return command
