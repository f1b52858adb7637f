"""Core message contracts for the sagaflow saga."""

from __future__ import annotations

import json
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)


class SagaMessage(BaseModel):
    """
    Envelope exchanged over the broker. Carries the correlation id and payload.
    """

    message_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    correlation_id: str
    kind: Optional[str] = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    payload: Dict[str, Any] = Field(default_factory=dict)
    spec_version: str = "1.0"

    def to_json(self) -> str:
        """Serialize message to JSON."""
        return self.model_dump_json()

    @classmethod
    def from_json(cls, data: str | bytes) -> "SagaMessage":
        """Deserialize message from JSON.

        Bodies published by producers that do not use the envelope (a bare
        order or event object) are wrapped, taking the correlation id from
        ``transactionId``, ``orderId`` or ``id``.
        """
        decoded = json.loads(data)
        if not isinstance(decoded, dict):
            raise ValueError("Message body must be a JSON object")
        if "correlation_id" in decoded and "payload" in decoded:
            return cls.model_validate(decoded)
        correlation_id = (
            decoded.get("transactionId") or decoded.get("orderId") or decoded.get("id")
        )
        if correlation_id is None:
            correlation_id = str(uuid.uuid4())
            logger.warning(
                f"Bare message without transaction id, assigned correlation_id={correlation_id}"
            )
        return cls(correlation_id=str(correlation_id), payload=decoded)


class OrderInitiated(BaseModel):
    """Initiating event: the full order as submitted by the caller."""

    payload: Dict[str, Any]

    @property
    def transaction_id(self) -> str:
        return str(self.payload["id"])


class PaymentCompleted(BaseModel):
    """Payment outcome reported by the payments service."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    transaction_id: str = Field(
        validation_alias=AliasChoices("transactionId", "orderId", "transaction_id")
    )
    status: Optional[str] = None
    item: Optional[str] = None
    quantity: Optional[int] = None


class ShippingCompleted(BaseModel):
    """Shipping outcome reported by the shipping service."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    transaction_id: str = Field(
        validation_alias=AliasChoices("transactionId", "orderId", "transaction_id")
    )
    product_id: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("productId", "product_id")
    )
    quantity: Optional[int] = None
    status: Optional[str] = None
    shipping_id: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("shippingId", "shipping_id")
    )
