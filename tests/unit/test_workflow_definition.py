"""Tests for workflow definitions and the catalog."""

import pytest
from pydantic import ValidationError

from sagaflow.errors import ConfigurationError, NotFoundError
from sagaflow.workflow import (
    Conditional,
    Fault,
    Invoke,
    WorkflowCatalog,
    WorkflowDefinition,
    default_catalog,
    load_definitions,
    place_order_definition,
)


def test_place_order_definition_shape():
    definition = place_order_definition()
    assert definition.name == "PlaceOrder"
    assert definition.input_variable == "orderData"
    assert [a.label for a in definition.activities] == [
        "receiveOrder",
        "createOrder",
        "processPayment",
        "checkPaymentSuccess",
        "replyOrderComplete",
    ]

    check_payment = definition.activities[3]
    assert isinstance(check_payment, Conditional)
    assert isinstance(check_payment.else_[0], Fault)
    assert check_payment.else_[0].fault_name == "PaymentFailedFault"

    check_shipping = check_payment.then[1]
    assert isinstance(check_shipping, Conditional)
    update_stock = check_shipping.then[0]
    assert isinstance(update_stock, Invoke)
    assert update_stock.service == "catalog-service"
    assert update_stock.best_effort is True


def test_definition_lookup_is_stable():
    catalog = default_catalog()
    first = catalog.get("PlaceOrder").to_document()
    second = catalog.get("PlaceOrder").to_document()
    assert first == second
    assert first["activities"][1]["service"] == "orders-service"
    assert first["activities"][3]["else"][0]["faultName"] == "PaymentFailedFault"


def test_definitions_are_immutable():
    definition = place_order_definition()
    with pytest.raises(ValidationError):
        definition.name = "Other"


def test_unknown_workflow_raises_not_found():
    catalog = WorkflowCatalog()
    with pytest.raises(NotFoundError) as exc_info:
        catalog.get("Missing")
    assert str(exc_info.value) == "Workflow Missing not found"


def test_invoke_accepts_target_service_alias():
    definition = WorkflowDefinition.model_validate(
        {
            "name": "Ping",
            "activities": [
                {
                    "type": "invoke",
                    "targetService": "orders-service",
                    "operation": "ping",
                    "inputVariable": "orderData",
                }
            ],
        }
    )
    assert definition.activities[0].service == "orders-service"


def test_invalid_condition_is_rejected_at_load():
    with pytest.raises(ValidationError):
        WorkflowDefinition.model_validate(
            {
                "name": "Broken",
                "activities": [{"type": "if", "condition": "a = = b"}],
            }
        )


def test_load_definitions_from_directory(tmp_path):
    (tmp_path / "refund.yaml").write_text(
        """
name: Refund
inputVariable: refundData
activities:
  - type: receive
    operation: refund
  - type: invoke
    name: refundPayment
    service: payments-service
    operation: refundPayment
    inputVariable: refundData
    outputVariable: refundResult
  - type: reply
    operation: refund
    output:
      refunded: ${refundResult.status}
"""
    )
    definitions = load_definitions(tmp_path)
    assert [d.name for d in definitions] == ["Refund"]

    catalog = default_catalog(tmp_path)
    assert "Refund" in catalog
    assert "PlaceOrder" in catalog
    assert catalog.names() == ["PlaceOrder", "Refund"]


def test_load_definitions_reports_invalid_documents(tmp_path):
    path = tmp_path / "bad.yaml"
    path.write_text("name: Bad\nactivities:\n  - type: teleport\n")
    with pytest.raises(ConfigurationError):
        load_definitions(path)


def test_load_definitions_missing_path(tmp_path):
    with pytest.raises(ConfigurationError):
        load_definitions(tmp_path / "nope")
