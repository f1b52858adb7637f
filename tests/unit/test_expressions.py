"""Tests for the conditional expression grammar."""

import pytest

from sagaflow.errors import PredicateError
from sagaflow.workflow import compile_predicate, resolve_path

SCOPE = {
    "paymentResult": {"status": "completed", "amount": 200},
    "orderData": {"id": "ORDER-001", "quantity": 2, "express": False},
    "items": [{"sku": "A"}, {"sku": "B"}],
}


@pytest.mark.parametrize(
    "source, expected",
    [
        ('paymentResult.status === "completed"', True),
        ("paymentResult.status === 'failed'", False),
        ('paymentResult.status !== "completed"', False),
        ("orderData.quantity >= 2", True),
        ("orderData.quantity < 2", False),
        ("paymentResult.amount == 200 && orderData.quantity > 1", True),
        ("orderData.express || orderData.quantity == 3", False),
        ("!orderData.express", True),
        ("(orderData.express || paymentResult.status == \"completed\") && orderData.id", True),
        ("shippingResult.status === \"completed\"", False),
        ("shippingResult == null", True),
        ("items.1.sku == \"B\"", True),
    ],
)
def test_predicate_evaluation(source, expected):
    assert compile_predicate(source).evaluate(SCOPE) is expected


def test_ordering_against_missing_value_is_false():
    assert compile_predicate("missing.value > 1").evaluate(SCOPE) is False


@pytest.mark.parametrize(
    "source",
    [
        "",
        "paymentResult.status ===",
        "__import__('os').system('true')",
        "(a == 1",
        "a = 1",
        "a == 1 b",
        "   ",
        "\t\n",
        "a == @",
    ],
)
def test_invalid_expressions_are_rejected(source):
    with pytest.raises(PredicateError):
        compile_predicate(source)


def test_resolve_path_returns_default_for_missing_segments():
    assert resolve_path(SCOPE, "orderData.id") == "ORDER-001"
    assert resolve_path(SCOPE, "orderData.missing.deep") is None
    assert resolve_path(SCOPE, "items.5.sku", default="none") == "none"


def test_blank_expression_reports_empty():
    with pytest.raises(PredicateError, match="Empty expression"):
        compile_predicate("  \t ")
