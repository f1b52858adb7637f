from sagaflow.contracts import PaymentCompleted, ShippingCompleted
from sagaflow.saga import steps


def test_payment_request_prices_by_quantity():
    request = steps.payment_request({"id": "ORDER-001", "quantity": 3, "customerName": "Ann"})
    assert request == {"orderId": "ORDER-001", "amount": 300, "customerName": "Ann"}
    assert steps.payment_request({"id": "ORDER-002"})["amount"] == 0


def test_product_id_falls_back_to_item():
    assert steps.product_id_of({"productId": "LAPTOP-001", "item": "Laptop"}) == "LAPTOP-001"
    assert steps.product_id_of({"item": "Laptop"}) == "Laptop"
    assert steps.product_id_of({}) is None


def test_missing_status_counts_as_success():
    assert steps.is_success(None)
    assert steps.is_success("completed")
    assert not steps.is_success("failed")


def test_event_contracts_accept_producer_field_names():
    payment = PaymentCompleted.model_validate({"orderId": "T1", "status": "completed", "extra": 1})
    assert payment.transaction_id == "T1"
    assert payment.model_extra == {"extra": 1}

    shipping = ShippingCompleted.model_validate(
        {"transactionId": "T1", "productId": "P1", "quantity": 2, "shippingId": "S1"}
    )
    assert (shipping.product_id, shipping.quantity, shipping.shipping_id) == ("P1", 2, "S1")


def test_fallback_command_carries_only_known_fields():
    event = PaymentCompleted.model_validate(
        {
            "transactionId": "T1",
            "quantity": 2,
            "shippingAddress": {"street": "1 Main St", "city": "Springfield", "zipCode": "12345"},
            "note": "x",
        }
    )
    assert steps.fallback_shipping_command(event) == {
        "id": "T1",
        "quantity": 2,
        "shippingAddress": {"street": "1 Main St", "city": "Springfield", "zipCode": "12345"},
    }
