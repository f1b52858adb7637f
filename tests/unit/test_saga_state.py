from sagaflow.saga import SagaState
from sagaflow.saga.state import SagaTracker


def test_happy_path_transitions():
    tracker = SagaTracker()
    for state in (
        SagaState.INITIATED,
        SagaState.PAYMENT_PENDING,
        SagaState.SHIPPING_PENDING,
        SagaState.INVENTORY_PENDING,
        SagaState.COMPLETED,
    ):
        assert tracker.advance("T1", state)
    assert tracker.state("T1") is SagaState.COMPLETED
    assert tracker.state("T1").is_terminal


def test_terminal_states_accept_no_transition():
    tracker = SagaTracker()
    tracker.advance("T1", SagaState.INITIATED)
    tracker.advance("T1", SagaState.FAILED)

    assert not tracker.advance("T1", SagaState.PAYMENT_PENDING)
    assert tracker.state("T1") is SagaState.FAILED


def test_illegal_transition_is_ignored():
    tracker = SagaTracker()
    tracker.advance("T1", SagaState.INITIATED)
    assert not tracker.advance("T1", SagaState.COMPLETED)
    assert tracker.state("T1") is SagaState.INITIATED


def test_unknown_transaction_may_enter_mid_saga():
    tracker = SagaTracker()
    assert tracker.state("T9") is None
    assert tracker.advance("T9", SagaState.SHIPPING_PENDING)


def test_tracker_is_bounded():
    tracker = SagaTracker(max_entries=2)
    for tid in ("T1", "T2", "T3"):
        tracker.advance(tid, SagaState.INITIATED)
    assert tracker.state("T1") is None
    assert tracker.state("T3") is SagaState.INITIATED
