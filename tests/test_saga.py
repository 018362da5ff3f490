import pytest

from clientdesk.core.saga import Saga, SagaStepFailed


def test_steps_run_in_order_and_results_are_keyed_by_name():
    calls = []
    saga = Saga("demo")\
        .add("first", lambda: calls.append("first") or 1)\
        .add("second", lambda: calls.append("second") or 2)

    results = saga.run()

    assert calls == ["first", "second"]
    assert results == {"first": 1, "second": 2}


def test_failure_compensates_completed_steps_in_reverse_order():
    undone = []

    def boom():
        raise RuntimeError("store unavailable")

    saga = Saga("demo")\
        .add("a", lambda: "A", compensate=lambda result: undone.append(result))\
        .add("b", lambda: "B", compensate=lambda result: undone.append(result))\
        .add("c", boom, compensate=lambda result: undone.append("never"))

    with pytest.raises(SagaStepFailed) as excinfo:
        saga.run()

    assert excinfo.value.step == "c"
    assert isinstance(excinfo.value.error, RuntimeError)
    assert undone == ["B", "A"]


def test_best_effort_failure_does_not_abort():
    def flaky():
        raise OSError("disk gone")

    results = Saga("demo")\
        .add("record", lambda: "saved")\
        .add("files", flaky, best_effort=True)\
        .add("after", lambda: "ran")\
        .run()

    assert results == {"record": "saved", "files": None, "after": "ran"}


def test_failing_compensation_does_not_hide_original_error():
    def bad_undo(result):
        raise RuntimeError("undo failed")

    def fail():
        raise ValueError("step failed")

    saga = Saga("demo").add("a", lambda: 1, compensate=bad_undo).add("b", fail)

    with pytest.raises(SagaStepFailed) as excinfo:
        saga.run()

    assert excinfo.value.step == "b"
    assert str(excinfo.value.error) == "step failed"
