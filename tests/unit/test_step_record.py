"""Step contract tests."""

import pytest
from pydantic import ValidationError

from taleflow.contracts import Capability, StepRecord, StepSpec, StepStatus
from taleflow.errors import FailureReason, InvalidTransitionError


def _record() -> StepRecord:
    spec = StepSpec(capability="image", provider="openai-dalle", payload={"prompt": "owl"})
    return StepRecord.from_spec("wf-1", 1, spec)


def test_record_from_spec():
    record = _record()
    assert record.id == "wf-1-1"
    assert record.capability is Capability.IMAGE
    assert record.status is StepStatus.PENDING
    assert record.payload == {"prompt": "owl"}


def test_spec_is_immutable():
    spec = StepSpec(capability="text", provider="ovh-ai")
    with pytest.raises(ValidationError):
        spec.provider = "openai-gpt"


def test_spec_rejects_unknown_capability():
    with pytest.raises(ValidationError):
        StepSpec(capability="video", provider="x")


def test_status_moves_forward_only():
    record = _record()
    with pytest.raises(InvalidTransitionError):
        record.mark_completed("too early")

    record.mark_running()
    assert record.started_at is not None
    record.mark_completed("image-url")
    assert record.status is StepStatus.COMPLETED
    assert record.duration is not None and record.duration >= 0

    with pytest.raises(InvalidTransitionError):
        record.mark_failed("late", FailureReason.ERROR)
    with pytest.raises(InvalidTransitionError):
        record.mark_running()


def test_terminal_record_is_frozen():
    record = _record()
    record.mark_running()
    record.switch_provider("ovh-sdxl")
    record.mark_failed("boom", FailureReason.TIMEOUT)

    assert record.provider == "ovh-sdxl"
    assert record.failure_reason is FailureReason.TIMEOUT
    with pytest.raises(InvalidTransitionError):
        record.switch_provider("openai-dalle")
    with pytest.raises(InvalidTransitionError):
        record.record_attempt()
