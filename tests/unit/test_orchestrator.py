"""Tests for the session orchestration state machine."""

import pytest

from specsync.errors import (
    InvalidInteraction,
    InvalidState,
    OrchestrationError,
    RetryLimitExceeded,
    SessionComplete,
)
from specsync.sessions.models import Command, Interaction, Result, ResultStatus, Session
from specsync.sessions.orchestrator import Orchestrator

STEPS = ["init", "generate", "validate", "revise", "finalize"]


def _orchestrator(max_attempts=5) -> Orchestrator:
    return Orchestrator.linear(STEPS, remediations={"validate": "revise"}, max_attempts=max_attempts)


def _interaction(step: str, status=ResultStatus.OK) -> Interaction:
    result = None
    if status is not None:
        result = Result(status=status)
    return Interaction(step=step, command=Command.new(step, "noop"), result=result)


def _session(*history) -> Session:
    interactions = []
    for item in history:
        step, status = item if isinstance(item, tuple) else (item, ResultStatus.OK)
        interactions.append(_interaction(step, status))
    return Session(type="test", interactions=interactions)


def test_steps_are_returned_in_registration_order():
    assert _orchestrator().steps() == STEPS
    assert _orchestrator().terminal_step == "finalize"


def test_first_step_when_no_interactions():
    assert _orchestrator().next_step(_session()) == "init"


def test_success_advances_linearly_and_skips_remediation_step():
    orchestrator = _orchestrator()
    assert orchestrator.next_step(_session("init")) == "generate"
    assert orchestrator.next_step(_session("init", "generate")) == "validate"
    assert orchestrator.next_step(_session("init", "generate", "validate")) == "finalize"


def test_validation_failure_routes_to_revise_and_back():
    orchestrator = _orchestrator()
    failed = _session("init", "generate", ("validate", ResultStatus.ERROR))
    assert orchestrator.next_step(failed) == "revise"

    revised = _session("init", "generate", ("validate", ResultStatus.ERROR), "revise")
    assert orchestrator.next_step(revised) == "validate"


def test_failure_without_remediation_retries_same_step():
    orchestrator = _orchestrator()
    assert orchestrator.next_step(_session(("init", ResultStatus.ERROR))) == "init"
    assert orchestrator.next_step(_session("init", ("generate", ResultStatus.ERROR))) == "generate"


def test_terminal_success_completes_session():
    orchestrator = _orchestrator()
    session = _session("init", "generate", "validate", "finalize")

    assert orchestrator.is_complete(session)
    with pytest.raises(SessionComplete) as excinfo:
        orchestrator.next_step(session)
    assert excinfo.value.code == "session_complete"
    assert not isinstance(excinfo.value, OrchestrationError)


def test_terminal_failure_is_not_complete():
    orchestrator = _orchestrator()
    session = _session("init", "generate", "validate", ("finalize", ResultStatus.ERROR))

    assert not orchestrator.is_complete(session)
    assert orchestrator.next_step(session) == "finalize"


def test_pending_interaction_is_skipped():
    orchestrator = _orchestrator()
    session = _session("init", "generate")
    session.interactions.append(_interaction("validate", status=None))

    assert orchestrator.next_step(session) == "validate"
    assert not orchestrator.is_complete(session)


def test_unregistered_step_is_invalid_interaction():
    session = _session("init", "mystery")

    with pytest.raises(InvalidInteraction) as excinfo:
        _orchestrator().next_step(session)
    assert excinfo.value.code == "invalid_interaction"
    assert excinfo.value.step == "mystery"


def test_missing_transition_is_invalid_state():
    orchestrator = Orchestrator(["a", "b"], {("a", ResultStatus.OK): "b"})
    session = Session(type="test", interactions=[_interaction("a", ResultStatus.ERROR)])

    with pytest.raises(InvalidState) as excinfo:
        orchestrator.next_step(session)
    assert excinfo.value.code == "invalid_state"


def test_retry_cap_stops_validate_revise_loop():
    orchestrator = _orchestrator(max_attempts=2)
    session = _session(
        "init",
        "generate",
        ("validate", ResultStatus.ERROR),
        "revise",
        ("validate", ResultStatus.ERROR),
    )
    assert orchestrator.next_step(session) == "revise"

    session.interactions.append(_interaction("revise"))
    with pytest.raises(RetryLimitExceeded) as excinfo:
        orchestrator.next_step(session)
    assert excinfo.value.step == "validate"
    assert excinfo.value.attempts == 2


def test_retry_cap_can_be_disabled():
    orchestrator = _orchestrator(max_attempts=None)
    history = ["init", "generate"]
    for _ in range(10):
        history += [("validate", ResultStatus.ERROR), "revise"]

    assert orchestrator.next_step(_session(*history)) == "validate"


def test_constructor_rejects_unknown_transition_targets():
    with pytest.raises(ValueError):
        Orchestrator(["a"], {("a", ResultStatus.OK): "b"})
    with pytest.raises(ValueError):
        Orchestrator([], {})
    with pytest.raises(ValueError):
        Orchestrator(["a", "a"], {})
