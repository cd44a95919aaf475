import json
from pathlib import Path

import pytest

from natureup.core.errors import (
    ConfigurationError,
    ErrorCode,
    ErrorInfo,
    InvalidTransitionError,
    MalformedReplyError,
    NoCandidatesError,
    ProviderError,
    SessionNotFoundError,
    error_to_http,
)
from natureup.core.logger import SessionLogger
from natureup.core.types import AssistantRole, Phase


@pytest.mark.parametrize(
    "error,code,status",
    [
        (ConfigurationError("no key"), ErrorCode.configuration, 500),
        (ProviderError("down"), ErrorCode.network, 503),
        (MalformedReplyError("junk"), ErrorCode.malformed_reply, 502),
        (InvalidTransitionError("initial_chat", "excursion_guiding"), ErrorCode.invalid_transition, 409),
        (NoCandidatesError("none"), ErrorCode.no_candidates, 422),
        (SessionNotFoundError("s1"), ErrorCode.session_not_found, 404),
    ],
)
def test_error_taxonomy_maps_to_http(error, code, status):
    info = error.to_info()
    assert info.code == code
    http = error_to_http(info)
    assert http.status_code == status
    assert http.detail == {"code": code.value, "message": str(error)}


def test_invalid_transition_message_names_both_phases():
    error = InvalidTransitionError("initial_chat", "excursion_creation", "no excursion to link")
    assert str(error) == "Cannot move session from initial_chat to excursion_creation: no excursion to link"


def test_error_info_serializes_code_value():
    info = ErrorInfo(code=ErrorCode.network, message="down")
    assert info.model_dump(mode="json") == {"code": "NETWORK_ERROR", "message": "down"}


def _events(path: str):
    lines = Path(path).read_text(encoding="utf-8").strip().splitlines()
    return [json.loads(line) for line in lines]


def test_session_logger_writes_jsonl(tmp_path):
    logger = SessionLogger("abc", base_dir=str(tmp_path))
    logger.user_message("hi")
    logger.phase_transition("initial_chat", "excursion_planning", role="excursion_creator")
    logger.error("NETWORK_ERROR", "down")

    records = _events(logger.file_path)
    assert logger.file_path == str(tmp_path / "session_abc.jsonl")
    assert [r["event"] for r in records] == ["user_message", "phase_transition", "error"]
    assert records[1]["payload"] == {"from": "initial_chat", "to": "excursion_planning", "role": "excursion_creator"}
    assert records[0]["ts"].endswith("Z")
    assert all(r["session_id"] == "abc" for r in records)


def test_orchestrator_logs_a_full_turn(orchestrator, use_provider):
    session = orchestrator.get_or_create_session("log-u1", AssistantRole.health_coach)
    orchestrator.change_phase(session.id, Phase.excursion_planning)
    use_provider({"reply": "How long do you have?"}, ProviderError("down"))

    orchestrator.send_message(session.id, "plan a walk")
    orchestrator.send_message(session.id, "an hour")

    events = [r["event"] for r in _events(orchestrator.get_logger(session.id).file_path)]
    assert "phase_transition" in events
    assert "user_message" in events
    assert "assistant_message" in events
    assert "agent_step" in events
    assert events[-1] == "error"


def test_rejected_transition_is_logged(orchestrator):
    session = orchestrator.get_or_create_session("log-u2", AssistantRole.health_coach)
    orchestrator.change_phase(session.id, Phase.post_excursion_followup)
    records = _events(orchestrator.get_logger(session.id).file_path)
    assert records[-1]["event"] == "error"
    assert records[-1]["payload"]["code"] == "INVALID_TRANSITION"
