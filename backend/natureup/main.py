from __future__ import annotations

import os
from typing import List

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse

from natureup.core.errors import NatureUpError, error_to_http
from natureup.core.nlu import parse_intent
from natureup.core.pipeline import DialogueOrchestrator
from natureup.core.store import InMemoryStore
from natureup.core.types import (
    AssistantRole,
    ChatRequest,
    ChatResponse,
    ConversationSession,
    ExcursionOutcome,
    ExcursionRecord,
    ExcursionRequest,
    IntentRequest,
    MetadataUpdateRequest,
    ParsedIntent,
    RetryRequest,
    SessionRequest,
    StoredMessage,
    TransitionRequest,
    TurnResult,
    UserProfile,
)
from natureup.graph.excursion_graph import ExcursionCreator


app = FastAPI(title="NatureUP API", default_response_class=ORJSONResponse)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

store = InMemoryStore()
orchestrator = DialogueOrchestrator(store)
excursions = ExcursionCreator(orchestrator)


@app.exception_handler(NatureUpError)
def natureup_error_handler(request: Request, exc: NatureUpError) -> ORJSONResponse:
    http = error_to_http(exc.to_info())
    return ORJSONResponse(status_code=http.status_code, content={"detail": http.detail})


def _chat_response(result: TurnResult) -> ChatResponse:
    if not result.ok:
        raise error_to_http(result.error)
    session = store.get_session(result.session_id)
    return ChatResponse(
        session_id=result.session_id,
        reply=result.reply,
        ready_to_create=result.ready_to_create,
        phase=session.phase,
        planning_step=result.planning_step,
        metadata=session.metadata.model_dump(mode="json"),
    )


@app.get("/health")
def health() -> dict:
    return {"status": "ok"}


@app.post("/sessions", response_model=ConversationSession)
def get_or_create_session(req: SessionRequest) -> ConversationSession:
    return orchestrator.get_or_create_session(req.user_id, req.role)


@app.get("/sessions/{session_id}", response_model=ConversationSession)
def get_session(session_id: str) -> ConversationSession:
    return store.get_session(session_id)


@app.get("/sessions/{session_id}/messages", response_model=List[StoredMessage])
def get_messages(session_id: str) -> List[StoredMessage]:
    return store.messages(session_id)


@app.post("/sessions/{session_id}/transition", response_model=ConversationSession)
def transition_session(session_id: str, req: TransitionRequest) -> ConversationSession:
    result = orchestrator.change_phase(session_id, req.phase, excursion_id=req.excursion_id)
    if not result.ok:
        raise error_to_http(result.error)
    return result.session


@app.patch("/sessions/{session_id}/metadata", response_model=ConversationSession)
def update_metadata(session_id: str, req: MetadataUpdateRequest) -> ConversationSession:
    try:
        return orchestrator.update_metadata(session_id, req.updates)
    except ValueError as ex:
        # pydantic ValidationError is a ValueError
        raise HTTPException(status_code=422, detail=str(ex)) from ex


@app.post("/sessions/{session_id}/clear", response_model=ConversationSession)
def clear_session(session_id: str) -> ConversationSession:
    return orchestrator.clear_session(session_id)


@app.post("/chat", response_model=ChatResponse)
def chat(req: ChatRequest) -> ChatResponse:
    if req.session_id:
        session = store.get_session(req.session_id)
    else:
        session = orchestrator.get_or_create_session(req.user_id, req.role or AssistantRole.health_coach)
    if req.plan_on_intent:
        orchestrator.begin_planning_if_requested(session.id, req.message)
    result = orchestrator.send_message(session.id, req.message, role=req.role, context_metadata=req.context)
    return _chat_response(result)


@app.post("/chat/retry", response_model=ChatResponse)
def retry(req: RetryRequest) -> ChatResponse:
    try:
        result = orchestrator.retry(req.session_id, role=req.role, context_metadata=req.context)
    except ValueError as ex:
        raise HTTPException(status_code=409, detail=str(ex)) from ex
    return _chat_response(result)


@app.post("/intent/parse", response_model=ParsedIntent, response_model_by_alias=True)
def intent_parse(req: IntentRequest) -> ParsedIntent:
    return parse_intent(req.text)


@app.put("/profiles/{user_id}", response_model=UserProfile)
def put_profile(user_id: str, profile: UserProfile) -> UserProfile:
    return store.save_profile(profile.model_copy(update={"user_id": user_id}))


@app.post("/excursions", response_model=ExcursionOutcome)
def create_excursion(req: ExcursionRequest) -> ExcursionOutcome:
    outcome = excursions.create(req)
    if not outcome.ok:
        raise error_to_http(outcome.error)
    return outcome


@app.get("/excursions/{excursion_id}", response_model=ExcursionRecord)
def get_excursion(excursion_id: str) -> ExcursionRecord:
    record = store.get_excursion(excursion_id)
    if record is None:
        raise HTTPException(status_code=404, detail=f"Excursion {excursion_id} not found")
    return record


# Local dev convenience: uvicorn entry point
if __name__ == "__main__":
    import uvicorn

    port = int(os.getenv("PORT", "8000"))
    uvicorn.run("natureup.main:app", host="0.0.0.0", port=port, reload=True)
