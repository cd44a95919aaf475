from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from .errors import ErrorInfo


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Phase(str, Enum):
    initial_chat = "initial_chat"
    excursion_planning = "excursion_planning"
    excursion_creation = "excursion_creation"
    excursion_guiding = "excursion_guiding"
    post_excursion_followup = "post_excursion_followup"


class AssistantRole(str, Enum):
    health_coach = "health_coach"
    excursion_creator = "excursion_creator"


PHASE_TO_ROLE: Dict[Phase, AssistantRole] = {
    Phase.initial_chat: AssistantRole.health_coach,
    Phase.excursion_planning: AssistantRole.excursion_creator,
    Phase.excursion_creation: AssistantRole.excursion_creator,
    Phase.excursion_guiding: AssistantRole.excursion_creator,
    Phase.post_excursion_followup: AssistantRole.health_coach,
}


class PlanningStep(str, Enum):
    ask_duration = "ask_duration"
    ask_location = "ask_location"
    ask_confirmation = "ask_confirmation"
    await_go_ahead = "await_go_ahead"


# ---------------------------------------------------------------------------
# Messages
# ---------------------------------------------------------------------------

MessageRole = Literal["user", "assistant", "system"]


class Message(BaseModel):
    role: MessageRole = "assistant"
    content: str


class StoredMessage(Message):
    id: str
    session_id: str
    created_at: datetime = Field(default_factory=utcnow)
    message_type: Literal["text", "voice"] = "text"
    audio_url: Optional[str] = None
    audio_duration_ms: Optional[int] = None
    transcript: Optional[str] = None


# ---------------------------------------------------------------------------
# Session metadata, one variant per phase
# ---------------------------------------------------------------------------


class _PhaseMetadata(BaseModel):
    # Unknown keys are kept so the bag stays open for callers.
    model_config = ConfigDict(extra="allow")


class InitialChatMetadata(_PhaseMetadata):
    pass


class PlanningMetadata(_PhaseMetadata):
    excursion_step: str = "collecting_requirements"
    duration_minutes: Optional[int] = None
    location_preference: Optional[str] = None
    asked_confirmation: bool = False


class CreationMetadata(_PhaseMetadata):
    excursion_id: str
    modification_count: int = 0


class GuidingMetadata(_PhaseMetadata):
    excursion_id: str
    start_time: datetime
    current_step: int = 0
    completion_percentage: float = 0


class FollowupMetadata(_PhaseMetadata):
    excursion_id: str
    completed_at: datetime
    feedback_collected: bool = False


SessionMetadata = Union[PlanningMetadata, CreationMetadata, GuidingMetadata, FollowupMetadata, InitialChatMetadata]

# The session phase, not the bag itself, decides which shape applies.
METADATA_TYPES: Dict[Phase, type[_PhaseMetadata]] = {
    Phase.initial_chat: InitialChatMetadata,
    Phase.excursion_planning: PlanningMetadata,
    Phase.excursion_creation: CreationMetadata,
    Phase.excursion_guiding: GuidingMetadata,
    Phase.post_excursion_followup: FollowupMetadata,
}


class ConversationSession(BaseModel):
    id: str
    user_id: Optional[str] = None
    title: str = "New Conversation"
    phase: Phase = Phase.initial_chat
    metadata: SessionMetadata
    linked_excursion_id: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @model_validator(mode="before")
    @classmethod
    def _metadata_for_phase(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        shape = METADATA_TYPES[Phase(data.get("phase", Phase.initial_chat))]
        metadata = data.get("metadata")
        if isinstance(metadata, shape):
            return data
        if isinstance(metadata, BaseModel):
            metadata = metadata.model_dump()
        return {**data, "metadata": shape.model_validate(metadata or {})}

    @computed_field  # type: ignore[misc]
    @property
    def role(self) -> AssistantRole:
        return PHASE_TO_ROLE[self.phase]


class UserProfile(BaseModel):
    user_id: str
    full_name: Optional[str] = None
    fitness_level: Optional[str] = None
    mobility_level: Optional[str] = None
    activity_preferences: List[str] = Field(default_factory=list)
    therapy_preferences: List[str] = Field(default_factory=list)
    health_goals: List[str] = Field(default_factory=list)
    risk_tolerance: Optional[str] = None


# ---------------------------------------------------------------------------
# Intent parsing
# ---------------------------------------------------------------------------

ProximityBias = Literal["none", "nearby", "near_here", "within_distance"]
IntentDifficulty = Literal["easy", "medium", "hard"]


class ParsedIntent(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    raw_text: str
    duration_minutes: Optional[int] = None
    proximity_bias: ProximityBias = "none"
    proximity_distance_km: Optional[float] = None
    activities: List[str] = Field(default_factory=list)
    difficulty: Optional[IntentDifficulty] = None
    therapeutic_goals: List[str] = Field(default_factory=list)
    confidence: float = 0.0
    matches: Dict[str, str] = Field(default_factory=dict)


class LocationPreference(BaseModel):
    wants_suggestions: bool = False
    specific_location: Optional[str] = None

    def as_metadata_value(self) -> Optional[str]:
        if self.wants_suggestions:
            return "suggestions"
        return self.specific_location


# ---------------------------------------------------------------------------
# Completion endpoint contract
# ---------------------------------------------------------------------------


class CompletionRequest(BaseModel):
    role_or_action: str
    input: Dict[str, Any]
    context: Dict[str, Any] = Field(default_factory=dict)
    conversation_history: List[Message] = Field(default_factory=list)


class CompletionResponse(BaseModel):
    ok: bool
    result: Optional[Dict[str, Any]] = None
    error: Optional[ErrorInfo] = None


class AssistantReply(BaseModel):
    """Structured reply expected from every chat completion."""

    model_config = ConfigDict(populate_by_name=True)

    reply: str
    ready_to_create: bool = Field(default=False, alias="readyToCreate")
    asked_confirmation: Optional[bool] = Field(default=None, alias="askedConfirmation")

    @field_validator("reply")
    @classmethod
    def _reply_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("reply is empty")
        return v.strip()

    @field_validator("ready_to_create", mode="before")
    @classmethod
    def _absent_means_not_ready(cls, v: Any) -> Any:
        return False if v is None else v


class TurnResult(BaseModel):
    ok: bool
    session_id: str
    reply: str = ""
    ready_to_create: bool = False
    phase: Optional[Phase] = None
    planning_step: Optional[PlanningStep] = None
    error: Optional[ErrorInfo] = None


class PhaseChangeResult(BaseModel):
    ok: bool
    session: Optional[ConversationSession] = None
    error: Optional[ErrorInfo] = None


# ---------------------------------------------------------------------------
# Places, weather and plans
# ---------------------------------------------------------------------------


class Coordinates(BaseModel):
    lat: float
    lng: float


class Candidate(BaseModel):
    name: str
    lat: float
    lng: float
    type: str = "park"
    difficulty: Optional[str] = None
    star_rating: Optional[float] = None
    distance_m: Optional[float] = None


class WeatherSnapshot(BaseModel):
    temperature: float
    description: str
    feels_like: Optional[float] = None
    humidity: Optional[float] = None
    wind_speed: Optional[float] = None
    location: Optional[str] = None


Level = Literal["low", "medium", "high"]
PlanDifficulty = Literal["easy", "moderate", "challenging"]


class PlanPreferences(BaseModel):
    activities: List[str] = Field(default_factory=list)
    therapeutic_goals: List[str] = Field(default_factory=list)
    risk_tolerance: Level = "medium"
    energy_level: Level = "medium"
    additional_notes: str = ""
    weather: Optional[WeatherSnapshot] = None


class PlanRequest(BaseModel):
    start: Coordinates
    duration_minutes: int = Field(ge=1)
    preferences: PlanPreferences = Field(default_factory=PlanPreferences)
    candidates: List[Candidate] = Field(default_factory=list)


class Destination(BaseModel):
    name: str
    lat: float
    lng: float


class ExcursionPlan(BaseModel):
    title: str
    description: str
    steps: List[str] = Field(min_length=1)
    destination: Destination
    start_location: Coordinates
    duration_minutes: int
    distance_km: float
    difficulty: PlanDifficulty
    waypoints: List[Coordinates]


class Review(BaseModel):
    approved: bool
    issues: List[str] = Field(default_factory=list)
    score: float = 0.0


class RouteData(BaseModel):
    steps: List[str]
    start_location: Coordinates
    destination: Destination
    waypoints: List[Coordinates]


class ExcursionRecord(BaseModel):
    id: str
    user_id: Optional[str] = None
    session_id: Optional[str] = None
    title: str
    description: str
    route_data: RouteData
    duration_minutes: int
    distance_km: float
    difficulty: PlanDifficulty
    created_at: datetime = Field(default_factory=utcnow)


class PreloadedLocation(BaseModel):
    lat: float
    lng: float
    nearby_spots: List[Candidate] = Field(default_factory=list)
    loaded_at: datetime = Field(default_factory=utcnow)

    @field_validator("loaded_at")
    @classmethod
    def _assume_utc(cls, v: datetime) -> datetime:
        # Clients may send ISO timestamps without an offset.
        return v if v.tzinfo is not None else v.replace(tzinfo=timezone.utc)


class ExcursionRequest(BaseModel):
    session_id: Optional[str] = None
    user_id: Optional[str] = None
    location: Optional[Coordinates] = None
    preloaded: Optional[PreloadedLocation] = None
    duration_minutes: Optional[int] = Field(default=None, ge=1)
    preferences: PlanPreferences = Field(default_factory=PlanPreferences)


class ExcursionOutcome(BaseModel):
    ok: bool
    excursion_id: Optional[str] = None
    plan: Optional[ExcursionPlan] = None
    weather: Optional[WeatherSnapshot] = None
    error: Optional[ErrorInfo] = None


# ---------------------------------------------------------------------------
# API payloads
# ---------------------------------------------------------------------------


class SessionRequest(BaseModel):
    user_id: Optional[str] = None
    role: AssistantRole = AssistantRole.health_coach


class ChatRequest(BaseModel):
    session_id: Optional[str] = None
    user_id: Optional[str] = None
    message: str
    role: Optional[AssistantRole] = None
    context: Optional[Dict[str, Any]] = None
    plan_on_intent: bool = False


class RetryRequest(BaseModel):
    session_id: str
    role: Optional[AssistantRole] = None
    context: Optional[Dict[str, Any]] = None


class ChatResponse(BaseModel):
    session_id: str
    reply: str
    ready_to_create: bool = False
    phase: Phase
    planning_step: Optional[PlanningStep] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)


class TransitionRequest(BaseModel):
    phase: Phase
    excursion_id: Optional[str] = None


class MetadataUpdateRequest(BaseModel):
    updates: Dict[str, Any]


class IntentRequest(BaseModel):
    text: str
