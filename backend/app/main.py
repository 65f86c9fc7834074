"""
Hinglish Meal Assistant - FastAPI Application

Main entry point for the meal assistant backend API.
Exposes meal logging from spoken Hinglish, the cultural context helpers
and conversation session management.
"""

import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Optional

import opik
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from app.agents import CulturalContextResolver, HinglishProcessor
from app.config import get_settings
from app.core.conversation import (
    ConversationSession,
    ConversationSessionManager,
    ConversationState,
    ConversationTurn,
    PreferenceValue,
    TurnType,
)
from app.core.errors import InvalidStateTransitionError, SessionNotFoundError
from app.core.meal_assembler import MealAssembler
from app.core.state import (
    ClarificationNeeded,
    CookingMethod,
    FoodExtractionResult,
    MealLogged,
    MealOutcome,
    PortionSize,
    RegionalVariation,
)

API_VERSION = "0.1.0"

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

hinglish_processor = HinglishProcessor()
cultural_resolver = CulturalContextResolver()
meal_assembler = MealAssembler(processor=hinglish_processor, cultural_resolver=cultural_resolver)
session_manager = ConversationSessionManager(settings=settings)


async def _session_housekeeping(interval_seconds: int):
    """Periodically end idle sessions and evict old ended ones."""
    while True:
        await asyncio.sleep(interval_seconds)
        expired = session_manager.cleanup_expired_sessions()
        evicted = session_manager.evict_ended_sessions()
        logger.debug(f"Session sweep: {len(expired)} expired, {evicted} evicted")


# === Lifespan Management ===
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize and cleanup application resources."""
    settings = get_settings()

    # Startup
    logger.info("🚀 Starting Hinglish Meal Assistant Backend")
    logger.info(f"Environment: {settings.environment}")

    key_status = settings.validate_required_keys()
    for key, configured in key_status.items():
        status = "✅" if configured else "⚠️ Missing"
        logger.info(f"  {key}: {status}")

    if settings.opik_api_key:
        try:
            opik.configure(api_key=settings.opik_api_key)
            logger.info(f"📊 Opik tracing enabled - Project: {settings.opik_project_name}")
        except Exception as e:
            logger.warning(f"⚠️ Opik initialization failed: {e}")

    housekeeping = asyncio.create_task(
        _session_housekeeping(settings.session_cleanup_interval_seconds)
    )

    yield

    # Shutdown
    housekeeping.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await housekeeping
    logger.info("👋 Shutting down Hinglish Meal Assistant Backend")


# === FastAPI Application ===
app = FastAPI(
    title="Hinglish Meal Assistant",
    description="Voice-first meal logging for Hinglish speakers",
    version=API_VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # In production, restrict to specific origins
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# === Error Mapping ===
@app.exception_handler(SessionNotFoundError)
async def session_not_found_handler(request: Request, exc: SessionNotFoundError):
    return JSONResponse(status_code=404, content={"detail": exc.message, "session_id": exc.session_id})


@app.exception_handler(InvalidStateTransitionError)
async def invalid_transition_handler(request: Request, exc: InvalidStateTransitionError):
    return JSONResponse(status_code=409, content={"detail": exc.message, "session_id": exc.session_id})


# === Request/Response Models ===
class HealthResponse(BaseModel):
    status: str
    timestamp: str
    version: str
    api_keys_configured: dict[str, bool]
    active_sessions: int


class ExtractRequest(BaseModel):
    text: str = Field(..., description="Utterance in Hinglish or English")


class ExtractResponse(BaseModel):
    extraction: FoodExtractionResult
    clarification_questions: list[str]


class MealLogRequest(BaseModel):
    utterance: str = Field(..., min_length=1, description="What the user said about the meal")
    user_id: str = Field(default="demo_user")
    session_id: Optional[str] = Field(default=None, description="Conversation to attach the meal to")
    clarifications: dict[str, str] = Field(
        default_factory=dict,
        description="Answers to earlier clarification questions, e.g. {'dal': 'moong dal'}"
    )
    timestamp: Optional[datetime] = None
    location: Optional[str] = None


class PortionRequest(BaseModel):
    food_name: str
    description: str = Field(..., description="Spoken portion, e.g. '2 katori'")


class CookingStyleRequest(BaseModel):
    description: str


class StartSessionRequest(BaseModel):
    user_id: Optional[str] = None
    user_preferences: dict[str, PreferenceValue] = Field(default_factory=dict)
    nutrition_goals: dict[str, float] = Field(default_factory=dict)


class TurnRequest(BaseModel):
    user_input: str
    system_response: str = ""
    type: TurnType
    metadata: dict[str, Any] = Field(default_factory=dict)


class InterruptRequest(BaseModel):
    reason: Optional[str] = None


class ResumeResponse(BaseModel):
    message: str
    session: ConversationSession


class RespondRequest(BaseModel):
    user_input: str
    base_response: str


class RespondResponse(BaseModel):
    response: str


# === Endpoints ===
@app.get("/", tags=["root"])
async def root():
    """Root endpoint with API information."""
    return {
        "name": "Hinglish Meal Assistant",
        "version": API_VERSION,
        "description": "Log meals by speaking Hinglish",
        "docs_url": "/docs",
    }


@app.get("/health", response_model=HealthResponse, tags=["health"])
async def health_check():
    """Health check endpoint for monitoring."""
    return HealthResponse(
        status="ok",
        timestamp=datetime.now(timezone.utc).isoformat(),
        version=API_VERSION,
        api_keys_configured=get_settings().validate_required_keys(),
        active_sessions=session_manager.active_session_count,
    )


@app.post("/meals/extract", response_model=ExtractResponse, tags=["meals"])
async def extract_foods(request: ExtractRequest):
    """Extract food items from an utterance without logging anything."""
    extraction = hinglish_processor.extract_food_items(request.text)
    questions = meal_assembler.ambiguity_resolver.generate_clarification_questions(extraction.ambiguities)
    return ExtractResponse(extraction=extraction, clarification_questions=questions)


@app.post("/meals/log", response_model=MealOutcome, tags=["meals"])
async def log_meal(request: MealLogRequest):
    """
    Log a meal from a spoken description.

    Returns one of three outcomes, told apart by ``kind``:
    - **meal_logged**: the meal with totals and a spoken confirmation
    - **clarification_needed**: questions to ask before the meal can be logged
    - **meal_not_understood**: nothing usable was found

    When ``session_id`` is given the turn is recorded in that conversation
    and a logged meal becomes its current meal.
    """
    if request.session_id:
        session = _require_session(request.session_id)
        if session.state == ConversationState.ENDED:
            raise InvalidStateTransitionError(
                request.session_id, session.state.value, ConversationState.ACTIVE.value
            )

    outcome = await meal_assembler.assemble_meal(
        request.utterance,
        user_id=request.user_id,
        clarifications=request.clarifications,
        timestamp=request.timestamp,
        location=request.location,
    )

    if request.session_id:
        _record_meal_turn(request.session_id, request.utterance, outcome)

    return outcome


def _record_meal_turn(session_id: str, utterance: str, outcome: MealOutcome):
    # The turn goes first so the logged meal, not the bare turn text, ends up as the current meal
    if isinstance(outcome, MealLogged):
        response, turn_type = outcome.confirmation, TurnType.MEAL_LOGGING
    elif isinstance(outcome, ClarificationNeeded):
        response, turn_type = " ".join(outcome.questions), TurnType.CLARIFICATION
    else:
        response, turn_type = outcome.message, TurnType.MEAL_LOGGING

    session_manager.add_conversation_turn(session_id, ConversationTurn(
        user_input=utterance,
        system_response=response,
        type=turn_type,
        metadata={"outcome": outcome.kind},
    ))

    if isinstance(outcome, MealLogged):
        session_manager.add_meal_to_context(session_id, outcome.meal)


@app.post("/cultural/portion", response_model=PortionSize, tags=["cultural"])
async def estimate_portion(request: PortionRequest):
    """Convert an Indian portion description to grams."""
    return cultural_resolver.estimate_portion(request.food_name, request.description)


@app.post("/cultural/cooking-style", response_model=CookingMethod, tags=["cultural"])
async def identify_cooking_style(request: CookingStyleRequest):
    """Identify the cooking method named in a description."""
    return cultural_resolver.identify_cooking_style(request.description)


@app.get("/cultural/region", response_model=RegionalVariation, tags=["cultural"])
async def regional_context(location: str = "", dish: str = ""):
    """Regional cooking profile for a dish at a location."""
    if not dish:
        raise HTTPException(status_code=400, detail="dish is required")
    return cultural_resolver.get_regional_context(location or settings.default_region_location, dish)


@app.post("/sessions", response_model=ConversationSession, status_code=201, tags=["sessions"])
async def start_session(request: StartSessionRequest):
    """Start a conversation session."""
    session_id = session_manager.start_session(
        user_id=request.user_id,
        user_preferences=request.user_preferences,
        nutrition_goals=request.nutrition_goals,
    )
    return _require_session(session_id)


@app.get("/sessions/{session_id}", response_model=ConversationSession, tags=["sessions"])
async def get_session(session_id: str):
    return _require_session(session_id)


@app.post("/sessions/{session_id}/turns", response_model=ConversationTurn, tags=["sessions"])
async def add_turn(session_id: str, request: TurnRequest):
    """Record a conversation turn."""
    turn = ConversationTurn(
        user_input=request.user_input,
        system_response=request.system_response,
        type=request.type,
        metadata=request.metadata,
    )
    session_manager.add_conversation_turn(session_id, turn)
    return turn


@app.post("/sessions/{session_id}/interrupt", response_model=ConversationSession, tags=["sessions"])
async def interrupt_session(session_id: str, request: InterruptRequest):
    """Mark a conversation interrupted (call dropped, user walked away...)."""
    _require_session(session_id)
    session_manager.handle_interruption(session_id, reason=request.reason)
    return _require_session(session_id)


@app.post("/sessions/{session_id}/resume", response_model=ResumeResponse, tags=["sessions"])
async def resume_session(session_id: str):
    """Resume an interrupted conversation."""
    message = session_manager.resume_conversation(session_id)
    return ResumeResponse(message=message, session=_require_session(session_id))


@app.post("/sessions/{session_id}/respond", response_model=RespondResponse, tags=["sessions"])
async def contextual_response(session_id: str, request: RespondRequest):
    """Enrich a response with what the conversation already knows."""
    _require_session(session_id)
    response = session_manager.generate_contextual_response(
        session_id, request.user_input, request.base_response
    )
    return RespondResponse(response=response)


@app.delete("/sessions/{session_id}", response_model=ConversationSession, tags=["sessions"])
async def end_session(session_id: str):
    """End a conversation session."""
    return session_manager.end_session(session_id)


def _require_session(session_id: str) -> ConversationSession:
    session = session_manager.get_session(session_id)
    if session is None:
        raise SessionNotFoundError(session_id)
    return session


# === Run with Uvicorn ===
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "app.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug,
    )
