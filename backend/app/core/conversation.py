"""
Hinglish Meal Assistant - Conversation Session Management

Keeps the state of a spoken conversation across turns: what the user
recently ate, what they are talking about, their preferences, and
whether the conversation was interrupted. Sessions move through a small
state machine:

    active -> interrupted -> active
    active -> paused
    active | interrupted | paused -> ended
"""

import logging
import re
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Callable, Iterator, Optional, Union
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from app.config import Settings, get_settings
from app.core.errors import InvalidStateTransitionError, SessionNotFoundError
from app.core.session_store import InMemorySessionStore, SessionStore
from app.core.state import MealData, MealType
from app.core.vocabulary import (
    FOLLOW_UP_INDICATORS,
    MEAL_KEYWORDS,
    NUTRITION_TOPICS,
    TOPIC_KEYWORDS,
)

logger = logging.getLogger(__name__)


class ConversationState(str, Enum):
    """Lifecycle state of a conversation session."""
    ACTIVE = "active"
    INTERRUPTED = "interrupted"
    PAUSED = "paused"
    ENDED = "ended"


class TurnType(str, Enum):
    """What a single conversation turn was about."""
    MEAL_LOGGING = "meal_logging"
    NUTRITION_QUERY = "nutrition_query"
    RECOMMENDATION = "recommendation"
    CLARIFICATION = "clarification"
    GREETING = "greeting"
    FAREWELL = "farewell"


ALLOWED_TRANSITIONS: dict[ConversationState, frozenset[ConversationState]] = {
    ConversationState.ACTIVE: frozenset({
        ConversationState.INTERRUPTED,
        ConversationState.PAUSED,
        ConversationState.ENDED,
    }),
    ConversationState.INTERRUPTED: frozenset({ConversationState.ACTIVE, ConversationState.ENDED}),
    ConversationState.PAUSED: frozenset({ConversationState.ENDED}),
    ConversationState.ENDED: frozenset(),
}

PreferenceValue = Union[bool, int, float, str]

RECENT_TURNS_FOR_CONTEXT = 3

QUICK_RESUME = timedelta(minutes=2)
SHORT_RESUME = timedelta(minutes=10)

RESUME_QUICK_WITH_MEAL = (
    "Haan, hum aapke meal ke baare mein baat kar rahe the. Kya aur puchna hai? "
    "(Yes, we were talking about your meal. What else would you like to know?)"
)
RESUME_QUICK = "Haan, aap kya keh rahe the? (Yes, what were you saying?)"
RESUME_SHORT_WITH_MEAL = (
    "Acha, hum aapke meal ke baare mein baat kar rahe the. Kya aur puchna hai? "
    "(Okay, we were talking about your meal. What else would you like to know?)"
)
RESUME_SHORT = "Koi baat nahi, aap kya jaanna chahte hain? (No problem, what would you like to know?)"
RESUME_GREETING = (
    "Namaste! Main aapka nutrition assistant hun. Aaj kya khaya aapne? "
    "(Hello! I'm your nutrition assistant. What did you eat today?)"
)

PROTEIN_FOLLOW_UP = (
    "Protein ke liye aap dal, paneer, ya chicken le sakte hain. "
    "(For protein, you can have dal, paneer, or chicken.)"
)
VEGETARIAN_SUGGESTION = (
    "Vegetarian options ke liye main aapko suggest kar sakta hun. "
    "(I can suggest vegetarian options for you.)"
)


def _word_pattern(phrases) -> re.Pattern[str]:
    alternation = "|".join(re.escape(p) for p in phrases)
    return re.compile(rf"\b(?:{alternation})\b")


_FOLLOW_UP = _word_pattern(FOLLOW_UP_INDICATORS)
_MEAL_RELATED = _word_pattern(MEAL_KEYWORDS)
_MEAL_TYPE_WORDS = _word_pattern(m.value for m in MealType)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# === Conversation records ===

class MealContext(BaseModel):
    """The meal a conversation is currently about."""
    meal_id: Optional[str] = None
    meal_type: Optional[MealType] = None
    description: str = ""
    food_names: list[str] = Field(default_factory=list)
    total_calories: Optional[float] = None
    timestamp: datetime

    @classmethod
    def from_meal(cls, meal: MealData) -> "MealContext":
        return cls(
            meal_id=meal.id,
            meal_type=meal.meal_type,
            description=meal.voice_description,
            food_names=[food.name for food in meal.foods],
            total_calories=meal.nutrition.total_calories,
            timestamp=meal.timestamp,
        )


class ConversationContext(BaseModel):
    """Everything remembered about a conversation between turns."""
    user_preferences: dict[str, PreferenceValue] = Field(default_factory=dict)
    current_meal_context: Optional[MealContext] = None
    recent_meals: list[MealContext] = Field(default_factory=list, description="Newest first")
    nutrition_goals: dict[str, float] = Field(default_factory=dict)
    active_topics: list[str] = Field(default_factory=list, description="Newest first")
    conversation_state: ConversationState = ConversationState.ACTIVE
    interruption_reason: Optional[str] = None
    interruption_time: Optional[datetime] = None


class ConversationSession(BaseModel):
    """A conversation with one user."""
    session_id: str = Field(default_factory=lambda: str(uuid4()))
    user_id: Optional[str] = None
    start_time: datetime
    end_time: Optional[datetime] = None
    last_updated: Optional[datetime] = None
    context: ConversationContext = Field(default_factory=ConversationContext)

    @property
    def state(self) -> ConversationState:
        return self.context.conversation_state

    @property
    def last_activity(self) -> datetime:
        return self.last_updated or self.start_time


class ConversationTurn(BaseModel):
    """One exchange: what the user said and what was answered."""
    model_config = ConfigDict(frozen=True)

    turn_id: str = Field(default_factory=lambda: str(uuid4()))
    timestamp: datetime = Field(default_factory=_utcnow)
    user_input: str
    system_response: str = ""
    type: TurnType
    metadata: dict[str, Any] = Field(default_factory=dict)


# === Session manager ===

class ConversationSessionManager:
    """
    Owns conversation sessions and their context.

    Every operation that changes a session holds that session's lock, so
    concurrent requests for one session are applied one at a time while
    different sessions proceed independently.

    Example:
        manager = ConversationSessionManager()
        session_id = manager.start_session(user_id="user_123")
        manager.add_conversation_turn(session_id, ConversationTurn(
            user_input="Maine lunch mein dal chawal khaya",
            system_response="Aapka lunch log ho gaya",
            type=TurnType.MEAL_LOGGING,
        ))
    """

    def __init__(
        self,
        store: Optional[SessionStore] = None,
        settings: Optional[Settings] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.store = store if store is not None else InMemorySessionStore()
        self.settings = settings or get_settings()
        self._clock = clock

    # === Lifecycle ===

    def start_session(
        self,
        user_id: Optional[str] = None,
        user_preferences: Optional[dict[str, PreferenceValue]] = None,
        nutrition_goals: Optional[dict[str, float]] = None,
        recent_meals: Optional[list[MealContext]] = None,
    ) -> str:
        """Create a new active session and return its id."""
        now = self._clock()
        session = ConversationSession(
            user_id=user_id,
            start_time=now,
            last_updated=now,
            context=ConversationContext(
                user_preferences=dict(user_preferences or {}),
                nutrition_goals=dict(nutrition_goals or {}),
                recent_meals=list(recent_meals or [])[:self.settings.max_recent_meals],
            ),
        )
        self.store.put(session)
        logger.info(f"Started session {session.session_id} for user {user_id}")
        return session.session_id

    def end_session(self, session_id: str) -> ConversationSession:
        """End a session. It stays readable until the retention window passes."""
        with self._locked_session(session_id) as session:
            self._transition(session, ConversationState.ENDED)
            session.end_time = self._clock()
            session.last_updated = session.end_time

        duration = session.end_time - session.start_time
        logger.info(
            f"Ended session {session_id} after {int(duration.total_seconds() // 60)} minutes "
            f"and {len(self.store.history(session_id))} turns"
        )
        return session

    def handle_interruption(self, session_id: str, reason: Optional[str] = None) -> None:
        """
        Mark a session interrupted.

        A repeated interruption refreshes the reason and time. Unknown,
        paused and ended sessions are left as they are.
        """
        if self.store.get(session_id) is None:
            logger.debug(f"Interruption for unknown session {session_id} ignored")
            return

        with self._locked_session(session_id) as session:
            if session.state in (ConversationState.PAUSED, ConversationState.ENDED):
                logger.debug(f"Interruption for {session.state.value} session {session_id} ignored")
                return
            if session.state != ConversationState.INTERRUPTED:
                self._transition(session, ConversationState.INTERRUPTED)
            session.context.interruption_reason = reason
            session.context.interruption_time = self._clock()
            session.last_updated = session.context.interruption_time

        logger.info(f"Session {session_id} interrupted: {reason or 'no reason given'}")

    def resume_conversation(self, session_id: str) -> str:
        """Return an interrupted session to active and say how to pick up."""
        with self._locked_session(session_id) as session:
            self._transition(session, ConversationState.ACTIVE)
            now = self._clock()
            interrupted_at = session.context.interruption_time
            away = now - interrupted_at if interrupted_at else timedelta(0)
            session.context.interruption_reason = None
            session.context.interruption_time = None
            session.last_updated = now
            message = self._resumption_message(session.context, away)

        logger.info(f"Session {session_id} resumed after {int(away.total_seconds())}s")
        return message

    def pause_conversation(self, session_id: str) -> None:
        with self._locked_session(session_id) as session:
            self._transition(session, ConversationState.PAUSED)
            session.last_updated = self._clock()

    # === Turns and context ===

    def add_conversation_turn(self, session_id: str, turn: ConversationTurn) -> None:
        """Record a turn and update topics and meal context from it."""
        with self._locked_session(session_id) as session:
            self._require_open(session)
            self.store.append_turn(session_id, turn)
            self._update_context_from_turn(session, turn)

        logger.debug(f"Added {turn.type.value} turn to session {session_id}")

    def add_meal_to_context(self, session_id: str, meal: Union[MealData, MealContext]) -> None:
        """Make a logged meal the current meal and push it onto recent meals."""
        meal_context = MealContext.from_meal(meal) if isinstance(meal, MealData) else meal

        with self._locked_session(session_id) as session:
            self._require_open(session)
            context = session.context
            context.current_meal_context = meal_context
            context.recent_meals = [meal_context, *context.recent_meals][:self.settings.max_recent_meals]
            session.last_updated = self._clock()

    def update_user_preferences(self, session_id: str, preferences: dict[str, PreferenceValue]) -> None:
        with self._locked_session(session_id) as session:
            session.context.user_preferences.update(preferences)
            session.last_updated = self._clock()

    def get_session(self, session_id: str) -> Optional[ConversationSession]:
        """A copy of the session, or None."""
        session = self.store.get(session_id)
        return session.model_copy(deep=True) if session is not None else None

    def get_context(self, session_id: str) -> Optional[ConversationContext]:
        """A copy of the session's context, or None."""
        session = self.get_session(session_id)
        return session.context if session is not None else None

    def get_conversation_history(self, session_id: str) -> list[ConversationTurn]:
        return self.store.history(session_id)

    def get_recent_turns(self, session_id: str, count: int = 5) -> list[ConversationTurn]:
        history = self.store.history(session_id)
        return history[-count:] if count > 0 else []

    def generate_contextual_response(self, session_id: str, user_input: str, base_response: str) -> str:
        """
        Enrich a response using what the conversation already knows.

        Rules are tried in order (follow-up question, current meal, user
        preferences) and the first one that applies decides the response.
        A follow-up only applies when it has something to add.
        Unknown sessions get the base response back.
        """
        session = self.get_session(session_id)
        if session is None:
            return base_response

        context = session.context
        recent_turns = self.get_recent_turns(session_id, count=RECENT_TURNS_FOR_CONTEXT)
        lower_input = (user_input or "").lower()

        if self._is_follow_up(lower_input, recent_turns):
            enhanced = self._enhance_follow_up(base_response, recent_turns[-1])
            if enhanced != base_response:
                return enhanced

        if self._is_meal_related(lower_input) and context.current_meal_context is not None:
            meal_type = context.current_meal_context.meal_type
            if meal_type is None:
                return base_response
            return (
                f"{base_response} Aapka {meal_type.value} achha lag raha hai! "
                f"(Your {meal_type.value} looks good!)"
            )

        if context.user_preferences.get("vegetarian") is True:
            return f"{base_response} {VEGETARIAN_SUGGESTION}"

        return base_response

    # === Queries ===

    def get_active_session_for_user(self, user_id: str) -> Optional[str]:
        for session in self.store.sessions():
            if session.user_id == user_id and session.state == ConversationState.ACTIVE:
                return session.session_id
        return None

    @property
    def active_session_count(self) -> int:
        """Sessions that have not ended."""
        return sum(1 for s in self.store.sessions() if s.state != ConversationState.ENDED)

    # === Housekeeping ===

    def cleanup_expired_sessions(self) -> list[str]:
        """Force-end sessions idle longer than the configured timeout."""
        timeout = timedelta(hours=self.settings.session_idle_timeout_hours)
        now = self._clock()
        expired = []

        for candidate in self.store.sessions():
            lock = self.store.lock(candidate.session_id)
            if lock is None:
                continue
            with lock:
                session = self.store.get(candidate.session_id)
                if session is None or session.state == ConversationState.ENDED:
                    continue
                if now - session.last_activity <= timeout:
                    continue
                session.context.conversation_state = ConversationState.ENDED
                session.end_time = now
                self.store.put(session)
                expired.append(session.session_id)

        if expired:
            logger.info(f"Expired {len(expired)} idle sessions")
        return expired

    def evict_ended_sessions(self) -> int:
        """Remove ended sessions whose retention window has passed."""
        retention = timedelta(hours=self.settings.session_retention_hours)
        now = self._clock()
        evicted = 0

        for candidate in self.store.sessions():
            lock = self.store.lock(candidate.session_id)
            if lock is None:
                continue
            with lock:
                session = self.store.get(candidate.session_id)
                if session is None or session.state != ConversationState.ENDED or session.end_time is None:
                    continue
                if now - session.end_time >= retention and self.store.delete(session.session_id):
                    evicted += 1

        if evicted:
            logger.info(f"Evicted {evicted} ended sessions")
        return evicted

    # === Helpers ===

    @contextmanager
    def _locked_session(self, session_id: str) -> Iterator[ConversationSession]:
        lock = self.store.lock(session_id)
        if lock is None:
            raise SessionNotFoundError(session_id)
        with lock:
            session = self.store.get(session_id)
            if session is None:
                raise SessionNotFoundError(session_id)
            yield session
            self.store.put(session)

    @staticmethod
    def _require_open(session: ConversationSession) -> None:
        if session.state == ConversationState.ENDED:
            raise InvalidStateTransitionError(
                session.session_id, session.state.value, ConversationState.ACTIVE.value
            )

    @staticmethod
    def _transition(session: ConversationSession, target: ConversationState) -> None:
        current = session.context.conversation_state
        if target not in ALLOWED_TRANSITIONS[current]:
            raise InvalidStateTransitionError(session.session_id, current.value, target.value)
        session.context.conversation_state = target

    def _update_context_from_turn(self, session: ConversationSession, turn: ConversationTurn) -> None:
        context = session.context
        lower_input = turn.user_input.lower()

        if lower_input:
            topics = self._extract_topics(lower_input)
            if topics:
                older = [t for t in context.active_topics if t not in topics]
                context.active_topics = (topics + older)[:self.settings.max_active_topics]

        if self._is_meal_related(lower_input):
            meal_type_match = _MEAL_TYPE_WORDS.search(lower_input)
            context.current_meal_context = MealContext(
                meal_type=MealType(meal_type_match.group(0)) if meal_type_match else None,
                description=turn.user_input,
                timestamp=turn.timestamp,
            )

        session.last_updated = self._clock()

    @staticmethod
    def _extract_topics(lower_input: str) -> list[str]:
        return [
            topic
            for topic, keywords in TOPIC_KEYWORDS.items()
            if any(keyword in lower_input for keyword in keywords)
        ]

    @staticmethod
    def _is_meal_related(lower_input: str) -> bool:
        return _MEAL_RELATED.search(lower_input) is not None

    @staticmethod
    def _is_follow_up(lower_input: str, recent_turns: list[ConversationTurn]) -> bool:
        if not recent_turns:
            return False
        if _FOLLOW_UP.search(lower_input):
            return True

        last_turn = recent_turns[-1]
        last_input = last_turn.user_input.lower()
        last_response = last_turn.system_response.lower()
        return any(
            topic in lower_input and (topic in last_input or topic in last_response)
            for topic in NUTRITION_TOPICS
        )

    @staticmethod
    def _enhance_follow_up(base_response: str, last_turn: ConversationTurn) -> str:
        if "protein" in last_turn.system_response.lower() or "protein" in last_turn.user_input.lower():
            return f"{base_response} {PROTEIN_FOLLOW_UP}"
        return base_response

    @staticmethod
    def _resumption_message(context: ConversationContext, away: timedelta) -> str:
        has_meal = context.current_meal_context is not None
        if away < QUICK_RESUME:
            return RESUME_QUICK_WITH_MEAL if has_meal else RESUME_QUICK
        if away < SHORT_RESUME:
            return RESUME_SHORT_WITH_MEAL if has_meal else RESUME_SHORT
        return RESUME_GREETING
