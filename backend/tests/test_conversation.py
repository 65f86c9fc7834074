import time
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime

import pytest

from app.config import Settings
from app.core.conversation import (
    PROTEIN_FOLLOW_UP,
    RESUME_GREETING,
    RESUME_QUICK,
    RESUME_QUICK_WITH_MEAL,
    RESUME_SHORT,
    VEGETARIAN_SUGGESTION,
    ConversationSessionManager,
    ConversationState,
    ConversationTurn,
    MealContext,
    TurnType,
)
from app.core.errors import InvalidStateTransitionError, SessionNotFoundError
from app.core.state import MealType, NutritionQueryType


@pytest.fixture
def manager(clock, settings):
    return ConversationSessionManager(settings=settings, clock=clock)


def turn(user_input, system_response="", turn_type=TurnType.NUTRITION_QUERY):
    return ConversationTurn(user_input=user_input, system_response=system_response, type=turn_type)


def meal_context(meal_id, meal_type=MealType.LUNCH):
    return MealContext(
        meal_id=meal_id,
        meal_type=meal_type,
        description=f"meal {meal_id}",
        food_names=["rice"],
        total_calories=200.0,
        timestamp=datetime(2026, 10, 18, 13, 0),
    )


def test_start_session_is_active(manager, clock):
    session_id = manager.start_session(user_id="user_1", user_preferences={"vegetarian": True})
    session = manager.get_session(session_id)

    assert session.state == ConversationState.ACTIVE
    assert session.start_time == clock.now
    assert session.context.user_preferences == {"vegetarian": True}
    assert manager.active_session_count == 1


def test_interruption_and_resume_keep_context(manager, clock):
    session_id = manager.start_session(user_id="user_1", user_preferences={"spice": "medium"})
    manager.add_meal_to_context(session_id, meal_context("m1"))
    before = manager.get_context(session_id)

    manager.handle_interruption(session_id, reason="phone call")
    interrupted = manager.get_context(session_id)
    assert interrupted.conversation_state == ConversationState.INTERRUPTED
    assert interrupted.interruption_reason == "phone call"

    clock.advance(seconds=30)
    message = manager.resume_conversation(session_id)
    after = manager.get_context(session_id)

    assert message == RESUME_QUICK_WITH_MEAL
    assert after.conversation_state == ConversationState.ACTIVE
    assert after.current_meal_context == before.current_meal_context
    assert after.recent_meals == before.recent_meals
    assert after.user_preferences == before.user_preferences


@pytest.mark.parametrize(
    "minutes, expected",
    [(1, RESUME_QUICK), (5, RESUME_SHORT), (15, RESUME_GREETING)],
)
def test_resumption_message_depends_on_time_away(manager, clock, minutes, expected):
    session_id = manager.start_session()
    manager.handle_interruption(session_id)
    clock.advance(minutes=minutes)
    assert manager.resume_conversation(session_id) == expected


def test_resume_requires_interruption(manager):
    session_id = manager.start_session()
    with pytest.raises(InvalidStateTransitionError) as exc_info:
        manager.resume_conversation(session_id)
    assert exc_info.value.session_id == session_id


def test_interrupting_unknown_session_is_ignored(manager):
    manager.handle_interruption("missing", reason="noise")


@pytest.mark.parametrize(
    "operation",
    [
        lambda m: m.add_conversation_turn("missing", turn("hello")),
        lambda m: m.resume_conversation("missing"),
        lambda m: m.pause_conversation("missing"),
        lambda m: m.add_meal_to_context("missing", meal_context("m1")),
        lambda m: m.update_user_preferences("missing", {"vegetarian": True}),
        lambda m: m.end_session("missing"),
    ],
)
def test_unknown_session_raises(manager, operation):
    with pytest.raises(SessionNotFoundError):
        operation(manager)


def test_unknown_session_reads_are_empty(manager):
    assert manager.get_context("missing") is None
    assert manager.get_conversation_history("missing") == []
    assert manager.generate_contextual_response("missing", "hi", "Base.") == "Base."


def test_ended_session_rejects_changes(manager, clock):
    session_id = manager.start_session()
    clock.advance(minutes=3)
    ended = manager.end_session(session_id)

    assert ended.state == ConversationState.ENDED
    assert ended.end_time == clock.now
    assert manager.active_session_count == 0
    with pytest.raises(InvalidStateTransitionError):
        manager.end_session(session_id)
    with pytest.raises(InvalidStateTransitionError):
        manager.add_conversation_turn(session_id, turn("hello"))


def test_ended_session_rejects_meals(manager):
    session_id = manager.start_session()
    manager.end_session(session_id)

    with pytest.raises(InvalidStateTransitionError):
        manager.add_meal_to_context(session_id, meal_context("m1"))
    context = manager.get_context(session_id)
    assert context.recent_meals == []
    assert context.current_meal_context is None


def test_repeated_interruption_refreshes_reason(manager, clock):
    session_id = manager.start_session()
    manager.handle_interruption(session_id, reason="phone call")
    clock.advance(minutes=2)

    manager.handle_interruption(session_id, reason="doorbell")

    session = manager.get_session(session_id)
    assert session.state == ConversationState.INTERRUPTED
    assert session.context.interruption_reason == "doorbell"
    assert session.context.interruption_time == clock.now


def test_interrupting_ended_session_is_ignored(manager):
    session_id = manager.start_session()
    manager.end_session(session_id)

    manager.handle_interruption(session_id, reason="noise")
    assert manager.get_session(session_id).state == ConversationState.ENDED


def test_paused_session_can_only_end(manager):
    session_id = manager.start_session()
    manager.pause_conversation(session_id)

    with pytest.raises(InvalidStateTransitionError):
        manager.resume_conversation(session_id)

    manager.handle_interruption(session_id, reason="doorbell")
    session = manager.get_session(session_id)
    assert session.state == ConversationState.PAUSED
    assert session.context.interruption_reason is None

    manager.end_session(session_id)
    assert manager.get_session(session_id).state == ConversationState.ENDED


def test_turns_are_recorded_in_order(manager):
    session_id = manager.start_session()
    for i in range(7):
        manager.add_conversation_turn(session_id, turn(f"question {i}"))

    history = manager.get_conversation_history(session_id)
    assert [t.user_input for t in history] == [f"question {i}" for i in range(7)]
    assert [t.user_input for t in manager.get_recent_turns(session_id, count=2)] == [
        "question 5", "question 6",
    ]


def test_topics_newest_first_without_duplicates(manager):
    session_id = manager.start_session()
    manager.add_conversation_turn(session_id, turn("protein kitna hai"))
    manager.add_conversation_turn(session_id, turn("calories aur weight batao"))
    manager.add_conversation_turn(session_id, turn("protein phir se"))

    assert manager.get_context(session_id).active_topics == ["protein", "calories", "weight"]


def test_topics_are_capped(clock):
    manager = ConversationSessionManager(settings=Settings(MAX_ACTIVE_TOPICS=2), clock=clock)
    session_id = manager.start_session()
    manager.add_conversation_turn(session_id, turn("diet aur exercise"))
    manager.add_conversation_turn(session_id, turn("protein"))

    assert manager.get_context(session_id).active_topics == ["protein", "diet"]


def test_meal_related_turn_sets_meal_context(manager):
    session_id = manager.start_session()
    manager.add_conversation_turn(
        session_id, turn("Maine lunch mein dal chawal khaya", turn_type=TurnType.MEAL_LOGGING)
    )

    meal = manager.get_context(session_id).current_meal_context
    assert meal.meal_type == MealType.LUNCH
    assert meal.description == "Maine lunch mein dal chawal khaya"


def test_meal_keywords_match_whole_words(manager):
    session_id = manager.start_session()
    manager.add_conversation_turn(session_id, turn("dalchini ke fayde"))
    assert manager.get_context(session_id).current_meal_context is None


def test_recent_meals_newest_first_and_capped(clock):
    manager = ConversationSessionManager(settings=Settings(MAX_RECENT_MEALS=3), clock=clock)
    session_id = manager.start_session()
    for i in range(5):
        manager.add_meal_to_context(session_id, meal_context(f"m{i}"))

    context = manager.get_context(session_id)
    assert [m.meal_id for m in context.recent_meals] == ["m4", "m3", "m2"]
    assert context.current_meal_context.meal_id == "m4"


def test_update_preferences_merges(manager):
    session_id = manager.start_session(user_preferences={"vegetarian": False})
    manager.update_user_preferences(session_id, {"vegetarian": True, "spice": "mild"})
    assert manager.get_context(session_id).user_preferences == {"vegetarian": True, "spice": "mild"}


def test_follow_up_about_protein(manager):
    session_id = manager.start_session(user_preferences={"vegetarian": True})
    manager.add_conversation_turn(session_id, turn("protein kitna chahiye", "Roz 50g protein chahiye."))

    response = manager.generate_contextual_response(session_id, "aur batao", "Theek hai.")
    assert response == f"Theek hai. {PROTEIN_FOLLOW_UP}"


def test_meal_context_response(manager):
    session_id = manager.start_session()
    manager.add_conversation_turn(
        session_id, turn("breakfast mein poha khaya", turn_type=TurnType.MEAL_LOGGING)
    )

    response = manager.generate_contextual_response(session_id, "mera breakfast kaisa tha", "Accha hai.")
    assert response == "Accha hai. Aapka breakfast achha lag raha hai! (Your breakfast looks good!)"


def test_meal_without_type_keeps_base_response(manager):
    session_id = manager.start_session(user_preferences={"vegetarian": True})
    manager.add_conversation_turn(session_id, turn("dal khaya", turn_type=TurnType.MEAL_LOGGING))

    assert manager.get_context(session_id).current_meal_context.meal_type is None
    assert manager.generate_contextual_response(session_id, "roti", "Theek hai.") == "Theek hai."


def test_logged_meal_after_turn_is_current_meal(manager):
    session_id = manager.start_session()
    manager.add_conversation_turn(
        session_id, turn("Maine lunch mein 2 roti khayi", turn_type=TurnType.MEAL_LOGGING)
    )
    manager.add_meal_to_context(session_id, meal_context("m1"))

    context = manager.get_context(session_id)
    assert context.current_meal_context.meal_id == "m1"
    assert context.current_meal_context.food_names == ["rice"]
    assert [m.meal_id for m in context.recent_meals] == ["m1"]


def test_preference_response_when_nothing_else_applies(manager):
    session_id = manager.start_session(user_preferences={"vegetarian": True})
    response = manager.generate_contextual_response(session_id, "namaste", "Namaste!")
    assert response == f"Namaste! {VEGETARIAN_SUGGESTION}"


def test_plain_response_without_context(manager):
    session_id = manager.start_session()
    assert manager.generate_contextual_response(session_id, "namaste", "Namaste!") == "Namaste!"


def test_active_session_for_user(manager):
    first = manager.start_session(user_id="user_1")
    manager.start_session(user_id="user_2")
    assert manager.get_active_session_for_user("user_1") == first

    manager.handle_interruption(first)
    assert manager.get_active_session_for_user("user_1") is None


def test_idle_sessions_are_force_ended(manager, clock):
    idle = manager.start_session()
    clock.advance(hours=1)
    fresh = manager.start_session()
    clock.advance(hours=1, minutes=30)

    assert manager.cleanup_expired_sessions() == [idle]
    assert manager.get_session(idle).state == ConversationState.ENDED
    assert manager.get_session(fresh).state == ConversationState.ACTIVE


def test_ended_sessions_evicted_after_retention(manager, clock):
    session_id = manager.start_session()
    manager.add_conversation_turn(session_id, turn("hello"))
    manager.end_session(session_id)

    clock.advance(minutes=30)
    assert manager.evict_ended_sessions() == 0
    assert manager.get_session(session_id) is not None

    clock.advance(minutes=31)
    assert manager.evict_ended_sessions() == 1
    assert manager.get_session(session_id) is None
    assert manager.get_conversation_history(session_id) == []


def test_eviction_waits_for_session_lock(manager, clock):
    session_id = manager.start_session()
    manager.end_session(session_id)
    clock.advance(hours=2)

    lock = manager.store.lock(session_id)
    pool = ThreadPoolExecutor(max_workers=1)
    with lock:
        future = pool.submit(manager.evict_ended_sessions)
        time.sleep(0.05)
        assert not future.done()
        manager.store.delete(session_id)

    assert future.result(timeout=5) == 0
    pool.shutdown()


def test_concurrent_turns_on_one_session(manager):
    session_id = manager.start_session()

    def add_turns(worker):
        for i in range(25):
            manager.add_conversation_turn(session_id, turn(f"protein {worker}-{i}"))

    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(add_turns, range(8)))

    assert len(manager.get_conversation_history(session_id)) == 200
    assert manager.get_context(session_id).active_topics == ["protein"]


@pytest.mark.parametrize("enum_cls", [ConversationState, TurnType, MealType, NutritionQueryType])
def test_enum_values_round_trip(enum_cls):
    values = [member.value for member in enum_cls]
    assert len(set(values)) == len(values)
    for member in enum_cls:
        assert enum_cls(member.value) is member
