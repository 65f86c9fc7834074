"""
Hinglish Meal Assistant - Domain Exceptions
"""


class ConversationError(Exception):
    """Base exception for conversation session errors."""

    def __init__(self, session_id: str, message: str):
        self.session_id = session_id
        self.message = message
        super().__init__(f"[session {session_id}] {message}")


class SessionNotFoundError(ConversationError):
    """Raised when an operation names a session that does not exist."""

    def __init__(self, session_id: str):
        super().__init__(session_id, "Session not found")


class InvalidStateTransitionError(ConversationError):
    """Raised when a session is asked to move to a state it cannot reach."""

    def __init__(self, session_id: str, current_state: str, target_state: str):
        self.current_state = current_state
        self.target_state = target_state
        super().__init__(
            session_id,
            f"Cannot move from '{current_state}' to '{target_state}'",
        )


class NutritionLookupError(Exception):
    """Raised when a nutrition source fails for a food."""

    def __init__(self, food_name: str, message: str, original_error: Exception | None = None):
        self.food_name = food_name
        self.message = message
        self.original_error = original_error
        super().__init__(f"Nutrition lookup failed for '{food_name}': {message}")
