"""Request-level errors raised by the recommendation and behavior services."""


class RecommendationError(Exception):
    """Base class for errors surfaced to the caller with a readable message."""


class MissingProfileError(RecommendationError):
    """Raised when the requesting user has no profile yet."""

    def __init__(self, user_id: str):
        self.user_id = user_id
        super().__init__("User profile not found. Please complete your profile setup.")


class NoCandidatesError(RecommendationError):
    """Raised when no open bounty is accessible, so no pick can be made."""

    def __init__(self, message: str = "No bounties available for recommendations"):
        super().__init__(message)


class UnknownEventTypeError(ValueError):
    """Raised when an event type outside the tracked set is fed to the behavior tracker."""

    def __init__(self, event_type: str):
        self.event_type = event_type
        super().__init__(f"Event type '{event_type}' is not tracked for behavior")
