class TrackerError(Exception):
    """Base class for workout tracker errors."""


class DatasetUnavailable(TrackerError):
    """Raised when a static dataset cannot be fetched or parsed."""

    def __init__(self, resource: str, reason: str) -> None:
        super().__init__(f"Could not load {resource}: {reason}")
        self.resource = resource
        self.reason = reason


class PlanNotFoundError(TrackerError, LookupError):
    """Raised when a plan id has no stored plan."""

    def __init__(self, plan_id: str) -> None:
        super().__init__(f"plan not found: {plan_id}")
        self.plan_id = plan_id


class MalformedRecordError(TrackerError, ValueError):
    """Raised when a stored record does not match the current schema."""
