class PasswatchError(Exception):
    """Base class for engine errors."""


class PropagationFailure(PasswatchError):
    """The propagator returned no position for the requested instant."""


class InvalidElements(PasswatchError):
    """Orbital elements could not be parsed."""


class SchedulingConflict(PasswatchError):
    """A reminder was requested for a pass that cannot be armed."""

    def __init__(self, pass_id: int, reason: str):
        super().__init__(f"Cannot arm pass {pass_id}: {reason}")
        self.pass_id = pass_id
        self.reason = reason
