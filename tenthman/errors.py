"""Run-level exceptions raised by the debate engine and its collaborators."""


class DebateError(Exception):
    """Raised when a debate run fails. `step` names the participant or operation."""

    def __init__(self, step: str, message: str) -> None:
        self.step = step
        super().__init__(f"[{step}] {message}")


class RunCancelled(DebateError):
    """Raised as soon as the run's cancel event is observed."""
