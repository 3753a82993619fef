"""Errors raised by the workflow before anything reaches the network."""


class FlameSimError(Exception):
    """Base class for workflow errors."""


class WorkflowValidationError(FlameSimError, ValueError):
    """User input rejected (empty text, too long, level out of range)."""


class TransitionError(FlameSimError):
    """Event not allowed in the current stage, or that operation is already in flight."""

    def __init__(self, event: str, stage: str, detail: str = ""):
        self.event = event
        self.stage = stage
        self.detail = detail
        message = f"{event} is not allowed in stage {stage}"
        super().__init__(f"{message}: {detail}" if detail else message)
