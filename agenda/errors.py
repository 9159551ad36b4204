"""Exceptions raised by the agenda core."""


class AgendaError(Exception):
    """Base class for agenda core errors."""


class MissingIdentifierError(AgendaError):
    """An action was requested on an agenda that lacks the identifier it needs."""


class ActionNotAllowedError(AgendaError):
    """The current party may not perform this action on this agenda."""


class ActionInProgressError(AgendaError):
    """Another lifecycle action has not settled yet."""


class FormValidationError(AgendaError):
    """The schedule form failed client-side validation."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message
