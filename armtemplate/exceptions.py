"""Base exception hierarchy for ARM template decoding."""


class ArmTemplateError(Exception):
    """Base class for every error raised by armtemplate.

    Catch this at the boundary where a template is handed to the library to
    handle expression, schema and dependency failures in one place.

    Attributes:
        message: Human-readable error message.
    """

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)
