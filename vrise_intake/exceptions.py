from typing import List, Optional


class IntakeError(Exception):
    """Base class for errors raised while handling a submission."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(IntakeError):
    """The submission is incomplete or malformed. Nothing was stored."""

    def __init__(self, message: str, fields: Optional[List[str]] = None):
        super().__init__(message)
        self.fields = fields or []


class PersistenceError(IntakeError):
    """The record store could not durably write the submission."""


class NotificationError(IntakeError):
    """An acknowledgement email could not be delivered."""

    def __init__(self, message: str, recipient: str):
        super().__init__(message)
        self.recipient = recipient
