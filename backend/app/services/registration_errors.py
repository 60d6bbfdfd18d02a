from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    INVALID_TRANSITION = "INVALID_TRANSITION"
    FORBIDDEN = "FORBIDDEN"


class RegistrationError(Exception):
    """
    Base for domain failures raised by the slot ledger and the lifecycle engine.
    `message` is safe to show to clients.
    """

    kind: ErrorKind = ErrorKind.CONFLICT
    default_message = "Registration request failed"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


# --- not found ---


class NotFoundError(RegistrationError):
    kind = ErrorKind.NOT_FOUND
    default_message = "Not found"


class RegistrationNotFoundError(NotFoundError):
    default_message = "Registration not found"


class SlotNotFoundError(NotFoundError):
    default_message = "Slot not found"


class InterviewNotFoundError(NotFoundError):
    default_message = "Interview not found"


# --- conflict ---


class ConflictError(RegistrationError):
    kind = ErrorKind.CONFLICT


class AlreadyRegisteredError(ConflictError):
    default_message = "Already registered for this interview"


class SlotFullError(ConflictError):
    default_message = "Slot is full"


class SlotMismatchError(ConflictError):
    default_message = "Selected slot does not belong to this interview"


class InterviewNotOpenError(ConflictError):
    default_message = "Interview is not open for registration"


class SlotInUseError(ConflictError):
    default_message = "Slot still has active registrations"


class CapacityBelowBookedError(ConflictError):
    default_message = "Capacity cannot be lower than the number of booked seats"


# --- invalid transition ---


class InvalidTransitionError(RegistrationError):
    kind = ErrorKind.INVALID_TRANSITION
    default_message = "Invalid registration status transition"


class AlreadyCancelledError(InvalidTransitionError):
    default_message = "Registration is already cancelled"


class ScoringNotAllowedError(InvalidTransitionError):
    default_message = "Only confirmed/completed registrations can be scored"


class ResultNotScoredError(InvalidTransitionError):
    default_message = "Cannot announce result before scoring"


class ResultOnCancelledError(InvalidTransitionError):
    default_message = "Cannot announce result for a cancelled registration"


class ScoreOutOfRangeError(InvalidTransitionError):
    default_message = "Score must be between 0 and 100"


class UnknownStatusError(InvalidTransitionError):
    default_message = "Unknown registration status"


# --- forbidden ---


class ForbiddenError(RegistrationError):
    kind = ErrorKind.FORBIDDEN
    default_message = "Not authorized"
