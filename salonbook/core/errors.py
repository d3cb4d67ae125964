"""Errors raised by the scheduling core.

Services raise these synchronously at the offending operation; nothing in the
core retries. The API layer maps each one to its ``status_code``.
"""


class SalonBookError(Exception):
    status_code = 400

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class InvalidInput(SalonBookError):
    """Malformed time of day, bad operating hours, bad phone number and the like."""

    status_code = 422


class NotFound(SalonBookError):
    status_code = 404


class PermissionDenied(SalonBookError):
    status_code = 403


class SlotConflict(SalonBookError):
    """A non-cancelled booking already holds this salon/date/time."""

    status_code = 409


class InvalidTransition(SalonBookError):
    """The requested status change is not allowed by the booking state machine."""

    status_code = 409
