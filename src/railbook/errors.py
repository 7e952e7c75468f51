from __future__ import annotations


class RailbookError(Exception):
    """Error that maps onto a structured API response."""

    code = "INTERNAL_ERROR"
    status_code = 500

    def __init__(self, message: str, details: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or message


class InvalidSubmissionError(RailbookError):
    code = "INVALID_SUBMISSION"
    status_code = 400


class BookingIdRequiredError(RailbookError):
    code = "BOOKING_ID_REQUIRED"
    status_code = 400


class BookingNotFoundError(RailbookError):
    code = "BOOKING_NOT_FOUND"
    status_code = 404


class RecipientMissingError(RailbookError):
    code = "RECIPIENT_MISSING"
    status_code = 422


class DeliveryFailedError(RailbookError):
    code = "EMAIL_SEND_FAILED"
    status_code = 502
