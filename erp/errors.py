"""Domain errors raised by services and rendered as JSON by the app."""
from typing import Any, Optional


class ERPError(Exception):
    status_code = 400

    def __init__(self, message: str, status_code: Optional[int] = None, details: Any = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.details = details

    def to_dict(self) -> dict:
        body = {"error": self.message}
        if self.details is not None:
            body["details"] = self.details
        return body


class NotFoundError(ERPError):
    status_code = 404


class ValidationError(ERPError):
    status_code = 400


class InvalidTransition(ERPError):
    status_code = 400

    def __init__(self, event: str, current: Optional[str], message: Optional[str] = None):
        super().__init__(
            message or f"Cannot {event.replace('_', ' ')} an order in {current or 'no'} status",
            details={"event": event, "current_status": current},
        )
        self.event = event
        self.current = current


class UnbalancedEntry(ERPError):
    status_code = 400

    def __init__(self, total_debits, total_credits, message: str = "Debits must equal credits"):
        super().__init__(message, details={
            "total_debits": float(total_debits),
            "total_credits": float(total_credits),
            "difference": float(total_debits - total_credits),
        })


class ClosedPeriodError(ERPError):
    status_code = 400


class MessagingError(ERPError):
    status_code = 502
