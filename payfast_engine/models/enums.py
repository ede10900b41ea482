"""Enumerations for the PayFast reconciliation domain model."""

from enum import Enum


class PaymentSessionStatus(str, Enum):
    """Normalized status of a payment session, as seen by the host."""

    PENDING = "pending"
    AUTHORIZED = "authorized"
    ERROR = "error"
    CANCELED = "canceled"


class PaymentStatusCode(str, Enum):
    """Status codes reported by the PayFast gateway."""

    BAD_REQUEST = "BAD_REQUEST"
    AUTHORIZATION_FAILED = "AUTHORIZATION_FAILED"
    INTERNAL_SERVER_ERROR = "INTERNAL_SERVER_ERROR"
    TRANSACTION_NOT_FOUND = "TRANSACTION_NOT_FOUND"
    PAYMENT_ERROR = "PAYMENT_ERROR"
    PAYMENT_PENDING = "PAYMENT_PENDING"
    PAYMENT_DECLINED = "PAYMENT_DECLINED"
    TIMED_OUT = "TIMED_OUT"
    PAYMENT_SUCCESS = "PAYMENT_SUCCESS"
    PAYMENT_CANCELLED = "PAYMENT_CANCELLED"
    PAYMENT_INITIATED = "PAYMENT_INITIATED"
    SUCCESS = "SUCCESS"


class ProcessorState(str, Enum):
    """Lifecycle states of one payment attempt inside the processor."""

    INITIATED = "initiated"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    PENDING = "pending"
    AUTHORIZED = "authorized"
    ERROR = "error"
    CANCELED = "canceled"


class ErrorCodes(str, Enum):
    """Gateway error codes the processor treats specially."""

    PAYMENT_INTENT_UNEXPECTED_STATE = "payment_intent_unexpected_state"
    VALIDATION_FAILED = "VALIDATION_FAILED"


class ErrorIntentStatus(str, Enum):
    """Terminal states reported alongside a terminal-state conflict."""

    SUCCEEDED = "succeeded"
    CANCELED = "canceled"


class RedirectMode(str, Enum):
    REDIRECT = "REDIRECT"
    POST = "POST"


TERMINAL_STATUSES = frozenset(
    {PaymentSessionStatus.AUTHORIZED, PaymentSessionStatus.ERROR, PaymentSessionStatus.CANCELED}
)
