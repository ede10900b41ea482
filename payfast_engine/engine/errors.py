"""
Error taxonomy for the PayFast engine.

Two families live here:

  - Exceptions raised by the gateway layer (``GatewayError`` and
    ``GatewayStateError``). Only the gateway client lets these escape.
  - Error envelopes returned, never raised, across the processor boundary.
    ``PaymentProcessorError`` is the uniform ``{error, code, detail}`` shape;
    its subclasses tag the failure kind (validation, transport, conflict,
    integrity or timeout) so callers can branch with ``isinstance``
    instead of parsing the ``code`` string.
"""

from dataclasses import dataclass
from typing import Any, ClassVar, Optional, Union

import httpx

from payfast_engine.models.enums import ErrorCodes


class GatewayError(Exception):
    """The gateway answered, but not with a usable reply."""

    def __init__(self, message: str, status_code: int = 500, code: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.code = code


class GatewayStateError(GatewayError):
    """The operation is invalid because the transaction is already terminal."""

    def __init__(self, message: str, payment_intent: dict[str, Any], status_code: int = 409):
        super().__init__(
            message,
            status_code=status_code,
            code=ErrorCodes.PAYMENT_INTENT_UNEXPECTED_STATE.value,
        )
        self.payment_intent = payment_intent


@dataclass
class PaymentProcessorError:
    """Uniform error envelope returned by every public processor operation."""

    kind: ClassVar[str] = "processor"

    error: str
    code: Optional[str] = None
    detail: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "error": self.error, "code": self.code, "detail": self.detail}


@dataclass
class ValidationError(PaymentProcessorError):
    """Malformed request, detected before any network call."""

    kind: ClassVar[str] = "validation"


@dataclass
class TransportError(PaymentProcessorError):
    """Network or HTTP failure while talking to the gateway."""

    kind: ClassVar[str] = "transport"


@dataclass
class StateConflictError(PaymentProcessorError):
    """The transaction is already terminal in a state the operation cannot accept."""

    kind: ClassVar[str] = "conflict"


@dataclass
class IntegrityError(PaymentProcessorError):
    """Webhook checksum mismatch or undecodable notification."""

    kind: ClassVar[str] = "integrity"


@dataclass
class ReconciliationTimeoutError(PaymentProcessorError):
    """Backoff schedule exhausted without a terminal answer."""

    kind: ClassVar[str] = "timeout"


def is_payment_processor_error(value: Any) -> bool:
    return isinstance(value, PaymentProcessorError)


def build_error(message: str, error: Union[BaseException, PaymentProcessorError]) -> PaymentProcessorError:
    """
    Convert a caught exception (or a nested envelope) into an envelope.

    The code is taken from a nested envelope when there is one, otherwise
    from the exception class name. A nested envelope's own message and
    detail are chained into ``detail``, one per line.
    """
    if isinstance(error, PaymentProcessorError):
        return type(error)(
            error=message,
            code=error.code,
            detail=f"{error.error}\n{error.detail or ''}",
        )

    if isinstance(error, GatewayStateError):
        envelope_cls = StateConflictError
    elif isinstance(error, (httpx.HTTPError, GatewayError)):
        envelope_cls = TransportError
    else:
        envelope_cls = PaymentProcessorError
    return envelope_cls(error=message, code=type(error).__name__, detail=str(error) or "")
