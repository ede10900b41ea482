from payfast_engine.models.enums import (
    ErrorCodes,
    ErrorIntentStatus,
    PaymentSessionStatus,
    PaymentStatusCode,
    ProcessorState,
    RedirectMode,
)
from payfast_engine.models.payment import (
    AuthorizationResult,
    Customer,
    PayFastEvent,
    PaymentCheckStatusResponse,
    PaymentIntentOptions,
    PaymentProcessorContext,
    PaymentProcessorSessionResponse,
    PaymentRequest,
    PaymentResponse,
    RefundRequest,
    RefundResponse,
    TransactionIdentifier,
    VpaValidationResponse,
)
from payfast_engine.models.webhook import Base, WebhookEventRecord

__all__ = [
    "Base",
    "WebhookEventRecord",
    "AuthorizationResult",
    "Customer",
    "ErrorCodes",
    "ErrorIntentStatus",
    "PayFastEvent",
    "PaymentCheckStatusResponse",
    "PaymentIntentOptions",
    "PaymentProcessorContext",
    "PaymentProcessorSessionResponse",
    "PaymentRequest",
    "PaymentResponse",
    "PaymentSessionStatus",
    "PaymentStatusCode",
    "ProcessorState",
    "RedirectMode",
    "RefundRequest",
    "RefundResponse",
    "TransactionIdentifier",
    "VpaValidationResponse",
]
