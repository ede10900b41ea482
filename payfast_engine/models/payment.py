"""
Request, response and event records exchanged with the gateway and the host.

Gateway payloads are plain dataclasses serialized to the camelCase field
names PayFast expects. Host-supplied context is validated with pydantic at
the processor boundary so the core never works on loosely-typed dicts.
"""

from dataclasses import asdict, dataclass, field
from typing import Any, Optional

from pydantic import BaseModel

from payfast_engine.models.enums import PaymentSessionStatus


def _drop_none(payload: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in payload.items() if v is not None}


@dataclass
class PaymentRequest:
    """One payment-creation attempt. Never mutated after it is built."""

    merchant_id: str
    merchant_transaction_id: str  # <base transaction id>_<attempt sequence>
    merchant_user_id: str
    amount: int  # Smallest currency unit
    redirect_url: str
    redirect_mode: str
    callback_url: str
    mobile_number: Optional[str] = None
    payment_instrument: dict = field(default_factory=lambda: {"type": "PAY_PAGE"})

    def to_payload(self) -> dict[str, Any]:
        return _drop_none({
            "merchantId": self.merchant_id,
            "merchantTransactionId": self.merchant_transaction_id,
            "merchantUserId": self.merchant_user_id,
            "amount": self.amount,
            "redirectUrl": self.redirect_url,
            "redirectMode": self.redirect_mode,
            "callbackUrl": self.callback_url,
            "mobileNumber": self.mobile_number,
            "paymentInstrument": self.payment_instrument,
        })


@dataclass(frozen=True)
class TransactionIdentifier:
    """The only key used to query the status of a payment attempt."""

    merchant_id: str
    merchant_transaction_id: str

    @property
    def is_complete(self) -> bool:
        return bool(self.merchant_id) and bool(self.merchant_transaction_id)

    @classmethod
    def from_session_data(cls, session_data: dict[str, Any]) -> "TransactionIdentifier":
        """Read the identifier from host session data (``{"data": {...}}``)."""
        data = session_data.get("data") or {}
        return cls(
            merchant_id=str(data.get("merchantId") or ""),
            merchant_transaction_id=str(data.get("merchantTransactionId") or ""),
        )


@dataclass
class RefundRequest:
    merchant_id: str
    original_transaction_id: str
    amount: int
    merchant_transaction_id: str  # New id, distinct from the original
    callback_url: str
    merchant_user_id: Optional[str] = None

    def to_payload(self) -> dict[str, Any]:
        return _drop_none({
            "merchantId": self.merchant_id,
            "originalTransactionId": self.original_transaction_id,
            "amount": self.amount,
            "merchantTransactionId": self.merchant_transaction_id,
            "callbackUrl": self.callback_url,
            "merchantUserId": self.merchant_user_id,
        })


@dataclass
class GatewayResponse:
    """Common ``{success, code, message, data}`` envelope of PayFast replies."""

    success: bool = False
    code: str = ""
    message: str = ""
    data: Optional[dict] = None

    @classmethod
    def from_payload(cls, payload: Any):
        if not isinstance(payload, dict):
            raise ValueError(f"Malformed gateway response: {payload!r}")
        return cls(
            success=bool(payload.get("success", False)),
            code=str(payload.get("code") or ""),
            message=str(payload.get("message") or ""),
            data=payload.get("data"),
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class PaymentResponse(GatewayResponse):
    """Reply to a payment-creation call."""


class PaymentCheckStatusResponse(GatewayResponse):
    """Reply to a status check. Consumed only by the reconciler."""


class RefundResponse(GatewayResponse):
    """Reply to a refund call."""


class VpaValidationResponse(GatewayResponse):
    """Reply to a VPA validation call."""


@dataclass
class PayFastEvent:
    """Typed event built from an inbound webhook notification."""

    type: str
    id: str
    data: dict
    verified: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "id": self.id, "data": self.data}


@dataclass
class PaymentIntentOptions:
    """Intent options policy injected into the processor."""

    capture_method: Optional[str] = None
    setup_future_usage: Optional[str] = None
    payment_method_types: Optional[list[str]] = None


@dataclass
class PaymentProcessorSessionResponse:
    session_data: dict
    update_requests: dict = field(default_factory=dict)


@dataclass
class AuthorizationResult:
    status: PaymentSessionStatus
    data: dict
    error: Optional[Any] = None  # ReconciliationTimeoutError when the backoff schedule ran out


class Customer(BaseModel):
    id: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None


class PaymentProcessorContext(BaseModel):
    """Payment context handed over by the host order system."""

    amount: int
    resource_id: str
    email: Optional[str] = None
    currency_code: Optional[str] = None
    customer: Optional[Customer] = None
    payment_session_data: dict[str, Any] = {}
    context: dict[str, Any] = {}

    model_config = {"extra": "ignore"}
