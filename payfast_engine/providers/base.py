"""
Gateway client interface.

The processor talks to PayFast only through this interface. The HTTP
implementation lives in ``payfast_client``; tests use the scripted
``MockPayFastGateway``. Request building, validation and the identifier
guard are shared here so every implementation behaves the same before any
network call is made.

Implementations translate domain requests into gateway calls and nothing
more: no retries, no interpretation of status codes. Transport failures
propagate to the caller so the reconciler can tell "the call failed" apart
from "the call succeeded with a non-terminal status".
"""

import json
import re
from abc import ABC, abstractmethod
from typing import Any, Optional, Union

from payfast_engine.config import Settings, settings as default_settings
from payfast_engine.engine.errors import ValidationError
from payfast_engine.models.enums import ErrorCodes, PaymentStatusCode
from payfast_engine.models.payment import (
    PaymentCheckStatusResponse,
    PaymentRequest,
    PaymentResponse,
    RefundRequest,
    RefundResponse,
    VpaValidationResponse,
)

MAX_MERCHANT_ID_LENGTH = 38
MAX_TRANSACTION_ID_LENGTH = 38
MAX_USER_ID_LENGTH = 36

USER_ID_RE = re.compile(r"^\w+$")
URI_SCHEME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*://")


def validation_problems(request: PaymentRequest) -> list[str]:
    """Return every rule ``request`` breaks; an empty list means it is valid."""
    problems = []
    if not 0 < len(request.merchant_id) < MAX_MERCHANT_ID_LENGTH:
        problems.append("merchantId must be 1-37 characters")
    if not 0 < len(request.merchant_transaction_id) < MAX_TRANSACTION_ID_LENGTH:
        problems.append("merchantTransactionId must be 1-37 characters")
    if isinstance(request.amount, bool) or not isinstance(request.amount, int) or request.amount <= 0:
        problems.append("amount must be a positive integer")
    if not 0 < len(request.merchant_user_id) < MAX_USER_ID_LENGTH:
        problems.append("merchantUserId must be 1-35 characters")
    elif not USER_ID_RE.match(request.merchant_user_id):
        problems.append("merchantUserId may only contain word characters")
    if not URI_SCHEME_RE.match(request.redirect_url or ""):
        problems.append("redirectUrl must start with a URI scheme")
    if not request.redirect_mode:
        problems.append("redirectMode is required")
    if not request.callback_url:
        problems.append("callbackUrl is required")
    return problems


class PaymentGateway(ABC):
    """Abstract base class for PayFast gateway clients."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or default_settings

    @property
    @abstractmethod
    def name(self) -> str:
        """Client identifier (e.g. 'payfast')."""
        ...

    def validate_payment_request(self, request: PaymentRequest) -> bool:
        return not validation_problems(request)

    def create_standard_request(
        self,
        amount: Union[int, str],
        base_transaction_id: str,
        customer_id: Optional[str],
        mobile_number: Optional[str] = None,
        attempt_id: Optional[Union[int, str]] = None,
    ) -> Union[PaymentRequest, ValidationError]:
        """
        Build a pay-page request for one attempt.

        The merchant transaction id is ``<base>_<attempt>`` so retried
        initiations never collide at the gateway. Invalid requests come back
        as a ``VALIDATION_FAILED`` envelope instead of raising.
        """
        try:
            parsed_amount = int(amount)
        except (TypeError, ValueError):
            parsed_amount = 0

        base = base_transaction_id or ""
        request = PaymentRequest(
            merchant_id=self.settings.merchant_id,
            merchant_transaction_id=f"{base}_{attempt_id}" if attempt_id is not None else base,
            merchant_user_id=customer_id or "",
            amount=parsed_amount,
            redirect_url=self.settings.redirect_url,
            redirect_mode=self.settings.redirect_mode,
            callback_url=self.settings.callback_url,
            mobile_number=mobile_number,
        )

        problems = validation_problems(request)
        if problems:
            return ValidationError(
                error=f"{json.dumps(request.to_payload())} is invalid",
                code=ErrorCodes.VALIDATION_FAILED.value,
                detail="; ".join(problems),
            )
        return request

    async def get_transaction_status(
        self, merchant_id: Optional[str], merchant_transaction_id: Optional[str]
    ) -> PaymentCheckStatusResponse:
        """Status of one attempt; an incomplete identifier is answered locally."""
        if not merchant_id or not merchant_transaction_id:
            return PaymentCheckStatusResponse(
                success=False,
                code=PaymentStatusCode.PAYMENT_ERROR.value,
                message="merchantId or merchantTransactionId is incomplete",
            )
        return await self._fetch_transaction_status(merchant_id, merchant_transaction_id)

    async def cancel(self, session_data: dict[str, Any]) -> dict[str, Any]:
        """PayFast has no void call: cancelling clears the session's status code."""
        return {**session_data, "code": None}

    async def capture(self, response_data: dict[str, Any]) -> PaymentCheckStatusResponse:
        """PayFast has no capture call: capturing re-queries the current status."""
        return await self.get_transaction_status(
            response_data.get("merchantId"),
            response_data.get("merchantTransactionId"),
        )

    @abstractmethod
    async def post_payment(self, request: PaymentRequest) -> PaymentResponse:
        """Create the payment at the gateway. Transport errors propagate."""
        ...

    @abstractmethod
    async def _fetch_transaction_status(
        self, merchant_id: str, merchant_transaction_id: str
    ) -> PaymentCheckStatusResponse:
        ...

    @abstractmethod
    async def post_refund(self, request: RefundRequest) -> RefundResponse:
        ...

    @abstractmethod
    async def validate_vpa(self, merchant_id: str, vpa: str) -> VpaValidationResponse:
        ...
