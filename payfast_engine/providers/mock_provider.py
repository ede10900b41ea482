"""
Scripted PayFast gateway for tests and local demos.

Simulates the remote API without a network:
  - Status checks replay a script of gateway codes (the last entry repeats)
  - Script entries that are exceptions are raised, to simulate transport failure
  - Optional latency per call
  - Optional terminal-state conflict raised by cancel, capture and refund
  - Every request is recorded for inspection
"""

import asyncio
import uuid
from typing import Any, Optional, Sequence, Union

from payfast_engine.config import Settings
from payfast_engine.engine.errors import GatewayStateError
from payfast_engine.models.enums import PaymentStatusCode
from payfast_engine.models.payment import (
    PaymentCheckStatusResponse,
    PaymentRequest,
    PaymentResponse,
    RefundRequest,
    RefundResponse,
    VpaValidationResponse,
)
from payfast_engine.providers.base import PaymentGateway

ScriptEntry = Union[str, PaymentStatusCode, BaseException]


class MockPayFastGateway(PaymentGateway):
    """In-memory gateway whose status replies follow a fixed script."""

    def __init__(
        self,
        status_script: Optional[Sequence[ScriptEntry]] = None,
        settings: Optional[Settings] = None,
        latency_ms: int = 0,
        conflict: Optional[GatewayStateError] = None,
        payment_error: Optional[BaseException] = None,
    ):
        super().__init__(settings)
        self._script = list(status_script or [PaymentStatusCode.PAYMENT_PENDING])
        self._latency_ms = latency_ms
        self.conflict = conflict
        self.payment_error = payment_error
        self.status_calls = 0
        self.payments: list[PaymentRequest] = []
        self.refunds: list[RefundRequest] = []

    @property
    def name(self) -> str:
        return "mock_payfast"

    async def _simulate_latency(self) -> None:
        if self._latency_ms > 0:
            await asyncio.sleep(self._latency_ms / 1000)

    def _next_entry(self) -> ScriptEntry:
        index = min(self.status_calls, len(self._script) - 1)
        self.status_calls += 1
        return self._script[index]

    async def post_payment(self, request: PaymentRequest) -> PaymentResponse:
        await self._simulate_latency()
        if self.payment_error is not None:
            raise self.payment_error
        self.payments.append(request)
        return PaymentResponse(
            success=True,
            code=PaymentStatusCode.SUCCESS.value,
            message="Payment initiated",
            data={
                "merchantId": request.merchant_id,
                "merchantTransactionId": request.merchant_transaction_id,
                "instrumentResponse": {
                    "type": "PAY_PAGE",
                    "redirectInfo": {
                        "url": f"https://mock.payfast.local/pay/{uuid.uuid4().hex[:16]}",
                        "method": "GET",
                    },
                },
            },
        )

    async def _fetch_transaction_status(
        self, merchant_id: str, merchant_transaction_id: str
    ) -> PaymentCheckStatusResponse:
        await self._simulate_latency()
        entry = self._next_entry()
        if isinstance(entry, BaseException):
            raise entry
        code = entry.value if isinstance(entry, PaymentStatusCode) else str(entry)
        return PaymentCheckStatusResponse(
            success=code == PaymentStatusCode.PAYMENT_SUCCESS.value,
            code=code,
            message=f"Mock status {code}",
            data={"merchantId": merchant_id, "merchantTransactionId": merchant_transaction_id},
        )

    async def post_refund(self, request: RefundRequest) -> RefundResponse:
        await self._simulate_latency()
        if self.conflict is not None:
            raise self.conflict
        self.refunds.append(request)
        return RefundResponse(
            success=True,
            code=PaymentStatusCode.PAYMENT_PENDING.value,
            message="Refund accepted",
            data=request.to_payload(),
        )

    async def validate_vpa(self, merchant_id: str, vpa: str) -> VpaValidationResponse:
        await self._simulate_latency()
        valid = "@" in vpa
        return VpaValidationResponse(
            success=valid,
            code=PaymentStatusCode.SUCCESS.value if valid else PaymentStatusCode.BAD_REQUEST.value,
            message="VPA validated" if valid else "Invalid VPA",
            data={"vpa": vpa} if valid else None,
        )

    async def cancel(self, session_data: dict[str, Any]) -> dict[str, Any]:
        if self.conflict is not None:
            raise self.conflict
        return await super().cancel(session_data)

    async def capture(self, response_data: dict[str, Any]) -> PaymentCheckStatusResponse:
        if self.conflict is not None:
            raise self.conflict
        return await super().capture(response_data)
