"""
HTTP client for the PayFast payment API.

Signs every call with the checksum codec and sends it with httpx:

  - POST /pg/v1/pay             payment creation
  - GET  /pg/v1/status/{m}/{t}  status check (X-MERCHANT-ID)
  - POST /pg/v1/refund          refund
  - POST /pg/v1/vpa/validate    VPA validation (X-MERCHANT-ID)

POST bodies wrap the encoded payload as ``{"request": <base64>}``. Transport
and HTTP errors are logged and re-raised unchanged; a 409 reply is raised as
``GatewayStateError`` so the processor can pass terminal states through.
"""

import logging
from typing import Any, Optional

import httpx

from payfast_engine.codec.checksum import (
    PAY_PATH,
    REFUND_PATH,
    STATUS_PATH,
    VPA_VALIDATE_PATH,
    ChecksumCodec,
    Sha256ChecksumCodec,
)
from payfast_engine.config import Settings
from payfast_engine.engine.errors import GatewayError, GatewayStateError
from payfast_engine.models.enums import ErrorIntentStatus, PaymentStatusCode
from payfast_engine.models.payment import (
    PaymentCheckStatusResponse,
    PaymentRequest,
    PaymentResponse,
    RefundRequest,
    RefundResponse,
    VpaValidationResponse,
)
from payfast_engine.providers.base import PaymentGateway

logger = logging.getLogger("payfast_engine.gateway")

# Gateway codes that accompany a 409, mapped to the terminal state they report.
CONFLICT_INTENT_STATUS = {
    PaymentStatusCode.PAYMENT_SUCCESS.value: ErrorIntentStatus.SUCCEEDED,
    PaymentStatusCode.PAYMENT_CANCELLED.value: ErrorIntentStatus.CANCELED,
    PaymentStatusCode.TRANSACTION_NOT_FOUND.value: ErrorIntentStatus.CANCELED,
}


class PayFastClient(PaymentGateway):
    """Stateless httpx adapter for the PayFast API."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        codec: Optional[ChecksumCodec] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        super().__init__(settings)
        self.url = self.settings.base_url
        self.codec = codec or Sha256ChecksumCodec(self.settings.salt, self.settings.salt_index)
        self._client = http_client

    @property
    def name(self) -> str:
        return "payfast"

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.settings.http_timeout_seconds)
        return self._client

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this instance created one."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    @staticmethod
    def _headers(checksum: str, merchant_id: Optional[str] = None) -> dict[str, str]:
        headers = {"Content-Type": "application/json", "X-VERIFY": checksum}
        if merchant_id:
            headers["X-MERCHANT-ID"] = merchant_id
        return headers

    @staticmethod
    def _read(response: httpx.Response) -> dict[str, Any]:
        if response.status_code == httpx.codes.CONFLICT:
            body = _json_or_empty(response)
            code = str(body.get("code") or "")
            intent_status = CONFLICT_INTENT_STATUS.get(code)
            raise GatewayStateError(
                body.get("message") or f"Transaction already in terminal state ({code or 'unknown'})",
                payment_intent={
                    **(body.get("data") or {}),
                    "code": code,
                    "status": intent_status.value if intent_status else None,
                },
            )
        response.raise_for_status()
        body = _json_or_empty(response)
        if not body:
            raise GatewayError("Empty or non-JSON reply from PayFast", status_code=response.status_code)
        return body

    async def _post(self, path: str, encoded_body: str, checksum: str, merchant_id: Optional[str] = None):
        response = await self.client.post(
            f"{self.url}{path}",
            json={"request": encoded_body},
            headers=self._headers(checksum, merchant_id),
        )
        return self._read(response)

    async def post_payment(self, request: PaymentRequest) -> PaymentResponse:
        try:
            encoded = self.codec.encode_payment(request.to_payload())
            body = await self._post(PAY_PATH, encoded.encoded_body, encoded.checksum)
        except (httpx.HTTPError, GatewayError) as e:
            logger.error("Error posting payment request %s: %s", request.merchant_transaction_id, e)
            raise
        return PaymentResponse.from_payload(body)

    async def _fetch_transaction_status(
        self, merchant_id: str, merchant_transaction_id: str
    ) -> PaymentCheckStatusResponse:
        try:
            encoded = self.codec.encode_status(merchant_id, merchant_transaction_id)
            response = await self.client.get(
                f"{self.url}{STATUS_PATH}/{merchant_id}/{merchant_transaction_id}",
                headers=self._headers(encoded.checksum, merchant_id),
            )
            body = self._read(response)
        except (httpx.HTTPError, GatewayError) as e:
            logger.error("Error fetching transaction status %s: %s", merchant_transaction_id, e)
            raise
        return PaymentCheckStatusResponse.from_payload(body)

    async def post_refund(self, request: RefundRequest) -> RefundResponse:
        try:
            encoded = self.codec.encode_refund(request.to_payload())
            body = await self._post(REFUND_PATH, encoded.encoded_body, encoded.checksum)
        except (httpx.HTTPError, GatewayError) as e:
            logger.error("Error posting refund request %s: %s", request.merchant_transaction_id, e)
            raise
        return RefundResponse.from_payload(body)

    async def validate_vpa(self, merchant_id: str, vpa: str) -> VpaValidationResponse:
        try:
            encoded = self.codec.encode_vpa_validation({"merchantId": merchant_id, "vpa": vpa})
            body = await self._post(VPA_VALIDATE_PATH, encoded.encoded_body, encoded.checksum, merchant_id)
        except (httpx.HTTPError, GatewayError) as e:
            logger.error("Error validating VPA: %s", e)
            raise
        return VpaValidationResponse.from_payload(body)


def _json_or_empty(response: httpx.Response) -> dict[str, Any]:
    try:
        body = response.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}
