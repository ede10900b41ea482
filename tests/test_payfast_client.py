"""Tests for the httpx PayFast client against a mocked transport."""

import base64
import json

import httpx
import pytest

from payfast_engine.config import Settings
from payfast_engine.engine.errors import GatewayError, GatewayStateError
from payfast_engine.models.payment import RefundRequest
from payfast_engine.providers.payfast_client import PayFastClient


class Recorder:
    """httpx.MockTransport handler that records requests and replays a reply."""

    def __init__(self, status_code=200, body=None, exc=None):
        self.status_code = status_code
        self.body = {"success": True, "code": "PAYMENT_SUCCESS", "message": "ok", "data": {}} if body is None else body
        self.exc = exc
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.exc is not None:
            raise self.exc
        return httpx.Response(self.status_code, json=self.body)


def _client(settings, recorder):
    return PayFastClient(settings, http_client=httpx.AsyncClient(transport=httpx.MockTransport(recorder)))


def _payment_request(client):
    return client.create_standard_request(100, "cart_01", "cus_01", attempt_id=1)


class TestConfiguration:
    def test_sandbox_and_production_resolve_to_distinct_urls(self, settings):
        production = settings.model_copy(update={"mode": "production"})
        assert PayFastClient(settings).url == settings.sandbox_base_url
        assert PayFastClient(production).url == settings.production_base_url
        assert settings.sandbox_base_url != settings.production_base_url

    def test_unknown_mode_is_rejected(self):
        with pytest.raises(ValueError, match="Unknown PayFast mode"):
            PayFastClient(Settings(_env_file=None, mode="uat"))


class TestPostPayment:
    @pytest.mark.asyncio
    async def test_signed_request(self, settings, codec):
        recorder = Recorder()
        client = _client(settings, recorder)
        request = _payment_request(client)

        response = await client.post_payment(request)

        sent = recorder.requests[0]
        expected = codec.encode_payment(request.to_payload())
        assert sent.method == "POST"
        assert str(sent.url) == f"{settings.sandbox_base_url}/pg/v1/pay"
        assert sent.headers["X-VERIFY"] == expected.checksum
        assert "X-MERCHANT-ID" not in sent.headers
        body = json.loads(sent.content)
        assert body == {"request": expected.encoded_body}
        decoded = json.loads(base64.b64decode(body["request"]))
        assert decoded["merchantTransactionId"] == "cart_01_1"
        assert decoded["amount"] == 100
        assert response.code == "PAYMENT_SUCCESS"

    @pytest.mark.asyncio
    async def test_transport_error_propagates(self, settings):
        client = _client(settings, Recorder(exc=httpx.ConnectError("connection refused")))
        with pytest.raises(httpx.ConnectError):
            await client.post_payment(_payment_request(client))

    @pytest.mark.asyncio
    async def test_http_error_propagates(self, settings):
        client = _client(settings, Recorder(status_code=500, body={"code": "INTERNAL_SERVER_ERROR"}))
        with pytest.raises(httpx.HTTPStatusError):
            await client.post_payment(_payment_request(client))

    @pytest.mark.asyncio
    async def test_non_json_reply_is_a_gateway_error(self, settings):
        def handler(request):
            return httpx.Response(200, text="<html>maintenance</html>")

        client = PayFastClient(settings, http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))
        with pytest.raises(GatewayError):
            await client.post_payment(_payment_request(client))


class TestTransactionStatus:
    @pytest.mark.asyncio
    async def test_signed_get(self, settings, codec):
        recorder = Recorder(body={"success": False, "code": "PAYMENT_PENDING", "message": "pending"})
        client = _client(settings, recorder)

        response = await client.get_transaction_status("PGTESTPAYUAT", "cart_01_1")

        sent = recorder.requests[0]
        assert sent.method == "GET"
        assert str(sent.url) == f"{settings.sandbox_base_url}/pg/v1/status/PGTESTPAYUAT/cart_01_1"
        assert sent.headers["X-VERIFY"] == codec.encode_status("PGTESTPAYUAT", "cart_01_1").checksum
        assert sent.headers["X-MERCHANT-ID"] == "PGTESTPAYUAT"
        assert response.code == "PAYMENT_PENDING"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("merchant_id, transaction_id", [("", "cart_01_1"), ("PGTESTPAYUAT", ""), (None, None)])
    async def test_incomplete_identifier_answered_locally(self, settings, merchant_id, transaction_id):
        recorder = Recorder()
        client = _client(settings, recorder)

        response = await client.get_transaction_status(merchant_id, transaction_id)

        assert recorder.requests == []
        assert response.success is False
        assert response.code == "PAYMENT_ERROR"
        assert "incomplete" in response.message

    @pytest.mark.asyncio
    async def test_conflict_raises_state_error(self, settings):
        body = {"code": "PAYMENT_SUCCESS", "message": "already completed", "data": {"merchantTransactionId": "T1"}}
        client = _client(settings, Recorder(status_code=409, body=body))

        with pytest.raises(GatewayStateError) as exc_info:
            await client.get_transaction_status("PGTESTPAYUAT", "T1")

        assert exc_info.value.code == "payment_intent_unexpected_state"
        assert exc_info.value.payment_intent["status"] == "succeeded"
        assert exc_info.value.payment_intent["merchantTransactionId"] == "T1"

    @pytest.mark.asyncio
    async def test_capture_is_a_status_query(self, settings):
        recorder = Recorder()
        client = _client(settings, recorder)

        result = await client.capture({"merchantId": "PGTESTPAYUAT", "merchantTransactionId": "T1"})

        assert recorder.requests[0].method == "GET"
        assert result.code == "PAYMENT_SUCCESS"


class TestRefundAndVpa:
    @pytest.mark.asyncio
    async def test_refund(self, settings, codec):
        recorder = Recorder(body={"success": True, "code": "PAYMENT_PENDING", "message": "refund accepted"})
        client = _client(settings, recorder)
        refund = RefundRequest(
            merchant_id="PGTESTPAYUAT",
            original_transaction_id="T1",
            amount=500,
            merchant_transaction_id="T1R1",
            callback_url="https://shop.example.com/hooks/refund",
        )

        response = await client.post_refund(refund)

        sent = recorder.requests[0]
        assert str(sent.url).endswith("/pg/v1/refund")
        assert sent.headers["X-VERIFY"] == codec.encode_refund(refund.to_payload()).checksum
        assert response.message == "refund accepted"

    @pytest.mark.asyncio
    async def test_validate_vpa(self, settings):
        recorder = Recorder(body={"success": True, "code": "SUCCESS", "message": "valid", "data": {"name": "A"}})
        client = _client(settings, recorder)

        response = await client.validate_vpa("PGTESTPAYUAT", "buyer@upi")

        sent = recorder.requests[0]
        assert str(sent.url).endswith("/pg/v1/vpa/validate")
        assert sent.headers["X-MERCHANT-ID"] == "PGTESTPAYUAT"
        payload = json.loads(base64.b64decode(json.loads(sent.content)["request"]))
        assert payload == {"merchantId": "PGTESTPAYUAT", "vpa": "buyer@upi"}
        assert response.success is True

    @pytest.mark.asyncio
    async def test_cancel_clears_code_without_a_call(self, settings):
        recorder = Recorder()
        client = _client(settings, recorder)

        result = await client.cancel({"code": "PAYMENT_PENDING", "data": {"merchantTransactionId": "T1"}})

        assert result == {"code": None, "data": {"merchantTransactionId": "T1"}}
        assert recorder.requests == []
