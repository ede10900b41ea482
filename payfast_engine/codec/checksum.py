"""
Checksum codec for PayFast requests and webhook notifications.

Outbound bodies are serialized to compact JSON and base64-encoded; the
X-VERIFY header is::

    sha256(<signed string> + salt) + "###" + salt_index

where the signed string is the encoded body followed by the API path for
POST calls, and just the API path for GET status calls. Inbound webhooks are
signed over the raw base64 body with no path.
"""

import base64
import hashlib
import hmac
import json
import logging
from dataclasses import dataclass
from typing import Any, Protocol

logger = logging.getLogger("payfast_engine.checksum")

PAY_PATH = "/pg/v1/pay"
STATUS_PATH = "/pg/v1/status"
REFUND_PATH = "/pg/v1/refund"
VPA_VALIDATE_PATH = "/pg/v1/vpa/validate"


@dataclass(frozen=True)
class EncodedMessage:
    encoded_body: str
    checksum: str


class ChecksumCodec(Protocol):
    """Contract every checksum implementation must satisfy."""

    def encode_payment(self, payload: dict[str, Any]) -> EncodedMessage: ...

    def encode_refund(self, payload: dict[str, Any]) -> EncodedMessage: ...

    def encode_vpa_validation(self, payload: dict[str, Any]) -> EncodedMessage: ...

    def encode_status(self, merchant_id: str, merchant_transaction_id: str) -> EncodedMessage: ...

    def verify(self, raw_body: str, signature: str, salt: str) -> bool: ...


def encode_body(payload: dict[str, Any]) -> str:
    """Canonical serialization: compact JSON, base64-encoded."""
    serialized = json.dumps(payload, separators=(",", ":"))
    return base64.b64encode(serialized.encode("utf-8")).decode("ascii")


def sign(message: str, salt: str, salt_index: int) -> str:
    digest = hashlib.sha256(f"{message}{salt}".encode("utf-8")).hexdigest()
    return f"{digest}###{salt_index}"


class Sha256ChecksumCodec:
    """Default SHA-256 salted checksum used by the PayFast API."""

    def __init__(self, salt: str, salt_index: int = 1):
        self.salt = salt
        self.salt_index = salt_index

    def _encode_post(self, payload: dict[str, Any], path: str) -> EncodedMessage:
        encoded = encode_body(payload)
        return EncodedMessage(
            encoded_body=encoded,
            checksum=sign(encoded + path, self.salt, self.salt_index),
        )

    def encode_payment(self, payload: dict[str, Any]) -> EncodedMessage:
        return self._encode_post(payload, PAY_PATH)

    def encode_refund(self, payload: dict[str, Any]) -> EncodedMessage:
        return self._encode_post(payload, REFUND_PATH)

    def encode_vpa_validation(self, payload: dict[str, Any]) -> EncodedMessage:
        return self._encode_post(payload, VPA_VALIDATE_PATH)

    def encode_status(self, merchant_id: str, merchant_transaction_id: str) -> EncodedMessage:
        path = f"{STATUS_PATH}/{merchant_id}/{merchant_transaction_id}"
        return EncodedMessage(encoded_body="", checksum=sign(path, self.salt, self.salt_index))

    def verify(self, raw_body: str, signature: str, salt: str) -> bool:
        """
        Recompute the webhook checksum and compare it to ``signature``.

        A mismatch is reported as ``False``; callers turn it into an
        error-typed event.
        """
        expected = sign(raw_body or "", salt, self.salt_index)
        is_valid = hmac.compare_digest(expected.encode("utf-8"), (signature or "").encode("utf-8"))
        logger.debug("verifying checksum received=%s computed=%s", signature, expected)
        if is_valid:
            logger.info("Valid checksum")
        return is_valid
