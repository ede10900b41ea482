"""
PayFast payment processor: the operation set an order system calls.

Every public operation returns either a success payload or a
``PaymentProcessorError`` envelope; none of them raises. The flow of one
payment attempt:

  1. initiate   - build a per-attempt request; post it when the session is
                  ready to pay, otherwise answer locally with a
                  "payment initiated" placeholder (AWAITING_CONFIRMATION)
  2. authorize  - reconcile the attempt's status with backoff polling
  3. capture / cancel / refund / retrieve - thin wrappers over the gateway
                  that pass already-terminal conflicts through as success
  4. webhooks   - verified notifications become typed ``PayFastEvent``s;
                  anything malformed or forged becomes an error event

Gateway identity and intent options are plain constructor values, so one
class serves every configuration without subclassing.
"""

import base64
import json
import logging
from typing import Any, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from payfast_engine.codec.checksum import ChecksumCodec, Sha256ChecksumCodec
from payfast_engine.config import Settings, settings as default_settings
from payfast_engine.engine.errors import (
    GatewayStateError,
    IntegrityError,
    PaymentProcessorError,
    ReconciliationTimeoutError,
    ValidationError,
    build_error,
)
from payfast_engine.engine.reconciler import StatusReconciler, map_status
from payfast_engine.engine.sequence import AttemptSequence
from payfast_engine.models.enums import (
    ErrorCodes,
    ErrorIntentStatus,
    PaymentSessionStatus,
    PaymentStatusCode,
    ProcessorState,
)
from payfast_engine.models.payment import (
    AuthorizationResult,
    PayFastEvent,
    PaymentIntentOptions,
    PaymentProcessorContext,
    PaymentProcessorSessionResponse,
    PaymentRequest,
    PaymentResponse,
    RefundRequest,
    TransactionIdentifier,
)
from payfast_engine.providers.base import PaymentGateway
from payfast_engine.providers.payfast_client import PayFastClient

logger = logging.getLogger("payfast_engine.processor")

PROVIDER_ID = "payfast"
ERROR_EVENT_ID = "error_id"

# Process-wide counters shared by processors that are not given their own.
# Refunds draw from a separate counter so they never consume attempt ids.
default_sequence = AttemptSequence()
default_refund_sequence = AttemptSequence()

_STATE_FOR_STATUS = {
    PaymentSessionStatus.PENDING: ProcessorState.PENDING,
    PaymentSessionStatus.AUTHORIZED: ProcessorState.AUTHORIZED,
    PaymentSessionStatus.ERROR: ProcessorState.ERROR,
    PaymentSessionStatus.CANCELED: ProcessorState.CANCELED,
}

ProcessorResult = Union[PaymentProcessorError, dict[str, Any]]


def state_for_status(status: PaymentSessionStatus) -> ProcessorState:
    return _STATE_FOR_STATUS[status]


def _terminal_intent(error: GatewayStateError, *accepted: ErrorIntentStatus) -> Optional[dict[str, Any]]:
    status = (error.payment_intent or {}).get("status")
    if status is not None and any(status == s.value for s in accepted):
        return error.payment_intent
    return None


class PayFastProcessor:
    """Facade over the gateway client and the status reconciler."""

    def __init__(
        self,
        gateway: Optional[PaymentGateway] = None,
        settings: Optional[Settings] = None,
        reconciler: Optional[StatusReconciler] = None,
        sequence: Optional[AttemptSequence] = None,
        refund_sequence: Optional[AttemptSequence] = None,
        intent_options: Optional[PaymentIntentOptions] = None,
        codec: Optional[ChecksumCodec] = None,
        identifier: str = PROVIDER_ID,
    ):
        self.settings = settings or default_settings
        self.gateway = gateway or PayFastClient(self.settings)
        self.codec = codec or Sha256ChecksumCodec(self.settings.salt, self.settings.salt_index)
        self.reconciler = reconciler or StatusReconciler(self.gateway, self.settings)
        self.sequence = sequence or default_sequence
        self.refund_sequence = refund_sequence or default_refund_sequence
        self.intent_options = intent_options or PaymentIntentOptions()
        self.identifier = identifier

    def _debug(self, message: str, *args: Any) -> None:
        if self.settings.enabled_debug_logging:
            logger.info(message, *args)

    def get_payment_intent_options(self) -> dict[str, Any]:
        """Only the intent options that are actually set."""
        options: dict[str, Any] = {}
        if self.intent_options.capture_method:
            options["capture_method"] = self.intent_options.capture_method
        if self.intent_options.setup_future_usage:
            options["setup_future_usage"] = self.intent_options.setup_future_usage
        if self.intent_options.payment_method_types:
            options["payment_method_types"] = list(self.intent_options.payment_method_types)
        return options

    async def get_payment_status(self, session_data: dict[str, Any]) -> PaymentSessionStatus:
        """Single status read for the attempt described by ``session_data``."""
        try:
            identifier = TransactionIdentifier.from_session_data(session_data)
        except AttributeError:
            return PaymentSessionStatus.ERROR
        return await self.reconciler.get_payment_status(identifier)

    # ── Initiation ──────────────────────────────────────────────────────

    async def initiate_payment(
        self, context: Union[PaymentProcessorContext, dict[str, Any]]
    ) -> Union[PaymentProcessorError, PaymentProcessorSessionResponse]:
        try:
            ctx = (
                context
                if isinstance(context, PaymentProcessorContext)
                else PaymentProcessorContext.model_validate(context)
            )
        except PydanticValidationError as e:
            logger.warning("rejected payment context: %s", e)
            return ValidationError(
                error="initialization error",
                code=ErrorCodes.VALIDATION_FAILED.value,
                detail=str(e),
            )

        attempt = self.sequence.next()
        customer = ctx.customer
        base_transaction_id = ctx.payment_session_data.get("merchantTransactionId") or ctx.resource_id
        request = self.gateway.create_standard_request(
            ctx.amount,
            base_transaction_id,
            (customer.id if customer and customer.id else None) or ctx.email,
            customer.phone if customer else None,
            attempt,
        )
        logger.info("attempt=%d resource=%s amount=%d", attempt, ctx.resource_id, ctx.amount)

        if isinstance(request, PaymentProcessorError):
            logger.warning("invalid payment request for %s: %s", ctx.resource_id, request.detail)
            return build_error("initialization error", request)

        try:
            if ctx.payment_session_data.get("readyToPay"):
                response = await self.gateway.post_payment(request)
                state = ProcessorState.INITIATED
            else:
                response = self.intermediate_payment_response(request)
                state = ProcessorState.AWAITING_CONFIRMATION
        except Exception as e:
            logger.error("error from payfast: %s: %s", type(e).__name__, e)
            return build_error("initialization error", e)

        self._debug("response from payfast: %s", response.to_dict())
        return PaymentProcessorSessionResponse(
            session_data={
                **response.to_dict(),
                "customer": customer.model_dump() if customer else None,
                "state": state.value,
            },
            update_requests={"customer_metadata": {"payfast_id": customer.id if customer else None}},
        )

    def intermediate_payment_response(self, request: PaymentRequest) -> PaymentResponse:
        """Local placeholder for a session that is not ready to pay yet."""
        return PaymentResponse(
            success=False,
            code=PaymentStatusCode.PAYMENT_INITIATED.value,
            message="initiating payment",
            data={
                "merchantId": request.merchant_id,
                "merchantTransactionId": request.merchant_transaction_id,
                "instrumentResponse": None,
                "customer": {"id": request.merchant_user_id},
            },
        )

    async def update_payment(
        self, context: Union[PaymentProcessorContext, dict[str, Any]]
    ) -> Union[PaymentProcessorError, PaymentProcessorSessionResponse]:
        """An update is a fresh initiation with the new context."""
        logger.info("update request received, re-initiating payment")
        return await self.initiate_payment(context)

    async def update_payment_data(self, session_id: str, data: dict[str, Any]) -> Any:
        if data.get("amount"):
            return await self.initiate_payment(data)
        return data

    # ── Authorization ───────────────────────────────────────────────────

    async def authorize_payment(
        self, session_data: dict[str, Any], context: Optional[dict[str, Any]] = None
    ) -> Union[PaymentProcessorError, AuthorizationResult]:
        try:
            identifier = TransactionIdentifier.from_session_data(session_data)
            if not identifier.is_complete:
                return ValidationError(
                    error="authorization error",
                    code=ErrorCodes.VALIDATION_FAILED.value,
                    detail="session data has no merchantId/merchantTransactionId",
                )
            status = await self.reconciler.check_authorization_with_backoff(identifier)
        except Exception as e:
            return PaymentProcessorError(error=str(e), code=type(e).__name__)

        error = None
        if status == PaymentSessionStatus.ERROR:
            error = ReconciliationTimeoutError(
                error="authorization not confirmed",
                code="RECONCILIATION_TIMEOUT",
                detail=f"{identifier.merchant_transaction_id} not authorized after "
                f"{len(self.reconciler.delays)} backoff tiers",
            )
        return AuthorizationResult(status=status, data=session_data, error=error)

    # ── Gateway wrappers ────────────────────────────────────────────────

    async def capture_payment(self, session_data: dict[str, Any]) -> ProcessorResult:
        try:
            intent = await self.gateway.capture(session_data.get("data") or {})
            return intent.to_dict()
        except GatewayStateError as e:
            terminal = _terminal_intent(e, ErrorIntentStatus.SUCCEEDED)
            if e.code == ErrorCodes.PAYMENT_INTENT_UNEXPECTED_STATE.value and terminal is not None:
                return terminal
            return build_error("An error occurred in capturePayment", e)
        except Exception as e:
            return build_error("An error occurred in capturePayment", e)

    async def cancel_payment(self, session_data: dict[str, Any]) -> ProcessorResult:
        try:
            cleared = await self.gateway.cancel(session_data)
            return {**cleared, "state": ProcessorState.CANCELED.value}
        except GatewayStateError as e:
            terminal = _terminal_intent(e, ErrorIntentStatus.CANCELED)
            if terminal is not None:
                return terminal
            return build_error("An error occurred in cancelPayment", e)
        except Exception as e:
            return build_error("An error occurred in cancelPayment", e)

    async def delete_payment(self, session_data: dict[str, Any]) -> ProcessorResult:
        return await self.cancel_payment(session_data)

    async def refund_payment(self, session_data: dict[str, Any], refund_amount: int) -> ProcessorResult:
        try:
            past = session_data.get("data") or {}
            original_id = past["merchantTransactionId"]
            refund = RefundRequest(
                merchant_id=past.get("merchantId") or self.settings.merchant_id,
                original_transaction_id=original_id,
                amount=int(refund_amount),
                merchant_transaction_id=f"{original_id}R{self.refund_sequence.next()}",
                callback_url=f"{self.settings.callback_url}/hooks/refund",
                merchant_user_id=(session_data.get("customer") or {}).get("id"),
            )
            response = await self.gateway.post_refund(refund)
            self._debug("response from payfast: %s", response.to_dict())
            return response.to_dict()
        except GatewayStateError as e:
            terminal = _terminal_intent(e, ErrorIntentStatus.SUCCEEDED, ErrorIntentStatus.CANCELED)
            if terminal is not None:
                return terminal
            logger.error("refund rejected by payfast: %s", e)
            return build_error("An error occurred in refundPayment", e)
        except Exception as e:
            logger.error("refund failed: %s: %s", type(e).__name__, e)
            return build_error("An error occurred in refundPayment", e)

    async def retrieve_payment(self, session_data: dict[str, Any]) -> ProcessorResult:
        try:
            data = session_data.get("data") or {}
            intent = await self.gateway.get_transaction_status(
                data.get("merchantId"), data.get("merchantTransactionId")
            )
            self._debug("response from payfast: %s", intent.to_dict())
            return {**intent.to_dict(), "state": state_for_status(map_status(intent.code)).value}
        except GatewayStateError as e:
            terminal = _terminal_intent(e, ErrorIntentStatus.SUCCEEDED, ErrorIntentStatus.CANCELED)
            if terminal is not None:
                return terminal
            return build_error("An error occurred in retrievePayment", e)
        except Exception as e:
            logger.error("retrieve failed: %s: %s", type(e).__name__, e)
            return build_error("An error occurred in retrievePayment", e)

    # ── Webhooks ────────────────────────────────────────────────────────

    @staticmethod
    def _decode_webhook(encoded_data: str) -> Optional[dict[str, Any]]:
        try:
            decoded = json.loads(base64.b64decode(encoded_data, validate=True))
        except (TypeError, ValueError, RecursionError):
            # RecursionError: pathologically nested JSON
            return None
        return decoded if isinstance(decoded, dict) else None

    def construct_webhook_event(self, encoded_data: str, signature: str) -> PayFastEvent:
        """
        Turn a raw webhook notification into a typed event.

        Depends only on the payload, the signature and the configured salt.
        An unverifiable or undecodable notification always yields a
        PAYMENT_ERROR event carrying an integrity envelope; this never raises.
        """
        decoded = self._decode_webhook(encoded_data)
        data = decoded.get("data") if decoded else None
        transaction_id = data.get("merchantTransactionId") if isinstance(data, dict) else None

        if decoded is not None and self.codec.verify(encoded_data, signature, self.settings.salt):
            return PayFastEvent(
                type=str(decoded.get("code") or PaymentStatusCode.PAYMENT_ERROR.value),
                id=str(transaction_id or ERROR_EVENT_ID),
                data={"object": decoded},
            )

        logger.warning("webhook validation failed for id=%s", transaction_id or ERROR_EVENT_ID)
        envelope = IntegrityError(
            error="Webhook validation error",
            code="WEBHOOK_VALIDATION_FAILED",
            detail="error validating data",
        )
        return PayFastEvent(
            type=PaymentStatusCode.PAYMENT_ERROR.value,
            id=str(transaction_id or ERROR_EVENT_ID),
            data={"object": envelope.to_dict()},
            verified=False,
        )
