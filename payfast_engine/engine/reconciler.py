"""
Status reconciliation: gateway status codes -> normalized session status.

Two paths feed the same mapping:

  1. Polling. ``check_authorization_with_backoff`` walks a fixed escalating
     schedule of backoff tiers (3s, 6s, 10s, 30s, 60s). Within a tier the
     status is polled up to ``MAX_ATTEMPTS_PER_TIER`` times, ``delay``
     seconds apart, stopping the moment it reads AUTHORIZED. An exhausted
     tier moves on to the next, slower one; when every tier is exhausted
     the result is ERROR. Any other error raised inside a tier aborts the
     whole reconciliation.
  2. Webhooks. The processor decodes a verified notification and its code
     goes through ``map_status`` like a polled one.

Unknown codes map to PENDING so an unrecognized reply is retried rather
than treated as terminal.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional, Sequence

from tenacity import AsyncRetrying, RetryError, retry_if_result, stop_after_attempt, wait_fixed

from payfast_engine.config import Settings, settings as default_settings
from payfast_engine.models.enums import PaymentSessionStatus, PaymentStatusCode
from payfast_engine.models.payment import TransactionIdentifier
from payfast_engine.providers.base import PaymentGateway

logger = logging.getLogger("payfast_engine.reconciler")

RETRY_DELAYS: tuple[float, ...] = (3.0, 6.0, 10.0, 30.0, 60.0)
MAX_ATTEMPTS_PER_TIER = 10

STATUS_MAP: dict[str, PaymentSessionStatus] = {
    PaymentStatusCode.PAYMENT_PENDING.value: PaymentSessionStatus.PENDING,
    PaymentStatusCode.BAD_REQUEST.value: PaymentSessionStatus.ERROR,
    PaymentStatusCode.INTERNAL_SERVER_ERROR.value: PaymentSessionStatus.ERROR,
    PaymentStatusCode.AUTHORIZATION_FAILED.value: PaymentSessionStatus.ERROR,
    PaymentStatusCode.TRANSACTION_NOT_FOUND.value: PaymentSessionStatus.CANCELED,
    PaymentStatusCode.PAYMENT_SUCCESS.value: PaymentSessionStatus.AUTHORIZED,
}


def map_status(code: Optional[str]) -> PaymentSessionStatus:
    """Normalize a gateway code. Anything outside the table is PENDING."""
    if isinstance(code, PaymentStatusCode):
        code = code.value
    return STATUS_MAP.get(code or "", PaymentSessionStatus.PENDING)


def _not_authorized(status: PaymentSessionStatus) -> bool:
    return status != PaymentSessionStatus.AUTHORIZED


class StatusReconciler:
    """Polls the gateway until a payment attempt is authorized or gives up."""

    def __init__(
        self,
        gateway: PaymentGateway,
        settings: Optional[Settings] = None,
        delays: Sequence[float] = RETRY_DELAYS,
        max_attempts: int = MAX_ATTEMPTS_PER_TIER,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.gateway = gateway
        self.settings = settings or default_settings
        self.delays = tuple(delays)
        self.max_attempts = max_attempts
        self._sleep = sleep

    async def get_payment_status(self, identifier: TransactionIdentifier) -> PaymentSessionStatus:
        """Query once. Any failure (network, malformed reply) becomes ERROR."""
        try:
            response = await self.gateway.get_transaction_status(
                identifier.merchant_id, identifier.merchant_transaction_id
            )
            if self.settings.enabled_debug_logging:
                logger.debug("response from payfast: %s", response.to_dict())
            return map_status(response.code)
        except Exception as e:
            logger.error(
                "error from payfast for %s: %s: %s",
                identifier.merchant_transaction_id,
                type(e).__name__,
                e,
            )
            return PaymentSessionStatus.ERROR

    def _log_retry(self, retry_state) -> None:
        logger.debug(
            "poll %d/%d not authorized, next in %.1fs",
            retry_state.attempt_number,
            self.max_attempts,
            retry_state.next_action.sleep if retry_state.next_action else 0.0,
        )

    async def poll_tier(
        self, identifier: TransactionIdentifier, delay: float, max_attempts: int
    ) -> PaymentSessionStatus:
        """
        Poll up to ``max_attempts`` times, ``delay`` seconds apart.

        Returns AUTHORIZED as soon as it is seen.

        Raises:
            RetryError: every attempt came back not authorized.
        """
        retrying = AsyncRetrying(
            sleep=self._sleep,
            stop=stop_after_attempt(max_attempts),
            wait=wait_fixed(delay),
            retry=retry_if_result(_not_authorized),
            before_sleep=self._log_retry,
        )
        return await retrying(self.get_payment_status, identifier)

    async def check_authorization_with_backoff(self, identifier: TransactionIdentifier) -> PaymentSessionStatus:
        for delay in self.delays:
            try:
                return await self.poll_tier(identifier, delay, self.max_attempts)
            except RetryError:
                logger.info(
                    "Not authorized after %d polls at %.0fs for %s; backing off",
                    self.max_attempts,
                    delay,
                    identifier.merchant_transaction_id,
                )

        logger.warning(
            "Backoff schedule exhausted for %s without authorization",
            identifier.merchant_transaction_id,
        )
        return PaymentSessionStatus.ERROR
