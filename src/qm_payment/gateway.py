"""MockPaymentGateway — simulated card processor for development.

Constructed explicitly and handed to whoever needs it (the app creates one
in its lifespan and exposes it through a dependency); there is no
process-wide instance. Randomness and latency are injectable so tests can
make outcomes deterministic.
"""

import asyncio
import logging
import random
import string
from decimal import Decimal

from src.qm_common.datetime_utils import Clock, utc_now
from src.qm_common.enums import PaymentStatus
from src.qm_common.money import to_money
from src.qm_payment.domain.models import PaymentIntent, PaymentResult

logger = logging.getLogger(__name__)

_ID_ALPHABET = string.ascii_lowercase + string.digits


class MockPaymentGateway:
    def __init__(
        self,
        success_rate: float = 0.8,
        create_latency_s: float = 1.0,
        process_latency_s: float = 2.0,
        rng: random.Random | None = None,
        clock: Clock = utc_now,
    ) -> None:
        if not 0.0 <= success_rate <= 1.0:
            raise ValueError(f"success_rate must be within [0, 1], got {success_rate}")
        self.success_rate = success_rate
        self._create_latency_s = create_latency_s
        self._process_latency_s = process_latency_s
        self._rng = rng or random.Random()
        self._clock = clock
        self._intents: dict[str, PaymentIntent] = {}
        logger.info("MockPaymentGateway initialized (success_rate=%.0f%%)", success_rate * 100)

    def _new_intent_id(self) -> str:
        return "pi_" + "".join(self._rng.choice(_ID_ALPHABET) for _ in range(9))

    async def create_payment_intent(
        self, amount: Decimal, currency: str = "INR"
    ) -> PaymentIntent:
        await asyncio.sleep(self._create_latency_s)
        intent = PaymentIntent(
            id=self._new_intent_id(),
            amount=to_money(amount),
            currency=currency,
            status=PaymentStatus.PENDING,
            created_at=self._clock(),
        )
        self._intents[intent.id] = intent
        return intent

    async def process_payment(self, intent_id: str) -> PaymentResult:
        intent = self._intents.get(intent_id)
        if intent is not None:
            intent.status = PaymentStatus.PROCESSING
        await asyncio.sleep(self._process_latency_s)
        if intent is None:
            return PaymentResult(success=False, error="Payment intent not found")

        if self._rng.random() < self.success_rate:
            intent.status = PaymentStatus.SUCCEEDED
            return PaymentResult(success=True, payment_intent=intent)

        intent.status = PaymentStatus.FAILED
        logger.warning("Mock payment %s failed (simulated)", intent_id)
        return PaymentResult(
            success=False,
            payment_intent=intent,
            error="Payment failed due to insufficient funds",
        )

    async def get_payment_status(self, intent_id: str) -> PaymentStatus | None:
        intent = self._intents.get(intent_id)
        return intent.status if intent else None
