"""Payment domain models — pure dataclasses."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from src.qm_common.enums import PaymentStatus


@dataclass
class PaymentIntent:
    id: str
    amount: Decimal
    currency: str
    status: PaymentStatus
    created_at: datetime


@dataclass(frozen=True)
class PaymentResult:
    success: bool
    payment_intent: PaymentIntent | None = None
    error: str | None = None
