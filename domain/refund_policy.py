"""Refund computation for cancelled reservations

Kept free of I/O so every boundary of the schedule can be tested directly.
"""
import math
from datetime import datetime
from decimal import Decimal

from domain.enums import PaymentStatus
from domain.value_objects import RefundPolicy, ensure_utc, to_money

STANDARD_POLICY = RefundPolicy()

SECONDS_PER_DAY = 24 * 60 * 60


def days_until_start(start_date: datetime, now: datetime) -> int:
    """Whole days left before the stay, rounded up"""
    delta = ensure_utc(start_date) - ensure_utc(now)
    return math.ceil(delta.total_seconds() / SECONDS_PER_DAY)


def compute_refund(
    deposit_amount: Decimal,
    start_date: datetime,
    now: datetime,
    payment_status: PaymentStatus = PaymentStatus.PAID,
    policy: RefundPolicy = STANDARD_POLICY
) -> Decimal:
    """Map a deposit and cancellation time to the amount returned to the tenant"""
    if payment_status != PaymentStatus.PAID:
        return to_money(0)

    deposit = to_money(deposit_amount)
    if deposit <= 0:
        return to_money(0)

    days = days_until_start(start_date, now)
    if days > policy.full_refund_days:
        return deposit
    if days > policy.partial_refund_days:
        return to_money(deposit * policy.partial_refund_percentage / Decimal(100))
    return to_money(0)
