"""
Bill computation and due date rules.

Pure functions with no database access. They accept validated numeric
types only; form coercion happens in the serializers in front of them.
"""

from dataclasses import asdict, dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal

from dateutil.relativedelta import relativedelta

from apps.core.exceptions import ValidationError
from apps.core.utils import ZERO, quantize_money, to_decimal

DEFAULT_RATE_PER_UNIT = Decimal('50')
DEFAULT_DUE_DAY = 20

SENIOR_DISCOUNT_RATE = Decimal('0.20')
# Senior discount is forfeited entirely above this many cubic meters
SENIOR_DISCOUNT_MAX_CONSUMPTION = Decimal('30')
PENALTY_RATE = Decimal('0.10')

SATURDAY = 5
SUNDAY = 6


@dataclass(frozen=True)
class BillComputationResult:
    consumption: Decimal
    base_amount: Decimal
    senior_discount: Decimal
    penalty: Decimal
    final_amount: Decimal

    def as_dict(self) -> dict:
        return asdict(self)


def compute_due_date(reference_date: date, due_day: int = DEFAULT_DUE_DAY) -> date:
    """
    Calculate the billing due date for a reference date.

    The due date is the ``due_day`` of the reference month when the
    reference day is on or before it, otherwise the ``due_day`` of the
    following month. A Saturday due date moves to Monday (+2 days) and a
    Sunday due date to Monday (+1 day).

    A datetime is reduced to its own calendar date without any time
    zone conversion, so the result can never slide back a day.

    Examples:
        compute_due_date(date(2024, 3, 15)) → date(2024, 3, 20)
        compute_due_date(date(2024, 3, 25)) → date(2024, 4, 22)  (20th is a Saturday)
        compute_due_date(date(2024, 12, 21)) → date(2025, 1, 20)

    Raises:
        ValidationError: If reference_date is not a date.
    """
    if isinstance(reference_date, datetime):
        reference_date = reference_date.date()
    elif not isinstance(reference_date, date):
        raise ValidationError(
            detail=f"reference_date must be a date, got {type(reference_date).__name__}."
        )

    if reference_date.day <= due_day:
        due_date = reference_date + relativedelta(day=due_day)
    else:
        due_date = reference_date + relativedelta(months=1, day=due_day)

    weekday = due_date.weekday()
    if weekday == SUNDAY:
        due_date += timedelta(days=1)
    elif weekday == SATURDAY:
        due_date += timedelta(days=2)

    return due_date


def _validate_reading(value, field_name: str) -> Decimal:
    try:
        reading = to_decimal(value, field_name)
    except ValueError as exc:
        raise ValidationError(detail=str(exc))

    if reading < 0:
        raise ValidationError(detail=f"{field_name} cannot be negative.")

    return reading


def compute_bill(
    previous_reading,
    current_reading,
    is_senior: bool,
    penalty_applied: bool,
    rate_per_unit=DEFAULT_RATE_PER_UNIT,
) -> BillComputationResult:
    """
    Compute consumption and charges from two meter readings.

    Rules:
        consumption     = max(0, current - previous)
        base_amount     = consumption × rate_per_unit
        senior_discount = 20% of base_amount when is_senior and
                          consumption ≤ 30 cu.m, otherwise 0 (the discount
                          is forfeited, not prorated, above 30 cu.m)
        penalty         = 10% of base_amount when penalty_applied
        final_amount    = base_amount - senior_discount + penalty

    A current reading below the previous one is clamped to zero
    consumption; rejecting it is up to the caller.

    Args:
        previous_reading: Previous meter reading (finite, ≥ 0).
        current_reading: Current meter reading (finite, ≥ 0).
        is_senior: Whether the senior citizen discount applies.
        penalty_applied: Whether the late payment penalty applies.
        rate_per_unit: Charge per cubic meter.

    Returns:
        BillComputationResult with amounts quantized to 2 decimal places.

    Raises:
        ValidationError: If a reading or the rate is not a finite,
            non-negative number.
    """
    previous = _validate_reading(previous_reading, 'previous_reading')
    current = _validate_reading(current_reading, 'current_reading')
    rate = _validate_reading(rate_per_unit, 'rate_per_unit')

    consumption = max(Decimal('0'), current - previous)
    base_amount = quantize_money(consumption * rate)

    senior_discount = ZERO
    if is_senior and consumption <= SENIOR_DISCOUNT_MAX_CONSUMPTION:
        senior_discount = quantize_money(base_amount * SENIOR_DISCOUNT_RATE)

    # Penalty is always taken from the undiscounted base amount
    penalty = ZERO
    if penalty_applied:
        penalty = quantize_money(base_amount * PENALTY_RATE)

    final_amount = base_amount - senior_discount + penalty

    return BillComputationResult(
        consumption=quantize_money(consumption),
        base_amount=base_amount,
        senior_discount=senior_discount,
        penalty=penalty,
        final_amount=final_amount,
    )
