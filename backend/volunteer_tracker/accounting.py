"""Progress and penalty arithmetic for a family's volunteer hours.

All values are ``Decimal`` so that the penalty (a dollar amount) never picks
up floating point drift.  The penalty is rounded to whole cents.
"""

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP

from volunteer_tracker.exceptions import ValidationError

CENTS = Decimal("0.01")
HUNDRED = Decimal("100")


@dataclass(frozen=True)
class ProgressSummary:
    total_hours: Decimal
    required_hours: int
    hours_remaining: Decimal
    progress_percentage: Decimal
    penalty: Decimal


def to_decimal(value) -> Decimal:
    """Coerce ints, floats, strings or ``None`` (empty sum) to ``Decimal``."""
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    # str() keeps 0.1 as 0.1 rather than its binary expansion
    return Decimal(str(value))


def calculate_progress(total_hours, required_hours: int, hourly_rate) -> ProgressSummary:
    """Return remaining hours, percentage complete and the penalty owed.

    ``hours_remaining`` never goes below zero and ``progress_percentage`` is
    clamped to ``[0, 100]``, so a family that over-delivers owes nothing.
    """
    if required_hours <= 0:
        raise ValidationError(
            "Required hours must be greater than zero", field="required_hours"
        )
    total = max(Decimal("0"), to_decimal(total_hours))
    required = Decimal(required_hours)
    rate = to_decimal(hourly_rate)

    remaining = max(Decimal("0"), required - total)
    percentage = min(HUNDRED, total / required * HUNDRED).quantize(
        CENTS, rounding=ROUND_HALF_UP
    )
    penalty = (remaining * rate).quantize(CENTS, rounding=ROUND_HALF_UP)
    return ProgressSummary(
        total_hours=total,
        required_hours=required_hours,
        hours_remaining=remaining,
        progress_percentage=percentage,
        penalty=penalty,
    )


def is_quarter_hour_multiple(hours) -> bool:
    # hours * 4 stays exact where a remainder would overflow the context
    quarters = to_decimal(hours) * 4
    return quarters.is_finite() and quarters == quarters.to_integral_value()
