"""
Core utility functions for the Water Billing System.

Contains money and number helpers used across the billing apps.
All financial calculations use Python's Decimal for precision.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation, getcontext

# Set high precision for intermediate financial calculations
getcontext().prec = 28

TWO_PLACES = Decimal('0.01')
ZERO = Decimal('0.00')


def quantize_money(amount: Decimal) -> Decimal:
    """Quantize an amount to centavos using ROUND_HALF_UP."""
    return Decimal(amount).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def to_decimal(value, field_name: str = 'value') -> Decimal:
    """
    Convert a numeric value to a finite Decimal.

    Accepts Decimal, int and float. Strings and bools are rejected:
    form coercion happens in the serializers, not here.

    Args:
        value: The number to convert.
        field_name: Name used in the error message.

    Returns:
        The value as Decimal.

    Raises:
        ValueError: If the value is not a finite number.
    """
    if isinstance(value, bool) or not isinstance(value, (Decimal, int, float)):
        raise ValueError(f"{field_name} must be a number, got {type(value).__name__}.")

    try:
        result = Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"{field_name} is not a valid number.")

    if not result.is_finite():
        raise ValueError(f"{field_name} must be a finite number.")

    return result


def format_display_name(first_name: str, last_name: str, fallback: str = '') -> str:
    """
    Format a customer name as "Last, First".

    Examples:
        format_display_name('Juan', 'Dela Cruz') → 'Dela Cruz, Juan'
        format_display_name('', 'Santos') → 'Santos'
    """
    first_name = (first_name or '').strip()
    last_name = (last_name or '').strip()

    if last_name and first_name:
        return f"{last_name}, {first_name}"
    return last_name or first_name or fallback
