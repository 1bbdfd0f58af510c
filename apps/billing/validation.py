"""
Input adapter between raw form data and the billing core.

Form posts carry readings as strings or numbers and may omit fields.
``parse_bill_input`` coerces and checks them with the bill serializers
and reports the outcome as a tagged result instead of raising, so
callers can branch on ``outcome.ok``.
"""

from dataclasses import dataclass, field

from apps.billing.serializers import BillReadingsSerializer, CreateBillSerializer


@dataclass(frozen=True)
class ValidationOutcome:
    ok: bool
    data: dict = field(default_factory=dict)
    errors: dict = field(default_factory=dict)


def parse_bill_input(payload: dict, for_creation: bool = True) -> ValidationOutcome:
    """
    Validate and coerce bill form input.

    Args:
        payload: Raw request data.
        for_creation: Require customer_id and accept the creation-only
            fields (meter_number, due_date).

    Returns:
        ValidationOutcome with the coerced data on success, or the field
        errors on failure.
    """
    serializer_class = CreateBillSerializer if for_creation else BillReadingsSerializer
    serializer = serializer_class(data=payload)

    if serializer.is_valid():
        return ValidationOutcome(ok=True, data=dict(serializer.validated_data))

    return ValidationOutcome(ok=False, errors=dict(serializer.errors))
