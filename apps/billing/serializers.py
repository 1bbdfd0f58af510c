"""
Billing serializers for the Water Billing System.
"""

from decimal import Decimal

from rest_framework import serializers

from apps.billing.lifecycle import effective_status
from apps.billing.models import Bill, PaymentSubmission


class BillReadingsSerializer(serializers.Serializer):
    """Serializer for the readings and flags a bill is computed from."""

    previous_reading = serializers.DecimalField(
        max_digits=12,
        decimal_places=2,
        min_value=Decimal('0'),
        required=True,
        help_text="Previous meter reading (cu.m).",
    )
    current_reading = serializers.DecimalField(
        max_digits=12,
        decimal_places=2,
        min_value=Decimal('0'),
        required=True,
        help_text="Current meter reading (cu.m).",
    )
    is_senior = serializers.BooleanField(
        required=False,
        default=False,
        help_text="Apply the senior citizen discount.",
    )
    penalty_applied = serializers.BooleanField(
        required=False,
        default=False,
        help_text="Apply the 10% late payment penalty.",
    )

    def validate(self, attrs):
        """Current reading must not be below the previous reading."""
        if attrs['current_reading'] < attrs['previous_reading']:
            raise serializers.ValidationError(
                "Current reading cannot be lower than the previous reading."
            )
        return attrs


class CreateBillSerializer(BillReadingsSerializer):
    """Serializer for bill creation request."""

    customer_id = serializers.IntegerField(
        min_value=1,
        required=True,
        help_text="Customer's ID.",
    )
    meter_number = serializers.CharField(
        max_length=50,
        required=False,
        allow_blank=True,
        help_text="Defaults to the customer's meter.",
    )
    is_senior = serializers.BooleanField(
        required=False,
        allow_null=True,
        default=None,
        help_text="Defaults to the customer's senior flag.",
    )
    due_date = serializers.DateField(
        required=False,
        allow_null=True,
        help_text="Defaults to the next billing due date.",
    )


class BillComputationSerializer(serializers.Serializer):
    """Serializer for a computed (not yet stored) bill."""

    consumption = serializers.DecimalField(max_digits=12, decimal_places=2)
    base_amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    senior_discount = serializers.DecimalField(max_digits=12, decimal_places=2)
    penalty = serializers.DecimalField(max_digits=12, decimal_places=2)
    final_amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    due_date = serializers.DateField()


class BillSerializer(serializers.ModelSerializer):
    """Serializer for bill responses."""

    bill_id = serializers.IntegerField(source='pk', read_only=True)
    customer_id = serializers.IntegerField(read_only=True)
    customer_name = serializers.CharField(source='customer.display_name', read_only=True)
    remaining_due = serializers.DecimalField(
        max_digits=12, decimal_places=2, read_only=True,
    )
    effective_status = serializers.SerializerMethodField()

    class Meta:
        model = Bill
        fields = (
            'bill_id', 'customer_id', 'customer_name', 'meter_number',
            'previous_reading', 'current_reading', 'consumption',
            'is_senior', 'penalty_applied', 'base_amount', 'senior_discount',
            'penalty_amount', 'amount_due', 'credit_applied', 'amount_paid',
            'remaining_due',
            'due_date', 'status', 'effective_status', 'archived',
            'archived_at', 'version', 'created_at',
        )
        read_only_fields = fields

    def get_effective_status(self, bill):
        return effective_status(bill)


class CustomerBillingViewSerializer(serializers.Serializer):
    """Serializer for one customer's grouped billing summary."""

    customer_id = serializers.IntegerField()
    customer_name = serializers.CharField(source='display_name')
    first_name = serializers.CharField()
    last_name = serializers.CharField()
    meter_number = serializers.CharField()
    latest_bill = BillSerializer()
    total_outstanding = serializers.DecimalField(max_digits=14, decimal_places=2)
    status = serializers.CharField()
    total_bills = serializers.IntegerField()


class OverdueBillSerializer(serializers.Serializer):
    """Serializer for an overdue bill entry."""

    bill = BillSerializer()
    days_overdue = serializers.IntegerField()


class StatusOverrideSerializer(serializers.Serializer):
    """Serializer for a staff status override."""

    status = serializers.ChoiceField(choices=Bill.OVERRIDABLE_STATUSES)
    version = serializers.IntegerField(
        min_value=1,
        required=False,
        help_text="Bill version the change is based on.",
    )


class ArchiveBillSerializer(serializers.Serializer):
    """Serializer for archive requests."""

    version = serializers.IntegerField(
        min_value=1,
        required=False,
        help_text="Bill version the change is based on.",
    )


class ApplyCreditSerializer(serializers.Serializer):
    """Serializer for applying credit to a bill."""

    customer_id = serializers.IntegerField(
        min_value=1,
        required=False,
        help_text="Defaults to the bill's customer.",
    )


class ApplyCreditResponseSerializer(serializers.Serializer):
    """Serializer for the credit application result."""

    bill_id = serializers.IntegerField()
    amount_applied = serializers.DecimalField(max_digits=12, decimal_places=2)
    remaining_due = serializers.DecimalField(max_digits=12, decimal_places=2)
    new_status = serializers.CharField()
    credit_balance = serializers.DecimalField(max_digits=12, decimal_places=2)


class PaymentProofSerializer(serializers.Serializer):
    """Serializer for a customer's payment proof submission."""

    reference_number = serializers.CharField(
        max_length=100,
        required=True,
        help_text="Reference number printed on the receipt.",
    )
    amount = serializers.DecimalField(
        max_digits=12,
        decimal_places=2,
        min_value=Decimal('0.01'),
        required=True,
        help_text="Amount paid.",
    )
    proof_file = serializers.CharField(
        max_length=255,
        required=False,
        allow_blank=True,
        help_text="Storage path of the uploaded screenshot.",
    )

    def validate_reference_number(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError("Reference number is required.")
        return value


class PaymentSubmissionSerializer(serializers.ModelSerializer):
    """Serializer for payment submission responses."""

    submission_id = serializers.IntegerField(source='pk', read_only=True)
    bill_id = serializers.IntegerField(read_only=True)
    customer_id = serializers.IntegerField(read_only=True)

    class Meta:
        model = PaymentSubmission
        fields = (
            'submission_id', 'bill_id', 'customer_id', 'reference_number',
            'amount', 'proof_file', 'status', 'reviewed_by', 'reviewed_at',
            'remarks', 'created_at',
        )
        read_only_fields = fields


class ReviewPaymentSerializer(serializers.Serializer):
    """Serializer for a staff review decision."""

    status = serializers.ChoiceField(
        choices=[PaymentSubmission.APPROVED, PaymentSubmission.REJECTED],
    )
    reviewed_by = serializers.CharField(max_length=100, required=False, allow_blank=True)
    remarks = serializers.CharField(required=False, allow_blank=True)
