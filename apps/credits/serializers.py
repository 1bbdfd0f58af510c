"""
Credit ledger serializers for the Water Billing System.

Amounts are coerced here but not range-checked: the ledger service owns
the positive-amount rule so every caller gets the same error.
"""

from rest_framework import serializers

from apps.credits.models import CreditTransaction
from apps.customers.models import Customer


class CreditAmountSerializer(serializers.Serializer):
    """Serializer for add/deduct credit requests."""

    customer_id = serializers.IntegerField(
        min_value=1,
        required=True,
        help_text="Customer's ID.",
    )
    amount = serializers.DecimalField(
        max_digits=12,
        decimal_places=2,
        required=True,
        help_text="Credit amount (must be greater than zero).",
    )
    description = serializers.CharField(
        required=False,
        allow_blank=True,
        default='',
    )


class AdjustCreditSerializer(serializers.Serializer):
    """Serializer for balance adjustment requests."""

    customer_id = serializers.IntegerField(min_value=1, required=True)
    new_balance = serializers.DecimalField(
        max_digits=12,
        decimal_places=2,
        required=True,
        help_text="Exact balance the customer should end up with.",
    )
    reason = serializers.CharField(required=False, allow_blank=True, default='')


class CreditTransactionSerializer(serializers.ModelSerializer):
    """Serializer for ledger entries."""

    transaction_id = serializers.IntegerField(source='pk', read_only=True)
    customer_id = serializers.IntegerField(read_only=True)
    bill_id = serializers.IntegerField(read_only=True, allow_null=True)

    class Meta:
        model = CreditTransaction
        fields = (
            'transaction_id', 'customer_id', 'amount', 'transaction_type',
            'reference_type', 'description', 'bill_id', 'balance_after',
            'created_at',
        )
        read_only_fields = fields


class CustomerCreditSerializer(serializers.ModelSerializer):
    """Serializer for a customer's credit summary."""

    customer_id = serializers.IntegerField(source='pk', read_only=True)
    customer_name = serializers.CharField(source='display_name', read_only=True)

    class Meta:
        model = Customer
        fields = (
            'customer_id', 'customer_name', 'meter_number',
            'credit_balance', 'credit_limit',
        )
        read_only_fields = fields
