"""
Customer serializers for the Water Billing System.
"""

from decimal import Decimal

from rest_framework import serializers

from apps.customers.models import Customer


class RegisterCustomerSerializer(serializers.Serializer):
    """Serializer for customer registration request."""

    first_name = serializers.CharField(
        max_length=100,
        required=True,
        help_text="Customer's first name.",
    )
    last_name = serializers.CharField(
        max_length=100,
        required=True,
        help_text="Customer's last name.",
    )
    meter_number = serializers.CharField(
        max_length=50,
        required=True,
        help_text="Water meter serial number.",
    )
    is_senior = serializers.BooleanField(
        required=False,
        default=False,
        help_text="Senior citizen flag.",
    )
    credit_limit = serializers.DecimalField(
        max_digits=12,
        decimal_places=2,
        min_value=Decimal('0'),
        required=False,
        allow_null=True,
        help_text="Optional display bound for the credit balance.",
    )

    def validate_meter_number(self, value):
        """Meter numbers are unique across customers."""
        value = value.strip()
        if Customer.objects.filter(meter_number=value).exists():
            raise serializers.ValidationError(
                "A customer with this meter number already exists."
            )
        return value


class CustomerResponseSerializer(serializers.ModelSerializer):
    """Serializer for customer detail responses."""

    customer_id = serializers.IntegerField(source='pk', read_only=True)
    name = serializers.CharField(source='display_name', read_only=True)

    class Meta:
        model = Customer
        fields = (
            'customer_id', 'name', 'first_name', 'last_name',
            'meter_number', 'is_senior', 'credit_balance', 'credit_limit',
            'created_at',
        )
        read_only_fields = fields
