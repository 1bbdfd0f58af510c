"""
Customer model for the Water Billing System.
"""

from decimal import Decimal

from django.core.validators import MinValueValidator
from django.db import models

from apps.core.utils import format_display_name


class Customer(models.Model):
    """
    A water service account holder tied to one meter.

    credit_balance is a cache of the customer's credit ledger and is only
    written by CreditLedgerService, in the same transaction as the ledger
    entry that explains the change.
    """

    first_name = models.CharField(
        max_length=100,
        help_text="Customer's first name."
    )
    last_name = models.CharField(
        max_length=100,
        help_text="Customer's last name."
    )
    meter_number = models.CharField(
        max_length=50,
        unique=True,
        help_text="Water meter serial number."
    )
    is_senior = models.BooleanField(
        default=False,
        help_text="Senior citizen — 20% discount on bills up to 30 cu.m."
    )
    credit_balance = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal('0.00'),
        validators=[MinValueValidator(Decimal('0'))],
        help_text="Prepaid credit available for future bills.",
    )
    credit_limit = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        null=True,
        blank=True,
        validators=[MinValueValidator(Decimal('0'))],
        help_text="Optional upper display bound for the credit balance.",
    )
    version = models.PositiveIntegerField(
        default=1,
        help_text="Optimistic lock counter, bumped on every balance write."
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'customers'
        ordering = ['last_name', 'first_name']
        constraints = [
            models.CheckConstraint(
                condition=models.Q(credit_balance__gte=0),
                name='customer_credit_balance_non_negative',
            ),
        ]

    def __str__(self):
        return f"{self.display_name} (Meter: {self.meter_number})"

    @property
    def full_name(self):
        """Returns the customer's full name."""
        return f"{self.first_name} {self.last_name}"

    @property
    def display_name(self):
        """Returns the customer's name as "Last, First"."""
        return format_display_name(self.first_name, self.last_name)
