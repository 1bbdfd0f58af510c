"""
Billing models for the Water Billing System.
"""

from decimal import Decimal

from django.core.validators import MinValueValidator
from django.db import models


class Bill(models.Model):
    """
    One billing cycle's charge for a customer-meter pair.

    Amounts are frozen at creation from the readings and flags stored on
    the bill. After that a bill only changes through status overrides,
    archiving or credit application, and it is never deleted.
    """

    UNPAID = 'Unpaid'
    PARTIALLY_PAID = 'Partially Paid'
    PAID = 'Paid'
    OVERDUE = 'Overdue'

    STATUS_CHOICES = [
        (UNPAID, 'Unpaid'),
        (PARTIALLY_PAID, 'Partially Paid'),
        (PAID, 'Paid'),
        (OVERDUE, 'Overdue'),
    ]

    # Statuses staff may set directly
    OVERRIDABLE_STATUSES = (UNPAID, PARTIALLY_PAID, PAID)

    customer = models.ForeignKey(
        'customers.Customer',
        on_delete=models.PROTECT,
        related_name='bills',
        db_index=True,
        help_text="The customer billed."
    )
    meter_number = models.CharField(
        max_length=50,
        help_text="Meter the readings were taken from."
    )

    # ── Readings ──────────────────────────────────────────────
    previous_reading = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0'))],
    )
    current_reading = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0'))],
    )
    consumption = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        help_text="Cubic meters consumed (current - previous, never negative)."
    )

    # ── Charge breakdown ──────────────────────────────────────
    is_senior = models.BooleanField(default=False)
    penalty_applied = models.BooleanField(default=False)
    base_amount = models.DecimalField(max_digits=12, decimal_places=2)
    senior_discount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal('0.00'),
    )
    penalty_amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal('0.00'),
    )
    amount_due = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0'))],
        help_text="base_amount - senior_discount + penalty_amount.",
    )
    credit_applied = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal('0.00'),
        help_text="Customer credit already consumed by this bill.",
    )
    amount_paid = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal('0.00'),
        help_text="Manual payments approved through payment proofs.",
    )

    # ── Lifecycle ─────────────────────────────────────────────
    due_date = models.DateField()
    status = models.CharField(
        max_length=20,
        choices=STATUS_CHOICES,
        default=UNPAID,
        db_index=True,
    )
    archived = models.BooleanField(default=False, db_index=True)
    archived_at = models.DateTimeField(null=True, blank=True)
    version = models.PositiveIntegerField(default=1)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'bills'
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(
                fields=['customer', 'archived'],
                name='idx_bill_customer_archived'
            ),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(amount_due__gte=0),
                name='bill_amount_due_non_negative',
            ),
            models.CheckConstraint(
                condition=models.Q(current_reading__gte=models.F('previous_reading')),
                name='bill_current_reading_gte_previous',
            ),
        ]

    def __str__(self):
        return (
            f"Bill #{self.pk} - Customer: {self.customer_id} "
            f"- Due: {self.amount_due} ({self.status})"
        )

    @property
    def remaining_due(self):
        """Amount still owed after credit and approved manual payments."""
        return max(
            Decimal('0.00'),
            self.amount_due - self.credit_applied - self.amount_paid,
        )


class PaymentSubmission(models.Model):
    """
    Proof of a manual payment sent in by a customer.

    Staff compare the reference number and screenshot against the
    collection records and approve or reject the submission.
    """

    PENDING = 'pending'
    APPROVED = 'approved'
    REJECTED = 'rejected'

    STATUS_CHOICES = [
        (PENDING, 'Pending Review'),
        (APPROVED, 'Approved'),
        (REJECTED, 'Rejected'),
    ]

    bill = models.ForeignKey(
        Bill,
        on_delete=models.PROTECT,
        related_name='payment_submissions',
    )
    customer = models.ForeignKey(
        'customers.Customer',
        on_delete=models.PROTECT,
        related_name='payment_submissions',
    )
    reference_number = models.CharField(
        max_length=100,
        help_text="Reference number printed on the payment receipt."
    )
    amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.01'))],
    )
    proof_file = models.CharField(
        max_length=255,
        blank=True,
        help_text="Storage path of the uploaded screenshot."
    )
    status = models.CharField(
        max_length=20,
        choices=STATUS_CHOICES,
        default=PENDING,
        db_index=True,
    )
    reviewed_by = models.CharField(max_length=100, blank=True)
    reviewed_at = models.DateTimeField(null=True, blank=True)
    remarks = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'payment_submissions'
        ordering = ['-created_at', '-id']

    def __str__(self):
        return (
            f"Payment proof #{self.pk} - Bill #{self.bill_id} "
            f"- Ref: {self.reference_number} ({self.status})"
        )
