"""
Credit ledger model for the Water Billing System.
"""

from django.db import models


class CreditTransaction(models.Model):
    """
    One append-only entry in a customer's credit ledger.

    amount is signed: positive for credit added, negative for credit
    consumed. The sum of a customer's amounts always equals
    Customer.credit_balance.
    """

    CREDIT = 'credit'
    DEBIT = 'debit'

    TRANSACTION_TYPE_CHOICES = [
        (CREDIT, 'Credit Added'),
        (DEBIT, 'Credit Consumed'),
    ]

    MANUAL_CREDIT = 'manual_credit'
    MANUAL_DEDUCTION = 'manual_deduction'
    ADJUSTMENT = 'adjustment'
    BILL_PAYMENT = 'bill_payment'

    REFERENCE_TYPE_CHOICES = [
        (MANUAL_CREDIT, 'Manual Credit'),
        (MANUAL_DEDUCTION, 'Manual Deduction'),
        (ADJUSTMENT, 'Balance Adjustment'),
        (BILL_PAYMENT, 'Applied to Bill'),
    ]

    customer = models.ForeignKey(
        'customers.Customer',
        on_delete=models.PROTECT,
        related_name='credit_transactions',
        db_index=True,
    )
    amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        help_text="Signed amount: + credit added, - credit consumed.",
    )
    transaction_type = models.CharField(
        max_length=10,
        choices=TRANSACTION_TYPE_CHOICES,
    )
    reference_type = models.CharField(
        max_length=20,
        choices=REFERENCE_TYPE_CHOICES,
        default=MANUAL_CREDIT,
    )
    description = models.TextField(blank=True)
    bill = models.ForeignKey(
        'billing.Bill',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='credit_transactions',
        help_text="Bill that consumed the credit, for bill payments.",
    )
    balance_after = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        help_text="Customer credit balance right after this entry.",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'credit_transactions'
        ordering = ['-created_at', '-id']
        constraints = [
            models.CheckConstraint(
                condition=(
                    models.Q(transaction_type='credit', amount__gt=0)
                    | models.Q(transaction_type='debit', amount__lt=0)
                ),
                name='credit_transaction_sign_matches_type',
            ),
        ]

    def __str__(self):
        return (
            f"{self.get_transaction_type_display()} {self.amount} "
            f"- Customer: {self.customer_id}"
        )
