"""
Credit ledger service layer.

Owns every change to a customer's credit balance. Each mutation runs in
one database transaction that:

    1. locks the customer row (select_for_update) so operations for the
       same customer serialize while other customers proceed in parallel,
    2. writes the new balance guarded by the customer's version counter,
    3. appends the ledger entry explaining the change.

If any step fails the whole transaction rolls back, so the cached
balance always equals the sum of the customer's ledger entries.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from django.db import transaction
from django.db.models import F, Sum
from django.utils import timezone

from apps.billing.models import Bill
from apps.core.exceptions import (
    BillNotFoundError,
    ConcurrencyConflictError,
    CustomerNotFoundError,
    InvalidAmountError,
    StateConflictError,
    ValidationError,
)
from apps.core.utils import ZERO, quantize_money, to_decimal
from apps.credits.models import CreditTransaction
from apps.customers.models import Customer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ApplyCreditResult:
    amount_applied: Decimal
    remaining_due: Decimal
    new_status: str


class CreditLedgerService:
    """Service for customer credit balances and their ledger."""

    @classmethod
    @transaction.atomic
    def record_credit(
        cls,
        customer_id: int,
        amount,
        description: str = '',
    ) -> CreditTransaction:
        """
        Add credit to a customer's balance.

        Args:
            customer_id: Customer's primary key.
            amount: Credit to add (must be > 0).
            description: Free-text note stored on the ledger entry.

        Returns:
            The appended credit transaction.

        Raises:
            InvalidAmountError: If amount is not a positive number.
            CustomerNotFoundError: If the customer does not exist.
            ConcurrencyConflictError: If the balance write lost its lock.
        """
        amount = cls._validate_amount(amount)
        customer = cls._lock_customer(customer_id)

        entry = cls._post_entry(
            customer,
            amount,
            transaction_type=CreditTransaction.CREDIT,
            reference_type=CreditTransaction.MANUAL_CREDIT,
            description=description or 'Credit added',
        )

        logger.info(
            "Credit %s added for customer %d (balance=%s)",
            amount,
            customer.pk,
            entry.balance_after,
        )
        return entry

    @classmethod
    @transaction.atomic
    def apply_credit_to_bill(cls, customer_id: int, bill: Bill) -> ApplyCreditResult:
        """
        Pay a bill from the customer's standing credit.

        amount_applied = min(credit_balance, remaining due on the bill),
        where the remaining due already nets out earlier credit and
        approved manual payments, and is zero on a Paid bill.
        When something is applied the balance drops by that amount, a
        debit entry linked to the bill is appended, and the bill becomes
        Paid (fully covered) or Partially Paid (partly covered). With no
        credit, or nothing left to pay, nothing is written.

        The bill and the customer are re-read under row locks, so the
        caller's copy of the bill only identifies which bill to pay.

        Raises:
            CustomerNotFoundError / BillNotFoundError: Unknown ids.
            ValidationError: If the bill belongs to another customer.
            StateConflictError: If the bill is archived.
            ConcurrencyConflictError: If the balance write lost its lock.
        """
        customer = cls._lock_customer(customer_id)

        try:
            locked_bill = Bill.objects.select_for_update().get(pk=bill.pk)
        except Bill.DoesNotExist:
            raise BillNotFoundError(detail=f"Bill with ID {bill.pk} not found.")

        if locked_bill.customer_id != customer.pk:
            raise ValidationError(
                detail=f"Bill #{locked_bill.pk} does not belong to customer {customer.pk}."
            )
        if locked_bill.archived:
            raise StateConflictError(
                detail=f"Bill #{locked_bill.pk} is archived; credit cannot be applied."
            )

        # A bill settled by staff or by approved payments takes no more credit
        if locked_bill.status == Bill.PAID:
            remaining_due = ZERO
        else:
            remaining_due = locked_bill.remaining_due
        amount_applied = min(customer.credit_balance, remaining_due)

        if amount_applied <= 0:
            logger.debug(
                "No credit applied to bill #%d (balance=%s, remaining=%s)",
                locked_bill.pk,
                customer.credit_balance,
                remaining_due,
            )
            return ApplyCreditResult(
                amount_applied=ZERO,
                remaining_due=remaining_due,
                new_status=locked_bill.status,
            )

        cls._post_entry(
            customer,
            -amount_applied,
            transaction_type=CreditTransaction.DEBIT,
            reference_type=CreditTransaction.BILL_PAYMENT,
            description=f'Credit applied to bill #{locked_bill.pk}',
            bill=locked_bill,
        )

        if amount_applied == remaining_due:
            new_status = Bill.PAID
        else:
            new_status = Bill.PARTIALLY_PAID

        updated = Bill.objects.filter(
            pk=locked_bill.pk,
            version=locked_bill.version,
        ).update(
            credit_applied=F('credit_applied') + amount_applied,
            status=new_status,
            version=F('version') + 1,
            updated_at=timezone.now(),
        )
        if not updated:
            raise StateConflictError(
                detail=f"Bill #{locked_bill.pk} was modified by another operation."
            )

        bill.refresh_from_db()

        logger.info(
            "Applied credit %s to bill #%d for customer %d: status=%s, remaining=%s",
            amount_applied,
            locked_bill.pk,
            customer.pk,
            new_status,
            remaining_due - amount_applied,
        )

        return ApplyCreditResult(
            amount_applied=amount_applied,
            remaining_due=remaining_due - amount_applied,
            new_status=new_status,
        )

    @classmethod
    @transaction.atomic
    def deduct_credit(
        cls,
        customer_id: int,
        amount,
        description: str = '',
    ) -> CreditTransaction:
        """
        Remove credit from a customer's balance (manual deduction).

        Raises:
            InvalidAmountError: If amount is not positive or exceeds the
                current balance.
        """
        amount = cls._validate_amount(amount)
        customer = cls._lock_customer(customer_id)

        if amount > customer.credit_balance:
            raise InvalidAmountError(
                detail=(
                    f"Cannot deduct {amount}: customer {customer.pk} "
                    f"only has {customer.credit_balance} credit."
                )
            )

        entry = cls._post_entry(
            customer,
            -amount,
            transaction_type=CreditTransaction.DEBIT,
            reference_type=CreditTransaction.MANUAL_DEDUCTION,
            description=description or 'Credit deducted',
        )

        logger.info(
            "Credit %s deducted for customer %d (balance=%s)",
            amount,
            customer.pk,
            entry.balance_after,
        )
        return entry

    @classmethod
    @transaction.atomic
    def adjust_balance(
        cls,
        customer_id: int,
        new_balance,
        reason: str = '',
    ) -> Optional[CreditTransaction]:
        """
        Set a customer's balance to an exact figure.

        The difference is recorded as a credit or debit adjustment entry,
        so the ledger still explains the whole balance. Returns None when
        the balance already matches.

        Raises:
            InvalidAmountError: If new_balance is negative or not a number.
        """
        try:
            new_balance = quantize_money(to_decimal(new_balance, 'new_balance'))
        except ValueError as exc:
            raise InvalidAmountError(detail=str(exc))

        if new_balance < 0:
            raise InvalidAmountError(detail="Credit balance cannot be negative.")

        customer = cls._lock_customer(customer_id)
        difference = new_balance - customer.credit_balance

        if difference == 0:
            return None

        if difference > 0:
            transaction_type = CreditTransaction.CREDIT
        else:
            transaction_type = CreditTransaction.DEBIT

        entry = cls._post_entry(
            customer,
            difference,
            transaction_type=transaction_type,
            reference_type=CreditTransaction.ADJUSTMENT,
            description=reason or 'Balance adjustment',
        )

        logger.info(
            "Credit balance of customer %d adjusted by %s to %s",
            customer.pk,
            difference,
            new_balance,
        )
        return entry

    @staticmethod
    def get_customer_credits(customer_id: int) -> dict:
        """
        Retrieve a customer with their ledger, newest entry first.

        Raises:
            CustomerNotFoundError: If customer not found.
        """
        try:
            customer = Customer.objects.get(pk=customer_id)
        except Customer.DoesNotExist:
            raise CustomerNotFoundError(
                detail=f"Customer with ID {customer_id} not found."
            )

        transactions = CreditTransaction.objects.filter(
            customer=customer,
        ).select_related('bill')

        return {
            'customer': customer,
            'transactions': transactions,
        }

    @staticmethod
    def customers_with_credit():
        """Customers holding a positive credit balance."""
        return Customer.objects.filter(
            credit_balance__gt=0,
        ).order_by('last_name', 'first_name', 'pk')

    @staticmethod
    def reconcile(customer_id: int) -> bool:
        """
        Check that the cached balance equals the sum of ledger entries.

        Returns:
            True when they match.
        """
        try:
            customer = Customer.objects.get(pk=customer_id)
        except Customer.DoesNotExist:
            raise CustomerNotFoundError(
                detail=f"Customer with ID {customer_id} not found."
            )

        ledger_total = CreditTransaction.objects.filter(
            customer=customer,
        ).aggregate(total=Sum('amount'))['total'] or ZERO

        if ledger_total != customer.credit_balance:
            logger.error(
                "Customer %d credit balance %s does not match ledger total %s",
                customer.pk,
                customer.credit_balance,
                ledger_total,
            )
            return False

        return True

    @staticmethod
    def _validate_amount(amount) -> Decimal:
        try:
            amount = quantize_money(to_decimal(amount, 'amount'))
        except ValueError as exc:
            raise InvalidAmountError(detail=str(exc))

        if amount <= 0:
            raise InvalidAmountError(
                detail="Credit amount must be greater than zero."
            )
        return amount

    @staticmethod
    def _lock_customer(customer_id: int) -> Customer:
        try:
            return Customer.objects.select_for_update().get(pk=customer_id)
        except Customer.DoesNotExist:
            raise CustomerNotFoundError(
                detail=f"Customer with ID {customer_id} not found."
            )

    @staticmethod
    def _post_entry(
        customer: Customer,
        amount: Decimal,
        transaction_type: str,
        reference_type: str,
        description: str,
        bill: Optional[Bill] = None,
    ) -> CreditTransaction:
        """Write the new balance and append the matching ledger entry."""
        new_balance = customer.credit_balance + amount
        if new_balance < 0:
            raise InvalidAmountError(
                detail=f"Credit balance of customer {customer.pk} cannot go negative."
            )

        updated = Customer.objects.filter(
            pk=customer.pk,
            version=customer.version,
        ).update(
            credit_balance=new_balance,
            version=F('version') + 1,
            updated_at=timezone.now(),
        )
        if not updated:
            logger.warning(
                "Credit write for customer %d lost its lock at version %d",
                customer.pk,
                customer.version,
            )
            raise ConcurrencyConflictError()

        customer.credit_balance = new_balance
        customer.version += 1

        return CreditTransaction.objects.create(
            customer=customer,
            amount=amount,
            transaction_type=transaction_type,
            reference_type=reference_type,
            description=description,
            bill=bill,
            balance_after=new_balance,
        )
