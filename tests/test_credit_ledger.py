"""
Tests for the credit ledger service.
"""

from datetime import date
from decimal import Decimal
from unittest import mock

from django.test import TestCase

from apps.billing.models import Bill
from apps.billing.services import BillService
from apps.core.exceptions import (
    ConcurrencyConflictError,
    CustomerNotFoundError,
    InvalidAmountError,
    StateConflictError,
    ValidationError,
)
from apps.credits.models import CreditTransaction
from apps.credits.services import CreditLedgerService
from apps.customers.models import Customer


def create_bill(customer, previous, current, penalty_applied=False):
    return BillService.create_bill({
        'customer_id': customer.pk,
        'previous_reading': Decimal(previous),
        'current_reading': Decimal(current),
        'penalty_applied': penalty_applied,
        'due_date': date(2030, 1, 21),
    })


class RecordCreditTests(TestCase):
    """Test CreditLedgerService.record_credit."""

    def setUp(self):
        self.customer = Customer.objects.create(
            first_name='Maria', last_name='Santos', meter_number='MTR-0001',
        )

    def test_record_credit_updates_balance_and_ledger(self):
        entry = CreditLedgerService.record_credit(self.customer.pk, Decimal('150.00'), 'Overpayment')

        self.customer.refresh_from_db()
        self.assertEqual(self.customer.credit_balance, Decimal('150.00'))
        self.assertEqual(self.customer.version, 2)
        self.assertEqual(entry.amount, Decimal('150.00'))
        self.assertEqual(entry.transaction_type, CreditTransaction.CREDIT)
        self.assertEqual(entry.reference_type, CreditTransaction.MANUAL_CREDIT)
        self.assertEqual(entry.balance_after, Decimal('150.00'))
        self.assertEqual(entry.description, 'Overpayment')

    def test_accepts_int_and_float(self):
        CreditLedgerService.record_credit(self.customer.pk, 10)
        CreditLedgerService.record_credit(self.customer.pk, 2.5)
        self.customer.refresh_from_db()
        self.assertEqual(self.customer.credit_balance, Decimal('12.50'))

    def test_zero_or_negative_amount_rejected(self):
        for amount in (Decimal('0'), Decimal('-5'), 0, -1.5):
            with self.assertRaises(InvalidAmountError):
                CreditLedgerService.record_credit(self.customer.pk, amount)

        self.customer.refresh_from_db()
        self.assertEqual(self.customer.credit_balance, Decimal('0.00'))
        self.assertEqual(CreditTransaction.objects.count(), 0)

    def test_non_numeric_amount_rejected(self):
        for amount in ('100', None, True, float('nan'), float('inf')):
            with self.assertRaises(InvalidAmountError):
                CreditLedgerService.record_credit(self.customer.pk, amount)

    def test_unknown_customer(self):
        with self.assertRaises(CustomerNotFoundError):
            CreditLedgerService.record_credit(99999, Decimal('10'))

    def test_stale_version_raises_concurrency_conflict(self):
        """A balance write guarded by an outdated version is refused."""
        stale = Customer.objects.get(pk=self.customer.pk)
        Customer.objects.filter(pk=self.customer.pk).update(version=5)

        with mock.patch.object(CreditLedgerService, '_lock_customer', return_value=stale):
            with self.assertRaises(ConcurrencyConflictError):
                CreditLedgerService.record_credit(self.customer.pk, Decimal('10'))

        self.customer.refresh_from_db()
        self.assertEqual(self.customer.credit_balance, Decimal('0.00'))
        self.assertEqual(CreditTransaction.objects.count(), 0)


class ApplyCreditTests(TestCase):
    """Test CreditLedgerService.apply_credit_to_bill."""

    def setUp(self):
        self.customer = Customer.objects.create(
            first_name='Maria', last_name='Santos', meter_number='MTR-0001',
        )
        self.other = Customer.objects.create(
            first_name='Jose', last_name='Rizal', meter_number='MTR-0002',
        )

    def test_partial_application(self):
        """Balance 50 against a bill of 80 → 50 applied, 30 remaining."""
        CreditLedgerService.record_credit(self.customer.pk, Decimal('50.00'))
        bill = create_bill(self.customer, '0', '1.6')
        self.assertEqual(bill.amount_due, Decimal('80.00'))

        result = CreditLedgerService.apply_credit_to_bill(self.customer.pk, bill)

        self.assertEqual(result.amount_applied, Decimal('50.00'))
        self.assertEqual(result.remaining_due, Decimal('30.00'))
        self.assertEqual(result.new_status, Bill.PARTIALLY_PAID)

        self.customer.refresh_from_db()
        self.assertEqual(self.customer.credit_balance, Decimal('0.00'))
        self.assertEqual(bill.status, Bill.PARTIALLY_PAID)
        self.assertEqual(bill.credit_applied, Decimal('50.00'))
        self.assertEqual(bill.remaining_due, Decimal('30.00'))

        debit = CreditTransaction.objects.filter(
            customer=self.customer,
            reference_type=CreditTransaction.BILL_PAYMENT,
        ).get()
        self.assertEqual(debit.amount, Decimal('-50.00'))
        self.assertEqual(debit.bill_id, bill.pk)
        self.assertEqual(debit.balance_after, Decimal('0.00'))

    def test_full_application(self):
        CreditLedgerService.record_credit(self.customer.pk, Decimal('500.00'))
        bill = create_bill(self.customer, '0', '2')

        result = CreditLedgerService.apply_credit_to_bill(self.customer.pk, bill)

        self.assertEqual(result.amount_applied, Decimal('100.00'))
        self.assertEqual(result.remaining_due, Decimal('0.00'))
        self.assertEqual(result.new_status, Bill.PAID)
        self.customer.refresh_from_db()
        self.assertEqual(self.customer.credit_balance, Decimal('400.00'))

    def test_second_application_only_covers_remainder(self):
        CreditLedgerService.record_credit(self.customer.pk, Decimal('50.00'))
        bill = create_bill(self.customer, '0', '1.6')
        CreditLedgerService.apply_credit_to_bill(self.customer.pk, bill)

        CreditLedgerService.record_credit(self.customer.pk, Decimal('100.00'))
        result = CreditLedgerService.apply_credit_to_bill(self.customer.pk, bill)

        self.assertEqual(result.amount_applied, Decimal('30.00'))
        self.assertEqual(result.new_status, Bill.PAID)
        self.customer.refresh_from_db()
        self.assertEqual(self.customer.credit_balance, Decimal('70.00'))
        self.assertEqual(bill.credit_applied, Decimal('80.00'))

    def test_no_credit_is_a_no_op(self):
        bill = create_bill(self.customer, '0', '2')
        version = bill.version

        result = CreditLedgerService.apply_credit_to_bill(self.customer.pk, bill)

        self.assertEqual(result.amount_applied, Decimal('0.00'))
        self.assertEqual(result.remaining_due, Decimal('100.00'))
        self.assertEqual(result.new_status, Bill.UNPAID)
        bill.refresh_from_db()
        self.assertEqual(bill.version, version)
        self.assertEqual(CreditTransaction.objects.count(), 0)

    def test_bill_marked_paid_takes_no_credit(self):
        CreditLedgerService.record_credit(self.customer.pk, Decimal('50.00'))
        bill = create_bill(self.customer, '0', '2')
        Bill.objects.filter(pk=bill.pk).update(status=Bill.PAID)

        result = CreditLedgerService.apply_credit_to_bill(self.customer.pk, bill)

        self.assertEqual(result.amount_applied, Decimal('0.00'))
        self.assertEqual(result.new_status, Bill.PAID)
        self.customer.refresh_from_db()
        self.assertEqual(self.customer.credit_balance, Decimal('50.00'))

    def test_archived_bill_rejected(self):
        CreditLedgerService.record_credit(self.customer.pk, Decimal('50.00'))
        bill = create_bill(self.customer, '0', '2')
        Bill.objects.filter(pk=bill.pk).update(archived=True)

        with self.assertRaises(StateConflictError):
            CreditLedgerService.apply_credit_to_bill(self.customer.pk, bill)

        self.customer.refresh_from_db()
        self.assertEqual(self.customer.credit_balance, Decimal('50.00'))

    def test_bill_of_another_customer_rejected(self):
        CreditLedgerService.record_credit(self.customer.pk, Decimal('50.00'))
        bill = create_bill(self.other, '0', '2')

        with self.assertRaises(ValidationError):
            CreditLedgerService.apply_credit_to_bill(self.customer.pk, bill)


class DeductAndAdjustTests(TestCase):
    """Test deduct_credit and adjust_balance."""

    def setUp(self):
        self.customer = Customer.objects.create(
            first_name='Maria', last_name='Santos', meter_number='MTR-0001',
        )
        CreditLedgerService.record_credit(self.customer.pk, Decimal('100.00'))

    def test_deduct(self):
        entry = CreditLedgerService.deduct_credit(self.customer.pk, Decimal('40.00'), 'Refund')

        self.assertEqual(entry.amount, Decimal('-40.00'))
        self.assertEqual(entry.transaction_type, CreditTransaction.DEBIT)
        self.assertEqual(entry.reference_type, CreditTransaction.MANUAL_DEDUCTION)
        self.customer.refresh_from_db()
        self.assertEqual(self.customer.credit_balance, Decimal('60.00'))

    def test_deduct_more_than_balance_rejected(self):
        with self.assertRaises(InvalidAmountError):
            CreditLedgerService.deduct_credit(self.customer.pk, Decimal('100.01'))

        self.customer.refresh_from_db()
        self.assertEqual(self.customer.credit_balance, Decimal('100.00'))

    def test_deduct_entire_balance(self):
        CreditLedgerService.deduct_credit(self.customer.pk, Decimal('100.00'))
        self.customer.refresh_from_db()
        self.assertEqual(self.customer.credit_balance, Decimal('0.00'))

    def test_adjust_down(self):
        entry = CreditLedgerService.adjust_balance(self.customer.pk, Decimal('25.00'), 'Audit')

        self.assertEqual(entry.amount, Decimal('-75.00'))
        self.assertEqual(entry.transaction_type, CreditTransaction.DEBIT)
        self.assertEqual(entry.reference_type, CreditTransaction.ADJUSTMENT)
        self.assertEqual(entry.balance_after, Decimal('25.00'))

    def test_adjust_up(self):
        entry = CreditLedgerService.adjust_balance(self.customer.pk, 250)

        self.assertEqual(entry.amount, Decimal('150.00'))
        self.assertEqual(entry.transaction_type, CreditTransaction.CREDIT)

    def test_adjust_to_same_balance_writes_nothing(self):
        self.assertIsNone(CreditLedgerService.adjust_balance(self.customer.pk, Decimal('100')))
        self.assertEqual(CreditTransaction.objects.count(), 1)

    def test_adjust_to_negative_rejected(self):
        with self.assertRaises(InvalidAmountError):
            CreditLedgerService.adjust_balance(self.customer.pk, Decimal('-1'))


class LedgerReadTests(TestCase):
    """Ledger reads and reconciliation."""

    def setUp(self):
        self.santos = Customer.objects.create(
            first_name='Maria', last_name='Santos', meter_number='MTR-0001',
        )
        self.abad = Customer.objects.create(
            first_name='Jose', last_name='Abad', meter_number='MTR-0002',
        )
        self.cruz = Customer.objects.create(
            first_name='Pedro', last_name='Cruz', meter_number='MTR-0003',
        )

    def test_balance_equals_ledger_sum_after_mixed_operations(self):
        CreditLedgerService.record_credit(self.santos.pk, Decimal('300.00'))
        CreditLedgerService.deduct_credit(self.santos.pk, Decimal('20.00'))
        bill = create_bill(self.santos, '10', '13')
        CreditLedgerService.apply_credit_to_bill(self.santos.pk, bill)
        CreditLedgerService.adjust_balance(self.santos.pk, Decimal('500.00'))
        CreditLedgerService.record_credit(self.santos.pk, 0.01)

        self.assertTrue(CreditLedgerService.reconcile(self.santos.pk))
        self.santos.refresh_from_db()
        self.assertEqual(self.santos.credit_balance, Decimal('500.01'))

    def test_reconcile_detects_drift(self):
        CreditLedgerService.record_credit(self.santos.pk, Decimal('10.00'))
        Customer.objects.filter(pk=self.santos.pk).update(credit_balance=Decimal('11.00'))

        self.assertFalse(CreditLedgerService.reconcile(self.santos.pk))

    def test_get_customer_credits_newest_first(self):
        first = CreditLedgerService.record_credit(self.santos.pk, Decimal('10.00'))
        second = CreditLedgerService.deduct_credit(self.santos.pk, Decimal('5.00'))

        data = CreditLedgerService.get_customer_credits(self.santos.pk)

        self.assertEqual(data['customer'].pk, self.santos.pk)
        self.assertEqual([t.pk for t in data['transactions']], [second.pk, first.pk])

    def test_customers_with_credit(self):
        CreditLedgerService.record_credit(self.santos.pk, Decimal('10.00'))
        CreditLedgerService.record_credit(self.abad.pk, Decimal('10.00'))

        customers = list(CreditLedgerService.customers_with_credit())

        self.assertEqual([c.pk for c in customers], [self.abad.pk, self.santos.pk])
