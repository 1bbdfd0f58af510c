"""
Tests for the data ingestion Celery tasks.

Uses task.apply() to run tasks synchronously in the test environment.
"""

import os
import tempfile
from datetime import date
from decimal import Decimal

import pandas as pd
from django.test import TestCase, override_settings

from apps.billing.lifecycle import BillLifecycleService
from apps.billing.models import Bill
from apps.core.exceptions import StateConflictError
from apps.core.tasks import ingest_bill_data, ingest_customer_data
from apps.customers.models import Customer


def write_sheet(directory, file_name, data):
    pd.DataFrame(data).to_excel(os.path.join(directory, file_name), index=False)


@override_settings(
    CELERY_TASK_ALWAYS_EAGER=True,
    CELERY_TASK_EAGER_PROPAGATES=True,
)
class CustomerIngestionTests(TestCase):
    """Test cases for customer data ingestion."""

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        write_sheet(self.temp_dir, 'customer_data.xlsx', {
            'customer_id': [1, 2, 3],
            'first_name': ['Maria', 'Jose', 'Pedro'],
            'last_name': ['Santos', 'Rizal', 'Cruz'],
            'meter_number': ['MTR-0001', 'MTR-0002', 'MTR-0003'],
            'is_senior': ['yes', 'no', True],
            'credit_limit': [1000, None, 500],
        })

    def test_ingest_customer_data(self):
        """Test successful customer data ingestion."""
        with self.settings(DATA_DIR=self.temp_dir):
            result = ingest_customer_data.apply().get()

        self.assertEqual(result['status'], 'success')
        self.assertEqual(result['total_rows'], 3)
        self.assertEqual(result['created'], 3)
        self.assertEqual(result['errors'], 0)

        self.assertEqual(Customer.objects.count(), 3)
        maria = Customer.objects.get(pk=1)
        self.assertEqual(maria.first_name, 'Maria')
        self.assertTrue(maria.is_senior)
        self.assertEqual(maria.credit_limit, Decimal('1000'))
        self.assertEqual(maria.credit_balance, Decimal('0.00'))
        self.assertFalse(Customer.objects.get(pk=2).is_senior)
        self.assertIsNone(Customer.objects.get(pk=2).credit_limit)

    def test_ingest_idempotent(self):
        """Running ingestion twice doesn't create duplicates."""
        with self.settings(DATA_DIR=self.temp_dir):
            ingest_customer_data.apply().get()
            result = ingest_customer_data.apply().get()

        self.assertEqual(result['status'], 'success')
        self.assertEqual(Customer.objects.count(), 3)
        self.assertEqual(result['updated'], 3)

    def test_missing_file(self):
        """Graceful handling of missing file."""
        with self.settings(DATA_DIR='/nonexistent/path'):
            result = ingest_customer_data.apply().get()
        self.assertEqual(result['status'], 'error')


@override_settings(
    CELERY_TASK_ALWAYS_EAGER=True,
    CELERY_TASK_EAGER_PROPAGATES=True,
)
class BillIngestionTests(TestCase):
    """Test cases for bill data ingestion."""

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.customer = Customer.objects.create(
            pk=1,
            first_name='Maria',
            last_name='Santos',
            meter_number='MTR-0001',
            is_senior=True,
        )
        write_sheet(self.temp_dir, 'bill_data.xlsx', {
            'bill_id': [101, 102],
            'customer_id': [1, 1],
            'previous_reading': [100, 120],
            'current_reading': [120, 160],
            'reading_date': ['2024-03-15', '2024-03-25'],
            'penalty_applied': [True, False],
            'status': ['Paid', 'Overdue'],
            'amount_due': [1, 1],
        })

    def test_ingest_bill_data(self):
        """Amounts are recomputed from the readings."""
        with self.settings(DATA_DIR=self.temp_dir):
            result = ingest_bill_data.apply().get()

        self.assertEqual(result['status'], 'success')
        self.assertEqual(result['total_rows'], 2)
        self.assertEqual(result['created'], 2)
        self.assertEqual(result['errors'], 0)

        first = Bill.objects.get(pk=101)
        self.assertEqual(first.consumption, Decimal('20.00'))
        self.assertEqual(first.amount_due, Decimal('900.00'))
        self.assertEqual(first.due_date, date(2024, 3, 20))
        self.assertEqual(first.status, Bill.PAID)
        self.assertEqual(first.meter_number, 'MTR-0001')

        second = Bill.objects.get(pk=102)
        self.assertEqual(second.senior_discount, Decimal('0.00'))
        self.assertEqual(second.amount_due, Decimal('2000.00'))
        self.assertEqual(second.due_date, date(2024, 4, 22))
        self.assertEqual(second.status, Bill.UNPAID)

    def test_bill_ingestion_idempotent(self):
        with self.settings(DATA_DIR=self.temp_dir):
            ingest_bill_data.apply().get()
            result = ingest_bill_data.apply().get()

        self.assertEqual(Bill.objects.count(), 2)
        self.assertEqual(result['updated'], 2)

    def test_bill_paid_from_credit_is_left_alone(self):
        with self.settings(DATA_DIR=self.temp_dir):
            ingest_bill_data.apply().get()
            Bill.objects.filter(pk=101).update(credit_applied=Decimal('50.00'))
            result = ingest_bill_data.apply().get()

        self.assertEqual(result['skipped'], 1)
        self.assertEqual(result['updated'], 1)

    def test_reingest_keeps_archived_bill_archived(self):
        """Archiving is one-way: the sheet's archived=False never undoes it."""
        with self.settings(DATA_DIR=self.temp_dir):
            ingest_bill_data.apply().get()
            BillLifecycleService.archive_bill(Bill.objects.get(pk=101))
            result = ingest_bill_data.apply().get()

        bill = Bill.objects.get(pk=101)
        self.assertTrue(bill.archived)
        self.assertEqual(bill.version, 2)
        self.assertEqual(result['skipped'], 1)
        self.assertEqual(result['updated'], 1)

    def test_reingest_keeps_status_override(self):
        with self.settings(DATA_DIR=self.temp_dir):
            ingest_bill_data.apply().get()
            BillLifecycleService.override_status(
                Bill.objects.get(pk=102), Bill.PARTIALLY_PAID,
            )
            ingest_bill_data.apply().get()

        bill = Bill.objects.get(pk=102)
        self.assertEqual(bill.status, Bill.PARTIALLY_PAID)
        self.assertEqual(bill.amount_due, Decimal('2000.00'))
        self.assertEqual(bill.version, 3)

    def test_reingest_bumps_version(self):
        """A stale copy read before re-ingestion can no longer be written."""
        with self.settings(DATA_DIR=self.temp_dir):
            ingest_bill_data.apply().get()
            stale = Bill.objects.get(pk=101)
            ingest_bill_data.apply().get()

        self.assertEqual(Bill.objects.get(pk=101).version, 2)
        with self.assertRaises(StateConflictError):
            BillLifecycleService.override_status(stale, Bill.UNPAID)

    def test_bill_with_approved_payment_is_left_alone(self):
        with self.settings(DATA_DIR=self.temp_dir):
            ingest_bill_data.apply().get()
            Bill.objects.filter(pk=102).update(amount_paid=Decimal('100.00'))
            result = ingest_bill_data.apply().get()

        self.assertEqual(result['skipped'], 1)
        self.assertEqual(Bill.objects.get(pk=102).version, 1)

    def test_invalid_rows_skipped(self):
        """Unknown customers and readings going backwards are errors."""
        temp_dir = tempfile.mkdtemp()
        write_sheet(temp_dir, 'bill_data.xlsx', {
            'bill_id': [201, 202, 203],
            'customer_id': [999, 1, 1],
            'previous_reading': [0, 50, 0],
            'current_reading': [10, 40, 10],
            'reading_date': ['2024-01-01', '2024-01-01', 'not a date'],
        })

        with self.settings(DATA_DIR=temp_dir):
            result = ingest_bill_data.apply().get()

        self.assertEqual(result['errors'], 3)
        self.assertEqual(Bill.objects.count(), 0)
