"""
Tests for per-customer bill grouping, archived and overdue listings.

The aggregation functions only read attributes, so plain namespaces
stand in for bill rows here.
"""

from datetime import date, datetime, timedelta
from decimal import Decimal
from types import SimpleNamespace

from django.test import SimpleTestCase

from apps.billing.aggregation import group_by_customer, list_archived, list_overdue
from apps.billing.lifecycle import days_overdue, effective_status
from apps.billing.models import Bill

TODAY = date(2024, 6, 10)
BASE_TIME = datetime(2024, 1, 1, 8, 0)


def make_customer(pk, first_name, last_name):
    return SimpleNamespace(pk=pk, first_name=first_name, last_name=last_name)


def make_bill(pk, customer, amount_due, status=Bill.UNPAID, created_offset=0,
              archived=False, due_date=date(2024, 7, 22)):
    return SimpleNamespace(
        pk=pk,
        customer_id=customer.pk,
        customer=customer,
        meter_number=f'MTR-{customer.pk:04d}',
        amount_due=Decimal(amount_due),
        status=status,
        archived=archived,
        created_at=BASE_TIME + timedelta(days=created_offset),
        due_date=due_date,
    )


class GroupByCustomerTests(SimpleTestCase):
    """Test group_by_customer."""

    def setUp(self):
        self.santos = make_customer(1, 'Maria', 'Santos')
        self.abad = make_customer(2, 'Jose', 'abad')
        self.cruz = make_customer(3, 'Pedro', 'Cruz')

    def test_paid_latest_with_unpaid_history_is_partially_paid(self):
        bills = [
            make_bill(1, self.santos, '500.00', Bill.UNPAID, created_offset=0),
            make_bill(2, self.santos, '300.00', Bill.PAID, created_offset=30),
        ]
        [view] = group_by_customer(bills)

        self.assertEqual(view.latest_bill.pk, 2)
        self.assertEqual(view.total_outstanding, Decimal('500.00'))
        self.assertEqual(view.status, Bill.PARTIALLY_PAID)
        self.assertEqual(view.total_bills, 2)
        self.assertEqual([b.pk for b in view.all_bills], [2, 1])

    def test_only_unpaid_bills_count_towards_outstanding(self):
        bills = [
            make_bill(1, self.santos, '100.00', Bill.UNPAID, created_offset=0),
            make_bill(2, self.santos, '200.00', Bill.PARTIALLY_PAID, created_offset=1),
            make_bill(3, self.santos, '400.00', Bill.PAID, created_offset=2),
            make_bill(4, self.santos, '800.00', Bill.UNPAID, created_offset=3),
        ]
        [view] = group_by_customer(bills)

        self.assertEqual(view.total_outstanding, Decimal('900.00'))
        self.assertEqual(view.status, Bill.UNPAID)

    def test_paid_latest_with_nothing_outstanding_stays_paid(self):
        bills = [
            make_bill(1, self.santos, '100.00', Bill.PAID, created_offset=0),
            make_bill(2, self.santos, '200.00', Bill.PAID, created_offset=1),
        ]
        [view] = group_by_customer(bills)

        self.assertEqual(view.total_outstanding, Decimal('0.00'))
        self.assertEqual(view.status, Bill.PAID)

    def test_archived_bills_excluded(self):
        bills = [
            make_bill(1, self.santos, '500.00', Bill.UNPAID, created_offset=0, archived=True),
            make_bill(2, self.santos, '300.00', Bill.PAID, created_offset=1),
            make_bill(3, self.cruz, '100.00', Bill.UNPAID, archived=True),
        ]
        views = group_by_customer(bills)

        self.assertEqual(len(views), 1)
        self.assertEqual(views[0].total_bills, 1)
        self.assertEqual(views[0].total_outstanding, Decimal('0.00'))
        self.assertEqual(views[0].status, Bill.PAID)

    def test_sorted_case_insensitively_by_display_name(self):
        bills = [
            make_bill(1, self.santos, '1.00'),
            make_bill(2, self.abad, '1.00'),
            make_bill(3, self.cruz, '1.00'),
        ]
        views = group_by_customer(bills)

        self.assertEqual(
            [view.display_name for view in views],
            ['abad, Jose', 'Cruz, Pedro', 'Santos, Maria'],
        )

    def test_same_timestamp_falls_back_to_id(self):
        bills = [
            make_bill(7, self.santos, '1.00', Bill.UNPAID),
            make_bill(9, self.santos, '1.00', Bill.PAID),
        ]
        [view] = group_by_customer(bills)
        self.assertEqual(view.latest_bill.pk, 9)

    def test_empty_input(self):
        self.assertEqual(group_by_customer([]), [])


class ListingTests(SimpleTestCase):
    """Test list_archived and list_overdue."""

    def setUp(self):
        self.customer = make_customer(1, 'Maria', 'Santos')

    def test_list_archived_newest_first(self):
        bills = [
            make_bill(1, self.customer, '1.00', archived=True, created_offset=0),
            make_bill(2, self.customer, '1.00', archived=False, created_offset=1),
            make_bill(3, self.customer, '1.00', archived=True, created_offset=2),
        ]
        self.assertEqual([b.pk for b in list_archived(bills)], [3, 1])

    def test_list_overdue(self):
        bills = [
            make_bill(1, self.customer, '1.00', Bill.UNPAID, due_date=date(2024, 5, 20)),
            make_bill(2, self.customer, '1.00', Bill.UNPAID, due_date=date(2024, 6, 3)),
            make_bill(3, self.customer, '1.00', Bill.PAID, due_date=date(2024, 4, 22)),
            make_bill(4, self.customer, '1.00', Bill.UNPAID, due_date=date(2024, 6, 20)),
            make_bill(5, self.customer, '1.00', Bill.UNPAID, due_date=date(2024, 3, 20),
                      archived=True),
        ]
        overdue = list_overdue(bills, today=TODAY)

        self.assertEqual([item.bill.pk for item in overdue], [1, 2])
        self.assertEqual([item.days_overdue for item in overdue], [21, 7])


class EffectiveStatusTests(SimpleTestCase):
    """Overdue is derived when a bill is read."""

    def setUp(self):
        self.customer = make_customer(1, 'Maria', 'Santos')

    def test_unpaid_past_due_is_overdue(self):
        bill = make_bill(1, self.customer, '1.00', Bill.UNPAID, due_date=date(2024, 6, 9))
        self.assertEqual(effective_status(bill, TODAY), Bill.OVERDUE)
        self.assertEqual(days_overdue(bill, TODAY), 1)

    def test_due_today_is_not_overdue(self):
        bill = make_bill(1, self.customer, '1.00', Bill.UNPAID, due_date=TODAY)
        self.assertEqual(effective_status(bill, TODAY), Bill.UNPAID)
        self.assertEqual(days_overdue(bill, TODAY), 0)

    def test_partially_paid_keeps_status(self):
        bill = make_bill(1, self.customer, '1.00', Bill.PARTIALLY_PAID,
                         due_date=date(2024, 1, 22))
        self.assertEqual(effective_status(bill, TODAY), Bill.PARTIALLY_PAID)
