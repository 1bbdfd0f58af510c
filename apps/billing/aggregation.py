"""
Per-customer billing views derived from a flat list of bills.

Nothing here touches the database: callers load the bills they want to
summarize (with ``select_related('customer')``) and pass them in. The
views are rebuilt on every read and never stored.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Iterable, List, Optional

from apps.billing.lifecycle import days_overdue, effective_status
from apps.billing.models import Bill
from apps.core.utils import format_display_name


@dataclass
class CustomerBillingView:
    customer_id: int
    first_name: str
    last_name: str
    meter_number: str
    latest_bill: Bill
    total_outstanding: Decimal
    status: str
    total_bills: int
    all_bills: list = field(default_factory=list)

    @property
    def display_name(self) -> str:
        return format_display_name(self.first_name, self.last_name)


@dataclass
class OverdueBill:
    bill: Bill
    days_overdue: int


def _newest_first(bill):
    return (bill.created_at, bill.pk or 0)


def group_by_customer(bills: Iterable) -> List[CustomerBillingView]:
    """
    Group active bills by customer.

    For each customer:
        latest_bill       — most recently created bill
        total_outstanding — sum of amount_due over bills whose status is
                            exactly Unpaid (Partially Paid and Overdue
                            bills do not count towards this total)
        status            — latest_bill.status, except that a Paid latest
                            bill is reported as Partially Paid while older
                            Unpaid bills remain

    Archived bills are skipped. Customers are ordered by "Last, First",
    case-insensitively.
    """
    groups = {}
    for bill in bills:
        if bill.archived:
            continue
        groups.setdefault(bill.customer_id, []).append(bill)

    views = []
    for customer_id, customer_bills in groups.items():
        customer_bills.sort(key=_newest_first, reverse=True)
        latest_bill = customer_bills[0]
        customer = latest_bill.customer

        total_outstanding = sum(
            (b.amount_due for b in customer_bills if b.status == Bill.UNPAID),
            Decimal('0.00'),
        )

        status = latest_bill.status
        if total_outstanding > 0 and latest_bill.status == Bill.PAID:
            status = Bill.PARTIALLY_PAID

        views.append(CustomerBillingView(
            customer_id=customer_id,
            first_name=customer.first_name,
            last_name=customer.last_name,
            meter_number=latest_bill.meter_number,
            latest_bill=latest_bill,
            total_outstanding=total_outstanding,
            status=status,
            total_bills=len(customer_bills),
            all_bills=customer_bills,
        ))

    views.sort(key=lambda view: (view.display_name.lower(), view.customer_id))
    return views


def list_archived(bills: Iterable) -> list:
    """Archived bills only, newest first."""
    return sorted(
        (bill for bill in bills if bill.archived),
        key=_newest_first,
        reverse=True,
    )


def list_overdue(bills: Iterable, today: Optional[date] = None) -> List[OverdueBill]:
    """Active bills currently overdue, most overdue first."""
    overdue = [
        OverdueBill(bill=bill, days_overdue=days_overdue(bill, today))
        for bill in bills
        if not bill.archived and effective_status(bill, today) == Bill.OVERDUE
    ]
    overdue.sort(key=lambda item: (-item.days_overdue, item.bill.pk or 0))
    return overdue
