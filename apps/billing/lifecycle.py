"""
Bill lifecycle: status overrides, archiving and read-time overdue status.

Transitions:
    Unpaid → Partially Paid / Paid      (credit application, payment review
                                         or staff override)
    any status → Unpaid / Partially Paid / Paid   (staff override)
    any non-archived bill → archived    (one-way flag)

Overdue is never stored by this module. It is derived when a bill is
read: an Unpaid bill whose due date has passed.
"""

import logging
from datetime import date
from typing import Optional

from django.db import transaction
from django.db.models import F
from django.utils import timezone

from apps.billing.models import Bill
from apps.core.exceptions import (
    BillNotFoundError,
    StateConflictError,
    ValidationError,
)

logger = logging.getLogger(__name__)


def effective_status(bill, today: Optional[date] = None) -> str:
    """Return the status to display for a bill on a given day."""
    today = today or timezone.localdate()
    if bill.status == Bill.UNPAID and bill.due_date < today:
        return Bill.OVERDUE
    return bill.status


def days_overdue(bill, today: Optional[date] = None) -> int:
    """Days past the due date, 0 when not yet due."""
    today = today or timezone.localdate()
    return max(0, (today - bill.due_date).days)


class BillLifecycleService:
    """
    State transitions for a single bill.

    Each write is guarded by the version the caller read, so a bill that
    changed underneath the caller is never silently overwritten.
    """

    @staticmethod
    @transaction.atomic
    def archive_bill(bill: Bill) -> Bill:
        """
        Archive a bill, hiding it from all active views permanently.

        Archiving an archived bill is a no-op: the bill is returned as is,
        nothing is written and no error is raised.

        Raises:
            StateConflictError: If the bill changed since it was read.
        """
        if bill.archived:
            logger.debug("Bill #%d already archived, nothing to do", bill.pk)
            return bill

        now = timezone.now()
        updated = Bill.objects.filter(
            pk=bill.pk,
            version=bill.version,
            archived=False,
        ).update(
            archived=True,
            archived_at=now,
            version=F('version') + 1,
            updated_at=now,
        )

        if not updated:
            current = Bill.objects.filter(pk=bill.pk).first()
            if current is None:
                raise BillNotFoundError(detail=f"Bill with ID {bill.pk} not found.")
            if current.archived:
                # Archived by a concurrent request; same outcome
                return current
            logger.warning(
                "Archive of bill #%d rejected: version %d is stale (now %d)",
                bill.pk,
                bill.version,
                current.version,
            )
            raise StateConflictError(
                detail=f"Bill #{bill.pk} was modified by another operation."
            )

        bill.refresh_from_db()
        logger.info("Bill #%d archived", bill.pk)
        return bill

    @staticmethod
    @transaction.atomic
    def override_status(bill: Bill, new_status: str) -> Bill:
        """
        Set a bill's status directly (staff override).

        Args:
            bill: The bill as read by the caller.
            new_status: One of Unpaid, Partially Paid or Paid.

        Raises:
            ValidationError: If new_status cannot be set manually.
            StateConflictError: If the bill is archived or changed
                since it was read.
        """
        if new_status not in Bill.OVERRIDABLE_STATUSES:
            raise ValidationError(
                detail=(
                    f"Status '{new_status}' cannot be set manually. "
                    f"Choose one of: {', '.join(Bill.OVERRIDABLE_STATUSES)}."
                )
            )

        if bill.archived:
            raise StateConflictError(
                detail=f"Bill #{bill.pk} is archived and can no longer change status."
            )

        if bill.status == new_status:
            return bill

        old_status = bill.status
        updated = Bill.objects.filter(
            pk=bill.pk,
            version=bill.version,
            archived=False,
        ).update(
            status=new_status,
            version=F('version') + 1,
            updated_at=timezone.now(),
        )

        if not updated:
            logger.warning(
                "Status override of bill #%d to %s rejected: stale version %d",
                bill.pk,
                new_status,
                bill.version,
            )
            raise StateConflictError(
                detail=f"Bill #{bill.pk} was modified by another operation."
            )

        bill.refresh_from_db()
        logger.info(
            "Bill #%d status changed: %s → %s",
            bill.pk,
            old_status,
            new_status,
        )
        return bill
