"""
Billing service layer.

Bill creation and retrieval, and the review of manual payment proofs.
Charge rules live in calculations.py, status transitions in
lifecycle.py; this module wires them to the database.
"""

import logging
from decimal import Decimal

from django.conf import settings
from django.db import transaction
from django.db.models import F
from django.utils import timezone

from apps.billing.aggregation import group_by_customer, list_archived, list_overdue
from apps.billing.calculations import compute_bill, compute_due_date
from apps.billing.models import Bill, PaymentSubmission
from apps.core.exceptions import (
    BillNotFoundError,
    PaymentSubmissionNotFoundError,
    StateConflictError,
    ValidationError,
)
from apps.customers.services import CustomerService

logger = logging.getLogger(__name__)


def billing_rate_per_unit() -> Decimal:
    return Decimal(str(settings.BILLING_RATE_PER_UNIT))


def next_due_date():
    """Due date for a bill created today."""
    return compute_due_date(timezone.localdate(), settings.BILLING_DUE_DAY)


class BillService:
    """Service for bill creation and retrieval operations."""

    @staticmethod
    @transaction.atomic
    def create_bill(validated_data: dict) -> Bill:
        """
        Compute and store a new bill.

        Args:
            validated_data: Dict with customer_id, previous_reading,
                current_reading and optional meter_number, is_senior
                (defaults to the customer's flag), penalty_applied and
                due_date (defaults to the next due date).

        Returns:
            The created Bill, status Unpaid.
        """
        customer = CustomerService.get_customer(validated_data['customer_id'])

        is_senior = validated_data.get('is_senior')
        if is_senior is None:
            is_senior = customer.is_senior
        penalty_applied = validated_data.get('penalty_applied', False)

        result = compute_bill(
            validated_data['previous_reading'],
            validated_data['current_reading'],
            is_senior=is_senior,
            penalty_applied=penalty_applied,
            rate_per_unit=billing_rate_per_unit(),
        )

        bill = Bill.objects.create(
            customer=customer,
            meter_number=validated_data.get('meter_number') or customer.meter_number,
            previous_reading=validated_data['previous_reading'],
            current_reading=validated_data['current_reading'],
            consumption=result.consumption,
            is_senior=is_senior,
            penalty_applied=penalty_applied,
            base_amount=result.base_amount,
            senior_discount=result.senior_discount,
            penalty_amount=result.penalty,
            amount_due=result.final_amount,
            due_date=validated_data.get('due_date') or next_due_date(),
            status=Bill.UNPAID,
        )

        logger.info(
            "Bill #%d created for customer %d: consumption=%s, base=%s, "
            "discount=%s, penalty=%s, due=%s on %s",
            bill.pk,
            customer.pk,
            result.consumption,
            result.base_amount,
            result.senior_discount,
            result.penalty,
            result.final_amount,
            bill.due_date,
        )

        return bill

    @staticmethod
    def get_bill(bill_id: int) -> Bill:
        """
        Retrieve a single bill by ID.

        Raises:
            BillNotFoundError: If bill not found.
        """
        try:
            return Bill.objects.select_related('customer').get(pk=bill_id)
        except Bill.DoesNotExist:
            raise BillNotFoundError(detail=f"Bill with ID {bill_id} not found.")

    @staticmethod
    def get_customer_bills(customer_id: int):
        """Active (non-archived) bills of one customer, newest first."""
        CustomerService.get_customer(customer_id)
        return Bill.objects.filter(
            customer_id=customer_id,
            archived=False,
        ).select_related('customer').order_by('-created_at', '-id')

    @staticmethod
    def customer_billing_views():
        """Grouped per-customer view over every active bill."""
        bills = Bill.objects.filter(archived=False).select_related('customer')
        return group_by_customer(bills)

    @staticmethod
    def archived_bills():
        bills = Bill.objects.filter(archived=True).select_related('customer')
        return list_archived(bills)

    @staticmethod
    def overdue_bills():
        bills = Bill.objects.filter(
            archived=False,
            status=Bill.UNPAID,
            due_date__lt=timezone.localdate(),
        ).select_related('customer')
        return list_overdue(bills)


class PaymentReviewService:
    """Manual payment proofs: customer submission and staff review."""

    @staticmethod
    def submit_proof(bill: Bill, validated_data: dict) -> PaymentSubmission:
        """
        Record a customer's proof of a manual payment for review.

        Raises:
            StateConflictError: If the bill is archived or already paid.
        """
        if bill.archived:
            raise StateConflictError(detail=f"Bill #{bill.pk} is archived.")
        if bill.status == Bill.PAID:
            raise StateConflictError(detail=f"Bill #{bill.pk} is already paid.")

        submission = PaymentSubmission.objects.create(
            bill=bill,
            customer_id=bill.customer_id,
            reference_number=validated_data['reference_number'],
            amount=validated_data['amount'],
            proof_file=validated_data.get('proof_file', ''),
        )

        logger.info(
            "Payment proof #%d submitted for bill #%d (ref=%s, amount=%s)",
            submission.pk,
            bill.pk,
            submission.reference_number,
            submission.amount,
        )
        return submission

    @staticmethod
    def list_submissions(status: str = None):
        submissions = PaymentSubmission.objects.select_related('bill', 'customer')
        if status:
            submissions = submissions.filter(status=status)
        return submissions

    @staticmethod
    @transaction.atomic
    def review(
        submission_id: int,
        decision: str,
        reviewed_by: str = '',
        remarks: str = '',
    ) -> PaymentSubmission:
        """
        Approve or reject a pending payment proof.

        Approval adds the submitted amount to the bill's amount_paid and
        marks it Paid once credit plus approved payments cover amount_due,
        Partially Paid otherwise. Rejection leaves the bill untouched.

        Raises:
            ValidationError: If decision is neither approved nor rejected.
            StateConflictError: If the submission was already reviewed, or
                the bill is archived.
        """
        if decision not in (PaymentSubmission.APPROVED, PaymentSubmission.REJECTED):
            raise ValidationError(
                detail="Decision must be 'approved' or 'rejected'."
            )

        try:
            submission = PaymentSubmission.objects.select_for_update().get(
                pk=submission_id,
            )
        except PaymentSubmission.DoesNotExist:
            raise PaymentSubmissionNotFoundError(
                detail=f"Payment submission with ID {submission_id} not found."
            )

        if submission.status != PaymentSubmission.PENDING:
            raise StateConflictError(
                detail=f"Payment submission #{submission.pk} was already {submission.status}."
            )

        if decision == PaymentSubmission.APPROVED:
            PaymentReviewService._record_payment(submission)

        submission.status = decision
        submission.reviewed_by = reviewed_by
        submission.remarks = remarks
        submission.reviewed_at = timezone.now()
        submission.save(update_fields=['status', 'reviewed_by', 'remarks', 'reviewed_at'])

        logger.info(
            "Payment proof #%d %s by %s",
            submission.pk,
            decision,
            reviewed_by or 'staff',
        )
        return submission

    @staticmethod
    def _record_payment(submission: PaymentSubmission) -> Bill:
        """
        Add an approved payment to its bill.

        Approved amounts accumulate in amount_paid; the bill is Paid once
        credit plus approved payments cover amount_due.
        """
        bill = Bill.objects.select_for_update().get(pk=submission.bill_id)
        if bill.archived:
            raise StateConflictError(
                detail=f"Bill #{bill.pk} is archived; payment cannot be recorded."
            )

        amount_paid = bill.amount_paid + submission.amount
        covered = bill.amount_due - bill.credit_applied - amount_paid <= 0
        if covered or bill.status == Bill.PAID:
            new_status = Bill.PAID
        else:
            new_status = Bill.PARTIALLY_PAID

        updated = Bill.objects.filter(
            pk=bill.pk,
            version=bill.version,
        ).update(
            amount_paid=F('amount_paid') + submission.amount,
            status=new_status,
            version=F('version') + 1,
            updated_at=timezone.now(),
        )
        if not updated:
            raise StateConflictError(
                detail=f"Bill #{bill.pk} was modified by another operation."
            )

        logger.info(
            "Payment %s recorded on bill #%d: paid=%s, status=%s",
            submission.amount,
            bill.pk,
            amount_paid,
            new_status,
        )
        bill.refresh_from_db()
        return bill
