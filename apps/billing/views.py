"""
Billing views for the Water Billing System.

Views are thin — all business logic is in the service layer.
"""

import logging

from rest_framework import status
from rest_framework.exceptions import ValidationError as RequestValidationError
from rest_framework.pagination import PageNumberPagination
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.billing.calculations import compute_bill
from apps.billing.lifecycle import BillLifecycleService
from apps.billing.models import PaymentSubmission
from apps.billing.serializers import (
    ApplyCreditResponseSerializer,
    ApplyCreditSerializer,
    ArchiveBillSerializer,
    BillComputationSerializer,
    BillSerializer,
    CustomerBillingViewSerializer,
    OverdueBillSerializer,
    PaymentProofSerializer,
    PaymentSubmissionSerializer,
    ReviewPaymentSerializer,
    StatusOverrideSerializer,
)
from apps.billing.services import (
    BillService,
    PaymentReviewService,
    billing_rate_per_unit,
    next_due_date,
)
from apps.billing.validation import parse_bill_input
from apps.credits.services import CreditLedgerService
from apps.customers.services import CustomerService

logger = logging.getLogger(__name__)


class BillingPagination(PageNumberPagination):
    """Pagination for the grouped customer billing list."""
    page_size = 10
    page_size_query_param = 'page_size'
    max_page_size = 100


class BillListCreateView(APIView):
    """
    GET  /api/bills — active bills grouped per customer, paginated.
    POST /api/bills — compute and create a bill.
    """

    def get(self, request):
        views = BillService.customer_billing_views()

        paginator = BillingPagination()
        page = paginator.paginate_queryset(views, request, view=self)
        serializer = CustomerBillingViewSerializer(page, many=True)
        return paginator.get_paginated_response(serializer.data)

    def post(self, request):
        outcome = parse_bill_input(request.data)
        if not outcome.ok:
            raise RequestValidationError(outcome.errors)

        bill = BillService.create_bill(outcome.data)

        return Response(
            BillSerializer(bill).data,
            status=status.HTTP_201_CREATED,
        )


class ComputeBillView(APIView):
    """
    POST /api/bills/compute

    Preview a bill's charges without storing anything.
    """

    def post(self, request):
        outcome = parse_bill_input(request.data, for_creation=False)
        if not outcome.ok:
            raise RequestValidationError(outcome.errors)

        result = compute_bill(
            outcome.data['previous_reading'],
            outcome.data['current_reading'],
            is_senior=outcome.data['is_senior'],
            penalty_applied=outcome.data['penalty_applied'],
            rate_per_unit=billing_rate_per_unit(),
        )

        response_data = dict(result.as_dict(), due_date=next_due_date())
        return Response(
            BillComputationSerializer(response_data).data,
            status=status.HTTP_200_OK,
        )


class ArchivedBillsView(APIView):
    """GET /api/bills/archived"""

    def get(self, request):
        bills = BillService.archived_bills()
        return Response(BillSerializer(bills, many=True).data)


class OverdueBillsView(APIView):
    """GET /api/bills/overdue"""

    def get(self, request):
        overdue = BillService.overdue_bills()
        return Response(OverdueBillSerializer(overdue, many=True).data)


class CustomerBillsView(APIView):
    """
    GET /api/bills/customer/<customer_id>

    A customer's active bills, newest first.
    """

    def get(self, request, customer_id):
        bills = BillService.get_customer_bills(customer_id)
        return Response(BillSerializer(bills, many=True).data)


class BillDetailView(APIView):
    """GET /api/bills/<bill_id>"""

    def get(self, request, bill_id):
        bill = BillService.get_bill(bill_id)
        return Response(BillSerializer(bill).data)


class BillStatusView(APIView):
    """
    PUT /api/bills/<bill_id>/status

    Staff override of a bill's status. Sending the version the change
    is based on turns a concurrent edit into a 409 instead of a silent
    overwrite.
    """

    def put(self, request, bill_id):
        serializer = StatusOverrideSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        bill = BillService.get_bill(bill_id)
        if 'version' in serializer.validated_data:
            bill.version = serializer.validated_data['version']

        bill = BillLifecycleService.override_status(
            bill, serializer.validated_data['status'],
        )
        return Response(BillSerializer(bill).data)


class ArchiveBillView(APIView):
    """
    PUT /api/bills/<bill_id>/archive

    Archive a bill. Repeating the request is harmless.
    """

    def put(self, request, bill_id):
        serializer = ArchiveBillSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        bill = BillService.get_bill(bill_id)
        if 'version' in serializer.validated_data and not bill.archived:
            bill.version = serializer.validated_data['version']

        bill = BillLifecycleService.archive_bill(bill)
        return Response(BillSerializer(bill).data)


class ApplyCreditView(APIView):
    """
    POST /api/bills/<bill_id>/apply-credit

    Pay a bill from the customer's credit balance.
    """

    def post(self, request, bill_id):
        serializer = ApplyCreditSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        bill = BillService.get_bill(bill_id)
        customer_id = serializer.validated_data.get('customer_id', bill.customer_id)

        result = CreditLedgerService.apply_credit_to_bill(customer_id, bill)
        customer = CustomerService.get_customer(customer_id)

        response_data = {
            'bill_id': bill.pk,
            'amount_applied': result.amount_applied,
            'remaining_due': result.remaining_due,
            'new_status': result.new_status,
            'credit_balance': customer.credit_balance,
        }
        return Response(
            ApplyCreditResponseSerializer(response_data).data,
            status=status.HTTP_200_OK,
        )


class PaymentProofView(APIView):
    """
    POST /api/bills/<bill_id>/payment-proof

    A customer submits the reference number (and uploaded screenshot
    path) of a manual payment for staff review.
    """

    def post(self, request, bill_id):
        serializer = PaymentProofSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        bill = BillService.get_bill(bill_id)
        submission = PaymentReviewService.submit_proof(bill, serializer.validated_data)

        return Response(
            PaymentSubmissionSerializer(submission).data,
            status=status.HTTP_201_CREATED,
        )


class PaymentSubmissionListView(APIView):
    """GET /api/payment-proofs?status=pending"""

    def get(self, request):
        status_filter = request.query_params.get('status')
        valid_statuses = dict(PaymentSubmission.STATUS_CHOICES)
        if status_filter and status_filter not in valid_statuses:
            raise RequestValidationError(
                {'status': [f"Must be one of: {', '.join(valid_statuses)}."]}
            )

        submissions = PaymentReviewService.list_submissions(status_filter)
        return Response(PaymentSubmissionSerializer(submissions, many=True).data)


class ReviewPaymentView(APIView):
    """PUT /api/payment-proofs/<submission_id>/status"""

    def put(self, request, submission_id):
        serializer = ReviewPaymentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        submission = PaymentReviewService.review(
            submission_id,
            serializer.validated_data['status'],
            reviewed_by=serializer.validated_data.get('reviewed_by', ''),
            remarks=serializer.validated_data.get('remarks', ''),
        )
        return Response(PaymentSubmissionSerializer(submission).data)
