"""
Credit ledger views for the Water Billing System.

Views are thin — all business logic is in the service layer.
"""

import logging

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.credits.serializers import (
    AdjustCreditSerializer,
    CreditAmountSerializer,
    CreditTransactionSerializer,
    CustomerCreditSerializer,
)
from apps.credits.services import CreditLedgerService

logger = logging.getLogger(__name__)


class CustomersWithCreditView(APIView):
    """GET /api/credits/customers"""

    def get(self, request):
        customers = CreditLedgerService.customers_with_credit()
        return Response(CustomerCreditSerializer(customers, many=True).data)


class CustomerCreditDetailView(APIView):
    """
    GET /api/credits/customer/<customer_id>

    A customer's credit balance and ledger entries, newest first.
    """

    def get(self, request, customer_id):
        credits = CreditLedgerService.get_customer_credits(customer_id)
        return Response({
            'customer': CustomerCreditSerializer(credits['customer']).data,
            'transactions': CreditTransactionSerializer(
                credits['transactions'], many=True,
            ).data,
        })


class AddCreditView(APIView):
    """POST /api/credits/add"""

    def post(self, request):
        serializer = CreditAmountSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        entry = CreditLedgerService.record_credit(
            serializer.validated_data['customer_id'],
            serializer.validated_data['amount'],
            serializer.validated_data['description'],
        )
        return Response(
            CreditTransactionSerializer(entry).data,
            status=status.HTTP_201_CREATED,
        )


class DeductCreditView(APIView):
    """POST /api/credits/deduct"""

    def post(self, request):
        serializer = CreditAmountSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        entry = CreditLedgerService.deduct_credit(
            serializer.validated_data['customer_id'],
            serializer.validated_data['amount'],
            serializer.validated_data['description'],
        )
        return Response(
            CreditTransactionSerializer(entry).data,
            status=status.HTTP_201_CREATED,
        )


class AdjustCreditView(APIView):
    """
    POST /api/credits/adjust

    Set a customer's balance to an exact figure. Returns 200 with no
    transaction when the balance already matches.
    """

    def post(self, request):
        serializer = AdjustCreditSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        entry = CreditLedgerService.adjust_balance(
            serializer.validated_data['customer_id'],
            serializer.validated_data['new_balance'],
            serializer.validated_data['reason'],
        )

        if entry is None:
            return Response(
                {'message': 'Credit balance already matches.', 'transaction': None},
                status=status.HTTP_200_OK,
            )

        return Response(
            {
                'message': 'Credit balance adjusted.',
                'transaction': CreditTransactionSerializer(entry).data,
            },
            status=status.HTTP_201_CREATED,
        )
