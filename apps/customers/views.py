"""
Customer views for the Water Billing System.

Views are thin — all business logic is in the service layer.
"""

import logging

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.customers.serializers import (
    CustomerResponseSerializer,
    RegisterCustomerSerializer,
)
from apps.customers.services import CustomerService

logger = logging.getLogger(__name__)


class RegisterCustomerView(APIView):
    """
    POST /api/customers

    Register a new customer in the system.
    """

    def post(self, request):
        """Handle customer registration."""
        serializer = RegisterCustomerSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        customer = CustomerService.register(serializer.validated_data)

        return Response(
            CustomerResponseSerializer(customer).data,
            status=status.HTTP_201_CREATED,
        )


class CustomerDetailView(APIView):
    """
    GET /api/customers/<customer_id>

    View a customer's account and credit balance.
    """

    def get(self, request, customer_id):
        customer = CustomerService.get_customer(customer_id)
        return Response(
            CustomerResponseSerializer(customer).data,
            status=status.HTTP_200_OK,
        )
