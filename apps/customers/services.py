"""
Customer service layer.

All customer-related business logic resides here.
Views delegate to this service — no business logic in views.
"""

import logging

from apps.core.exceptions import CustomerNotFoundError
from apps.customers.models import Customer

logger = logging.getLogger(__name__)


class CustomerService:
    """Service class for customer-related operations."""

    @staticmethod
    def register(validated_data: dict) -> Customer:
        """
        Register a new water service customer.

        New accounts always start with a zero credit balance; credit is
        only ever added through the credit ledger.

        Args:
            validated_data: Dict with first_name, last_name, meter_number
                          and optional is_senior, credit_limit.

        Returns:
            The newly created Customer instance.
        """
        customer = Customer.objects.create(
            first_name=validated_data['first_name'],
            last_name=validated_data['last_name'],
            meter_number=validated_data['meter_number'],
            is_senior=validated_data.get('is_senior', False),
            credit_limit=validated_data.get('credit_limit'),
        )

        logger.info(
            "Registered customer %s (ID: %d) on meter %s",
            customer.display_name,
            customer.pk,
            customer.meter_number,
        )

        return customer

    @staticmethod
    def get_customer(customer_id: int) -> Customer:
        """
        Retrieve a customer by ID.

        Raises:
            CustomerNotFoundError: If customer not found.
        """
        try:
            return Customer.objects.get(pk=customer_id)
        except Customer.DoesNotExist:
            raise CustomerNotFoundError(
                detail=f"Customer with ID {customer_id} not found."
            )
