"""
Core views for the Water Billing System.
"""

import logging

from django.http import JsonResponse
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.core.tasks import ingest_bill_data, ingest_customer_data

logger = logging.getLogger(__name__)


def health_check(request):
    """
    GET /health/

    Simple health check endpoint for Docker and load balancer probes.
    Exempt from API key authentication.
    """
    return JsonResponse({'status': 'healthy'}, status=200)


class TriggerIngestionView(APIView):
    """
    POST /api/ingest-data

    Queue ingestion of customer and bill spreadsheets. Bills reference
    customers, so the bill task is chained after the customer task.
    """

    def post(self, request):
        chain = ingest_customer_data.si() | ingest_bill_data.si()
        result = chain.apply_async()

        logger.info(
            "Data ingestion triggered — customer_task=%s, bill_task=%s",
            result.parent.id,
            result.id,
        )

        return Response(
            {
                'message': 'Data ingestion tasks have been triggered.',
                'customer_task_id': result.parent.id,
                'bill_task_id': result.id,
            },
            status=status.HTTP_202_ACCEPTED,
        )
