"""
Celery tasks for data ingestion.

Reads customer_data.xlsx and bill_data.xlsx using pandas and upserts
them with idempotency guarantees. Bill amounts are never trusted from
the sheet: they are recomputed from the readings.
"""

import logging
from decimal import Decimal, InvalidOperation
from pathlib import Path

import pandas as pd
from celery import shared_task
from django.conf import settings
from django.db import IntegrityError, transaction
from django.db.models import F
from django.utils import timezone

logger = logging.getLogger(__name__)

TRUE_VALUES = {'true', 'yes', 'y', '1'}


def _read_sheet(file_name):
    """Read an Excel file from DATA_DIR with normalized column names."""
    file_path = Path(settings.DATA_DIR) / file_name
    if not file_path.exists():
        return file_path, None

    df = pd.read_excel(file_path)
    df.columns = [str(col).strip().lower().replace(' ', '_') for col in df.columns]
    return file_path, df


def _cell(row, column, default=None):
    value = row.get(column, default)
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return default
    return value


def _to_bool(value):
    if value is None:
        return False
    if isinstance(value, str):
        return value.strip().lower() in TRUE_VALUES
    return bool(value)


def _to_decimal(value):
    return Decimal(str(value).strip())


@shared_task(
    bind=True,
    name='core.ingest_customer_data',
    max_retries=3,
    default_retry_delay=10,
)
def ingest_customer_data(self):
    """
    Ingest customers from customer_data.xlsx.

    Columns: customer_id, first_name, last_name, meter_number,
    is_senior, credit_limit. Credit balances are not imported; credit
    only enters through the ledger.

    This task is idempotent — safe to run multiple times.
    """
    from apps.customers.models import Customer

    try:
        file_path, df = _read_sheet('customer_data.xlsx')
        if df is None:
            logger.error("Customer data file not found: %s", file_path)
            return {'status': 'error', 'message': f'File not found: {file_path}'}

        logger.info("Read %d rows from %s", len(df), file_path)

        created_count = 0
        updated_count = 0
        error_count = 0

        for index, row in df.iterrows():
            try:
                customer_id = _cell(row, 'customer_id')
                meter_number = _cell(row, 'meter_number')
                if customer_id is None or meter_number is None:
                    logger.warning(
                        "Row %d: missing customer_id or meter_number, skipping",
                        index,
                    )
                    error_count += 1
                    continue

                credit_limit = _cell(row, 'credit_limit')
                customer_data = {
                    'first_name': str(_cell(row, 'first_name', '')).strip(),
                    'last_name': str(_cell(row, 'last_name', '')).strip(),
                    'meter_number': str(meter_number).strip(),
                    'is_senior': _to_bool(_cell(row, 'is_senior')),
                    'credit_limit': (
                        _to_decimal(credit_limit) if credit_limit is not None else None
                    ),
                }

                with transaction.atomic():
                    _, created = Customer.objects.update_or_create(
                        pk=int(customer_id),
                        defaults=customer_data,
                    )

                if created:
                    created_count += 1
                else:
                    updated_count += 1

            except (ValueError, TypeError, InvalidOperation, IntegrityError) as e:
                logger.warning("Row %d: failed to process — %s", index, str(e))
                error_count += 1
                continue

        result = {
            'status': 'success',
            'total_rows': len(df),
            'created': created_count,
            'updated': updated_count,
            'errors': error_count,
        }
        logger.info("Customer data ingestion complete: %s", result)
        return result

    except Exception as exc:
        logger.exception("Customer data ingestion failed")
        raise self.retry(exc=exc)


@shared_task(
    bind=True,
    name='core.ingest_bill_data',
    max_retries=3,
    default_retry_delay=10,
)
def ingest_bill_data(self):
    """
    Ingest historical bills from bill_data.xlsx.

    Columns: bill_id, customer_id, previous_reading, current_reading,
    reading_date, penalty_applied, status, archived. Amounts come from
    compute_bill and the due date from compute_due_date(reading_date).

    status and archived only seed newly created bills. Re-ingesting an
    existing bill refreshes its readings and amounts and bumps its
    version, but never touches its status or archive flag. Archived
    bills and bills with credit or approved payments are left untouched.

    This task is idempotent — safe to run multiple times.
    """
    from apps.billing.calculations import compute_bill, compute_due_date
    from apps.billing.models import Bill
    from apps.core.exceptions import ValidationError
    from apps.customers.models import Customer

    try:
        file_path, df = _read_sheet('bill_data.xlsx')
        if df is None:
            logger.error("Bill data file not found: %s", file_path)
            return {'status': 'error', 'message': f'File not found: {file_path}'}

        logger.info("Read %d rows from %s", len(df), file_path)

        customers = Customer.objects.in_bulk()
        # Overdue is derived on read, so it is stored as Unpaid
        storable_statuses = set(Bill.OVERRIDABLE_STATUSES)

        created_count = 0
        updated_count = 0
        skipped_count = 0
        error_count = 0

        for index, row in df.iterrows():
            try:
                bill_id = _cell(row, 'bill_id')
                customer_id = _cell(row, 'customer_id')
                if bill_id is None or customer_id is None:
                    logger.warning(
                        "Row %d: missing bill_id or customer_id, skipping", index
                    )
                    error_count += 1
                    continue

                customer = customers.get(int(customer_id))
                if customer is None:
                    logger.warning(
                        "Row %d: customer_id %s not found, skipping",
                        index,
                        customer_id,
                    )
                    error_count += 1
                    continue

                previous_reading = _to_decimal(_cell(row, 'previous_reading'))
                current_reading = _to_decimal(_cell(row, 'current_reading'))
                if current_reading < previous_reading:
                    logger.warning(
                        "Row %d: current reading %s below previous %s, skipping",
                        index,
                        current_reading,
                        previous_reading,
                    )
                    error_count += 1
                    continue

                reading_date = pd.to_datetime(
                    _cell(row, 'reading_date'), errors='coerce'
                )
                if pd.isna(reading_date):
                    logger.warning("Row %d: invalid reading_date, skipping", index)
                    error_count += 1
                    continue

                existing = Bill.objects.filter(pk=int(bill_id)).first()
                if existing is not None and (
                    existing.archived
                    or existing.credit_applied > 0
                    or existing.amount_paid > 0
                ):
                    logger.info(
                        "Row %d: bill #%d is archived or has payments, leaving as is",
                        index,
                        existing.pk,
                    )
                    skipped_count += 1
                    continue

                penalty_applied = _to_bool(_cell(row, 'penalty_applied'))
                result = compute_bill(
                    previous_reading,
                    current_reading,
                    is_senior=customer.is_senior,
                    penalty_applied=penalty_applied,
                    rate_per_unit=Decimal(str(settings.BILLING_RATE_PER_UNIT)),
                )

                bill_data = {
                    'customer': customer,
                    'meter_number': customer.meter_number,
                    'previous_reading': previous_reading,
                    'current_reading': current_reading,
                    'consumption': result.consumption,
                    'is_senior': customer.is_senior,
                    'penalty_applied': penalty_applied,
                    'base_amount': result.base_amount,
                    'senior_discount': result.senior_discount,
                    'penalty_amount': result.penalty,
                    'amount_due': result.final_amount,
                    'due_date': compute_due_date(
                        reading_date.date(), settings.BILLING_DUE_DAY,
                    ),
                }

                if existing is None:
                    # Status and archive flag only seed new bills
                    status = str(_cell(row, 'status', Bill.UNPAID)).strip()
                    if status not in storable_statuses:
                        status = Bill.UNPAID
                    archived = _to_bool(_cell(row, 'archived'))

                    with transaction.atomic():
                        Bill.objects.create(
                            pk=int(bill_id),
                            status=status,
                            archived=archived,
                            archived_at=timezone.now() if archived else None,
                            **bill_data,
                        )
                    created_count += 1
                    continue

                with transaction.atomic():
                    updated = Bill.objects.filter(
                        pk=existing.pk,
                        version=existing.version,
                        archived=False,
                    ).update(
                        version=F('version') + 1,
                        updated_at=timezone.now(),
                        **bill_data,
                    )

                if updated:
                    updated_count += 1
                else:
                    logger.warning(
                        "Row %d: bill #%d changed during ingestion, skipping",
                        index,
                        existing.pk,
                    )
                    skipped_count += 1

            except (
                ValueError, TypeError, InvalidOperation,
                IntegrityError, ValidationError,
            ) as e:
                logger.warning("Row %d: failed to process — %s", index, str(e))
                error_count += 1
                continue

        result = {
            'status': 'success',
            'total_rows': len(df),
            'created': created_count,
            'updated': updated_count,
            'skipped': skipped_count,
            'errors': error_count,
        }
        logger.info("Bill data ingestion complete: %s", result)
        return result

    except Exception as exc:
        logger.exception("Bill data ingestion failed")
        raise self.retry(exc=exc)
