from django.contrib import admin

from apps.billing.models import Bill, PaymentSubmission


@admin.register(Bill)
class BillAdmin(admin.ModelAdmin):
    list_display = (
        'id', 'customer', 'meter_number', 'consumption',
        'amount_due', 'credit_applied', 'amount_paid', 'due_date', 'status',
        'archived', 'created_at',
    )
    list_filter = ('status', 'archived', 'is_senior', 'penalty_applied', 'due_date')
    search_fields = ('customer__first_name', 'customer__last_name', 'meter_number')
    readonly_fields = (
        'consumption', 'base_amount', 'senior_discount', 'penalty_amount',
        'amount_due', 'credit_applied', 'amount_paid', 'version', 'archived_at',
        'created_at', 'updated_at',
    )
    raw_id_fields = ('customer',)


@admin.register(PaymentSubmission)
class PaymentSubmissionAdmin(admin.ModelAdmin):
    list_display = (
        'id', 'bill', 'customer', 'reference_number', 'amount',
        'status', 'reviewed_by', 'created_at',
    )
    list_filter = ('status', 'created_at')
    search_fields = ('reference_number', 'customer__last_name')
    readonly_fields = ('reviewed_at', 'created_at')
    raw_id_fields = ('bill', 'customer')
