from django.contrib import admin

from apps.customers.models import Customer


@admin.register(Customer)
class CustomerAdmin(admin.ModelAdmin):
    list_display = (
        'id', 'last_name', 'first_name', 'meter_number',
        'is_senior', 'credit_balance', 'credit_limit', 'created_at',
    )
    list_filter = ('is_senior', 'created_at')
    search_fields = ('first_name', 'last_name', 'meter_number')
    # Balance changes go through the credit ledger only
    readonly_fields = ('credit_balance', 'version', 'created_at', 'updated_at')
