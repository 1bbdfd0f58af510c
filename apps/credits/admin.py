from django.contrib import admin

from apps.credits.models import CreditTransaction


@admin.register(CreditTransaction)
class CreditTransactionAdmin(admin.ModelAdmin):
    list_display = (
        'id', 'customer', 'transaction_type', 'reference_type',
        'amount', 'balance_after', 'bill', 'created_at',
    )
    list_filter = ('transaction_type', 'reference_type', 'created_at')
    search_fields = ('customer__first_name', 'customer__last_name', 'description')
    raw_id_fields = ('customer', 'bill')

    # The ledger is append-only
    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False

    def has_add_permission(self, request):
        return False
