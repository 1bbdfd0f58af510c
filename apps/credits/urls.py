"""
Credit ledger URL configuration.
"""

from django.urls import path

from apps.credits.views import (
    AddCreditView,
    AdjustCreditView,
    CustomerCreditDetailView,
    CustomersWithCreditView,
    DeductCreditView,
)

urlpatterns = [
    path('credits/customers', CustomersWithCreditView.as_view(), name='credit-customers'),
    path(
        'credits/customer/<int:customer_id>',
        CustomerCreditDetailView.as_view(),
        name='customer-credits',
    ),
    path('credits/add', AddCreditView.as_view(), name='add-credit'),
    path('credits/deduct', DeductCreditView.as_view(), name='deduct-credit'),
    path('credits/adjust', AdjustCreditView.as_view(), name='adjust-credit'),
]
