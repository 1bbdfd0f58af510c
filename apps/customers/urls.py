"""
Customer URL configuration.
"""

from django.urls import path

from apps.customers.views import CustomerDetailView, RegisterCustomerView

urlpatterns = [
    path('customers', RegisterCustomerView.as_view(), name='register-customer'),
    path(
        'customers/<int:customer_id>',
        CustomerDetailView.as_view(),
        name='customer-detail',
    ),
]
