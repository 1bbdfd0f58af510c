"""
Billing URL configuration.
"""

from django.urls import path

from apps.billing.views import (
    ApplyCreditView,
    ArchiveBillView,
    ArchivedBillsView,
    BillDetailView,
    BillListCreateView,
    BillStatusView,
    ComputeBillView,
    CustomerBillsView,
    OverdueBillsView,
    PaymentProofView,
    PaymentSubmissionListView,
    ReviewPaymentView,
)

urlpatterns = [
    path('bills', BillListCreateView.as_view(), name='bills'),
    path('bills/compute', ComputeBillView.as_view(), name='compute-bill'),
    path('bills/archived', ArchivedBillsView.as_view(), name='archived-bills'),
    path('bills/overdue', OverdueBillsView.as_view(), name='overdue-bills'),
    path(
        'bills/customer/<int:customer_id>',
        CustomerBillsView.as_view(),
        name='customer-bills',
    ),
    path('bills/<int:bill_id>', BillDetailView.as_view(), name='bill-detail'),
    path('bills/<int:bill_id>/status', BillStatusView.as_view(), name='bill-status'),
    path('bills/<int:bill_id>/archive', ArchiveBillView.as_view(), name='archive-bill'),
    path(
        'bills/<int:bill_id>/apply-credit',
        ApplyCreditView.as_view(),
        name='apply-credit',
    ),
    path(
        'bills/<int:bill_id>/payment-proof',
        PaymentProofView.as_view(),
        name='payment-proof',
    ),
    path('payment-proofs', PaymentSubmissionListView.as_view(), name='payment-proofs'),
    path(
        'payment-proofs/<int:submission_id>/status',
        ReviewPaymentView.as_view(),
        name='review-payment',
    ),
]
