from django.urls import path

from . import views


urlpatterns = [
    path("invoices/", views.InvoiceListCreateView.as_view(), name="finance-invoices"),
    path("invoices/<int:pk>/", views.InvoiceDetailView.as_view(), name="finance-invoice-detail"),
    path("invoices/<int:pk>/status/", views.InvoiceStatusView.as_view(), name="finance-invoice-status"),
    path("bills/", views.BillListCreateView.as_view(), name="finance-bills"),
    path("bills/<int:pk>/", views.BillDetailView.as_view(), name="finance-bill-detail"),
    path("bills/<int:pk>/status/", views.BillStatusView.as_view(), name="finance-bill-status"),
    path("payments/", views.PaymentListCreateView.as_view(), name="finance-payments"),
    path("payments/<int:pk>/", views.PaymentDetailView.as_view(), name="finance-payment-detail"),
]
