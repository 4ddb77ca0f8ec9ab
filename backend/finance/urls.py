from django.urls import path
from .views import (
    invoice_list, invoice_detail, invoice_from_order, invoice_issue,
    transaction_list_create, transaction_detail, transaction_pay, transaction_summary,
)

urlpatterns = [
    # Invoice endpoints
    path('invoices/', invoice_list, name='invoice-list'),
    path('invoices/from-order/', invoice_from_order, name='invoice-from-order'),
    path('invoices/<int:pk>/', invoice_detail, name='invoice-detail'),
    path('invoices/<int:pk>/issue/', invoice_issue, name='invoice-issue'),

    # FinancialTransaction endpoints
    path('financial-transactions/', transaction_list_create, name='transaction-list-create'),
    path('financial-transactions/summary/', transaction_summary, name='transaction-summary'),
    path('financial-transactions/<int:pk>/', transaction_detail, name='transaction-detail'),
    path('financial-transactions/<int:pk>/pay/', transaction_pay, name='transaction-pay'),
]
