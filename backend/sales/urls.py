from django.urls import path
from .views import (
    quote_list_create, quote_detail, order_list_create, order_detail,
    contract_from_order, contract_detail, contract_sign, order_contracts,
    order_addendums, pending_addendums, addendum_detail, addendum_status,
)

urlpatterns = [
    # Quote endpoints
    path('quotes/', quote_list_create, name='quote-list-create'),
    path('quotes/<int:pk>/', quote_detail, name='quote-detail'),

    # Order endpoints
    path('orders/', order_list_create, name='order-list-create'),
    path('orders/<int:pk>/', order_detail, name='order-detail'),
    path('orders/<int:pk>/contracts/', order_contracts, name='order-contracts'),
    path('orders/<int:pk>/addendums/', order_addendums, name='order-addendums'),

    # Contract endpoints
    path('contracts/from-order/', contract_from_order, name='contract-from-order'),
    path('contracts/<int:pk>/', contract_detail, name='contract-detail'),
    path('contracts/<int:pk>/sign/', contract_sign, name='contract-sign'),

    # Addendum endpoints
    path('addendums/pending/', pending_addendums, name='addendum-pending'),
    path('addendums/<int:pk>/', addendum_detail, name='addendum-detail'),
    path('addendums/<int:pk>/status/', addendum_status, name='addendum-status'),
]
