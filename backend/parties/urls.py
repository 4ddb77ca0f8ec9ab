from django.urls import path
from .views import (
    client_list_create, client_detail,
    client_note_list_create, client_note_detail,
    supplier_list_create, supplier_detail,
)

urlpatterns = [
    # Client endpoints
    path('clients/', client_list_create, name='client-list-create'),
    path('clients/<int:pk>/', client_detail, name='client-detail'),
    path('clients/<int:client_id>/notes/', client_note_list_create, name='client-note-list-create'),
    path('clients/<int:client_id>/notes/<int:pk>/', client_note_detail, name='client-note-detail'),

    # Supplier endpoints
    path('suppliers/', supplier_list_create, name='supplier-list-create'),
    path('suppliers/<int:pk>/', supplier_detail, name='supplier-detail'),
]
