from django.urls import path
from .views import (
    material_list_create, material_detail, material_low_stock,
    stock_item_list_create, stock_item_detail, stock_item_status,
)

urlpatterns = [
    # Material endpoints
    path('materials/', material_list_create, name='material-list-create'),
    path('materials/low-stock/', material_low_stock, name='material-low-stock'),
    path('materials/<int:pk>/', material_detail, name='material-detail'),

    # StockItem endpoints
    path('stock-items/', stock_item_list_create, name='stock-item-list-create'),
    path('stock-items/<int:pk>/', stock_item_detail, name='stock-item-detail'),
    path('stock-items/<int:pk>/status/', stock_item_status, name='stock-item-status'),
]
