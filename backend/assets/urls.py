from django.urls import path
from .views import equipment_list_create, equipment_detail, asset_qrcode_scan, asset_status, asset_location

urlpatterns = [
    # Equipment endpoints
    path('equipment/', equipment_list_create, name='equipment-list-create'),
    path('equipment/<int:pk>/', equipment_detail, name='equipment-detail'),

    # Asset endpoints
    path('assets/qrcode-scan/', asset_qrcode_scan, name='asset-qrcode-scan'),
    path('assets/<str:asset_type>/<str:asset_id>/status/', asset_status, name='asset-status'),
    path('assets/<str:asset_type>/<str:asset_id>/location/', asset_location, name='asset-location'),
]
