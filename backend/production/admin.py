from django.contrib import admin
from .models import ServiceOrder, ProductionEmployee, CutPiece


@admin.register(ServiceOrder)
class ServiceOrderAdmin(admin.ModelAdmin):
    list_display = ['code', 'client_name', 'order', 'status', 'logistics_status', 'priority', 'delivery_date']
    list_filter = ['status', 'logistics_status', 'priority', 'finalization_type']
    search_fields = ['code', 'client_name', 'order__code']
    readonly_fields = ['code', 'history', 'created_at', 'updated_at']
    filter_horizontal = ['assigned_to']


@admin.register(ProductionEmployee)
class ProductionEmployeeAdmin(admin.ModelAdmin):
    list_display = ['name', 'role', 'availability', 'current_task_type', 'current_task_id', 'active']
    list_filter = ['role', 'availability', 'active']
    search_fields = ['name', 'email']


@admin.register(CutPiece)
class CutPieceAdmin(admin.ModelAdmin):
    list_display = ['piece_id', 'service_order', 'description', 'status', 'location']
    list_filter = ['status']
    search_fields = ['piece_id', 'service_order__code', 'description']
