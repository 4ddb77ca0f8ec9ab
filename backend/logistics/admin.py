from django.contrib import admin
from .models import Vehicle, DeliveryRoute, ChecklistTemplate


@admin.register(Vehicle)
class VehicleAdmin(admin.ModelAdmin):
    list_display = ['name', 'license_plate', 'type', 'capacity', 'status', 'next_maintenance']
    list_filter = ['type', 'status']
    search_fields = ['name', 'license_plate']


@admin.register(DeliveryRoute)
class DeliveryRouteAdmin(admin.ModelAdmin):
    list_display = ['id', 'service_order', 'type', 'vehicle', 'start', 'end', 'status']
    list_filter = ['type', 'status', 'vehicle']
    search_fields = ['service_order__code', 'service_order__client_name']
    filter_horizontal = ['team']
    date_hierarchy = 'start'


@admin.register(ChecklistTemplate)
class ChecklistTemplateAdmin(admin.ModelAdmin):
    list_display = ['name', 'type', 'updated_at']
    list_filter = ['type']
