from django.contrib import admin
from .models import Equipment


@admin.register(Equipment)
class EquipmentAdmin(admin.ModelAdmin):
    list_display = ['name', 'serial_number', 'category', 'status', 'current_location', 'warranty_end_date']
    list_filter = ['category', 'status']
    search_fields = ['name', 'serial_number', 'purchase_invoice_number']
