from django.contrib import admin
from .models import Material, StockItem


@admin.register(Material)
class MaterialAdmin(admin.ModelAdmin):
    list_display = ['name', 'sku', 'supplier', 'cost_per_sqm', 'min_stock_sqm']
    search_fields = ['name', 'sku']
    ordering = ['name']


@admin.register(StockItem)
class StockItemAdmin(admin.ModelAdmin):
    list_display = ['internal_id', 'material', 'width', 'height', 'location', 'status', 'updated_at']
    list_filter = ['status', 'material']
    search_fields = ['internal_id', 'qr_code_value', 'location']
    ordering = ['-created_at']
