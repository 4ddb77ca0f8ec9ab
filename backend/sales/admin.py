from django.contrib import admin
from .models import Quote, Order, Contract, OrderAddendum


@admin.register(Quote)
class QuoteAdmin(admin.ModelAdmin):
    list_display = ['code', 'client_name', 'status', 'total', 'salesperson', 'created_at']
    list_filter = ['status', 'payment_method', 'created_at']
    search_fields = ['code', 'client_name', 'client_email']
    ordering = ['-created_at']


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ['code', 'client_name', 'total', 'approval_date', 'salesperson']
    search_fields = ['code', 'client_name']
    ordering = ['-created_at']


@admin.register(Contract)
class ContractAdmin(admin.ModelAdmin):
    list_display = ['document_number', 'order', 'status', 'signatory_name', 'signed_at', 'created_at']
    list_filter = ['status']
    search_fields = ['document_number', 'order__code', 'signatory_name']
    ordering = ['-created_at']


@admin.register(OrderAddendum)
class OrderAddendumAdmin(admin.ModelAdmin):
    list_display = ['order', 'addendum_number', 'status', 'price_adjustment', 'approved_by', 'created_at']
    list_filter = ['status']
    search_fields = ['order__code', 'reason']
    ordering = ['-created_at']
