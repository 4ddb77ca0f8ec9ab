from django.contrib import admin
from .models import Invoice, FinancialTransaction


@admin.register(Invoice)
class InvoiceAdmin(admin.ModelAdmin):
    list_display = ['id', 'order', 'client_name', 'total', 'status', 'issue_date', 'nfe_key']
    list_filter = ['status']
    search_fields = ['client_name', 'order__code', 'nfe_key']
    readonly_fields = ['nfe_key', 'nfe_xml_url', 'nfe_pdf_url', 'issue_date']


@admin.register(FinancialTransaction)
class FinancialTransactionAdmin(admin.ModelAdmin):
    list_display = ['description', 'type', 'amount', 'status', 'due_date', 'payment_date']
    list_filter = ['type', 'status', 'payment_method']
    search_fields = ['description']
    date_hierarchy = 'due_date'
