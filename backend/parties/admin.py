from django.contrib import admin
from .models import Client, ClientNote, Supplier


class ClientNoteInline(admin.TabularInline):
    model = ClientNote
    extra = 0
    readonly_fields = ['created_by', 'created_at']


@admin.register(Client)
class ClientAdmin(admin.ModelAdmin):
    list_display = ['name', 'type', 'phone', 'email', 'cpf_cnpj', 'created_at']
    list_filter = ['type', 'created_at']
    search_fields = ['name', 'phone', 'email', 'cpf_cnpj']
    ordering = ['name']
    inlines = [ClientNoteInline]


@admin.register(Supplier)
class SupplierAdmin(admin.ModelAdmin):
    list_display = ['name', 'contact_person', 'phone', 'email', 'cpf_cnpj', 'created_at']
    search_fields = ['name', 'contact_person', 'email', 'cpf_cnpj']
    ordering = ['name']
