from django.db import models
from backend.core.models import User


class Client(models.Model):
    """CRM clients"""
    TYPE_CHOICES = [
        ('pessoa_fisica', 'Pessoa Física'),
        ('empresa', 'Empresa'),
    ]

    name = models.CharField(max_length=200)
    type = models.CharField(max_length=20, choices=TYPE_CHOICES, default='pessoa_fisica')
    email = models.EmailField(blank=True)
    phone = models.CharField(max_length=20, blank=True)
    address = models.JSONField(default=dict, blank=True, help_text="cep, uf, city, neighborhood, address, number, complement")
    cpf_cnpj = models.CharField(max_length=20, unique=True, blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'clients'
        ordering = ['name']


class ClientNote(models.Model):
    """Free text notes attached to a client"""
    client = models.ForeignKey(Client, on_delete=models.CASCADE, related_name='notes')
    content = models.TextField()
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='client_notes')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"Note #{self.pk} for {self.client}"

    class Meta:
        db_table = 'client_notes'
        ordering = ['-created_at']


class Supplier(models.Model):
    """Suppliers"""
    name = models.CharField(max_length=200)
    contact_person = models.CharField(max_length=200, blank=True)
    phone = models.CharField(max_length=20, blank=True)
    email = models.EmailField(blank=True)
    address = models.JSONField(default=dict, blank=True)
    cpf_cnpj = models.CharField(max_length=20, unique=True, blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'suppliers'
        ordering = ['name']
