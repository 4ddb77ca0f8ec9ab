from django.db import models
from decimal import Decimal
from backend.core.models import User
from backend.parties.models import Client
from backend.sales.models import Order, PAYMENT_METHOD_CHOICES


class Invoice(models.Model):
    """Fiscal invoice (NF-e) of an order"""
    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('issued', 'Issued'),
        ('canceled', 'Canceled'),
    ]

    order = models.OneToOneField(Order, on_delete=models.PROTECT, related_name='invoice')
    client = models.ForeignKey(Client, on_delete=models.SET_NULL, null=True, blank=True, related_name='invoices')
    client_name = models.CharField(max_length=200)
    buyer_document = models.CharField(max_length=20, blank=True)
    buyer_address = models.JSONField(default=dict, blank=True)
    items = models.JSONField(default=list, blank=True)
    total = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='pending')
    issue_date = models.DateTimeField(null=True, blank=True)
    nfe_key = models.CharField(max_length=60, blank=True)
    nfe_xml_url = models.CharField(max_length=500, blank=True)
    nfe_pdf_url = models.CharField(max_length=500, blank=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='invoices')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.nfe_key or f"NF {self.order.code}"

    class Meta:
        db_table = 'invoices'
        ordering = ['-created_at']


class FinancialTransaction(models.Model):
    """Receivable or payable entry"""
    TYPE_CHOICES = [
        ('receita', 'Receita'),
        ('despesa', 'Despesa'),
    ]
    STATUS_CHOICES = [
        ('pago', 'Pago'),
        ('pendente', 'Pendente'),
    ]

    description = models.CharField(max_length=255)
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    type = models.CharField(max_length=10, choices=TYPE_CHOICES)
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default='pendente')
    due_date = models.DateField()
    payment_date = models.DateField(null=True, blank=True)
    related_order = models.ForeignKey(Order, on_delete=models.SET_NULL, null=True, blank=True, related_name='transactions')
    related_client = models.ForeignKey(Client, on_delete=models.SET_NULL, null=True, blank=True, related_name='transactions')
    payment_method = models.CharField(max_length=20, choices=PAYMENT_METHOD_CHOICES, blank=True)
    attachment_url = models.CharField(max_length=500, blank=True)
    attachment_name = models.CharField(max_length=255, blank=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='transactions')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.get_type_display()} {self.description} ({self.amount})"

    class Meta:
        db_table = 'financial_transactions'
        ordering = ['due_date', '-created_at']
        indexes = [
            models.Index(fields=['type', 'status'], name='idx_transaction_type_status'),
            models.Index(fields=['due_date'], name='idx_transaction_due_date'),
        ]
