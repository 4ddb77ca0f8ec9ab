from django.db import models, transaction
from django.utils import timezone
from decimal import Decimal
from backend.core.models import User
from backend.parties.models import Client

PAYMENT_METHOD_CHOICES = [
    ('pix', 'PIX'),
    ('cartao_credito', 'Cartão de Crédito'),
    ('boleto', 'Boleto'),
    ('dinheiro', 'Dinheiro'),
]


class Quote(models.Model):
    """Sales quotes (orçamentos)"""
    STATUS_CHOICES = [
        ('draft', 'Draft'),
        ('sent', 'Sent'),
        ('approved', 'Approved'),
        ('rejected', 'Rejected'),
        ('archived', 'Archived'),
    ]

    code = models.CharField(max_length=40, unique=True)
    client = models.ForeignKey(Client, on_delete=models.SET_NULL, null=True, blank=True, related_name='quotes')
    client_name = models.CharField(max_length=200)
    client_email = models.EmailField(blank=True)
    client_phone = models.CharField(max_length=20, blank=True)
    delivery_address = models.JSONField(default=dict, blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='draft')
    items = models.JSONField(default=list, blank=True)
    subtotal = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    discount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    freight = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    payment_method = models.CharField(max_length=20, choices=PAYMENT_METHOD_CHOICES, blank=True)
    installments = models.PositiveIntegerField(default=1)
    total = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    notes = models.TextField(blank=True)
    salesperson = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='quotes')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.code

    def get_or_create_order(self):
        """
        Convert an approved quote into an order.
        Returns (order, created); a quote never yields more than one order.
        """
        with transaction.atomic():
            existing = Order.objects.select_for_update().filter(quote=self).first()
            if existing:
                return existing, False
            from backend.core.utils import generate_code
            order = Order.objects.create(
                code=generate_code('PED', Order),
                quote=self,
                client=self.client,
                client_name=self.client_name,
                delivery_address=self.delivery_address,
                items=self.items,
                subtotal=self.subtotal,
                discount=self.discount,
                freight=self.freight,
                payment_method=self.payment_method,
                installments=self.installments,
                total=self.total,
                salesperson=self.salesperson,
                approval_date=timezone.now(),
            )
            return order, True

    class Meta:
        db_table = 'quotes'
        ordering = ['-created_at']


class Order(models.Model):
    """Orders (pedidos), created from approved quotes"""
    code = models.CharField(max_length=40, unique=True)
    quote = models.OneToOneField(Quote, on_delete=models.SET_NULL, null=True, blank=True, related_name='order')
    client = models.ForeignKey(Client, on_delete=models.SET_NULL, null=True, blank=True, related_name='orders')
    client_name = models.CharField(max_length=200)
    delivery_address = models.JSONField(default=dict, blank=True)
    items = models.JSONField(default=list, blank=True)
    subtotal = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    discount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    freight = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    payment_method = models.CharField(max_length=20, choices=PAYMENT_METHOD_CHOICES, blank=True)
    installments = models.PositiveIntegerField(default=1)
    total = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    approval_date = models.DateTimeField(default=timezone.now)
    salesperson = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='orders')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.code

    class Meta:
        db_table = 'orders'
        ordering = ['-created_at']


class Contract(models.Model):
    """Service contract generated from an order and signed by the client"""
    STATUS_CHOICES = [
        ('draft', 'Draft'),
        ('sent', 'Sent'),
        ('signed', 'Signed'),
        ('archived', 'Archived'),
    ]

    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name='contracts')
    quote = models.ForeignKey(Quote, on_delete=models.SET_NULL, null=True, blank=True, related_name='contracts')
    client = models.ForeignKey(Client, on_delete=models.SET_NULL, null=True, blank=True, related_name='contracts')
    document_number = models.CharField(max_length=30, unique=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='draft')
    content_template = models.TextField(blank=True)
    variables = models.JSONField(default=dict, blank=True)
    signatory_name = models.CharField(max_length=200, blank=True)
    signatory_document = models.CharField(max_length=30, blank=True)
    digital_signature_url = models.CharField(max_length=500, blank=True)
    signed_at = models.DateTimeField(null=True, blank=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='contracts')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.document_number

    @classmethod
    def next_document_number(cls, year=None):
        """CTR-YYYY-NNN, numbered per year"""
        year = year or timezone.localdate().year
        prefix = f"CTR-{year}-"
        count = cls.objects.filter(document_number__startswith=prefix).count()
        return f"{prefix}{count + 1:03d}"

    class Meta:
        db_table = 'contracts'
        ordering = ['-created_at']


class OrderAddendum(models.Model):
    """
    Change request on an order: added, removed and changed items plus a price
    adjustment. Approving it updates the service orders that have not started.
    """
    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('approved', 'Approved'),
        ('rejected', 'Rejected'),
    ]

    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name='addendums')
    addendum_number = models.PositiveIntegerField()
    reason = models.TextField()
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='pending')
    added_items = models.JSONField(default=list, blank=True)
    removed_item_ids = models.JSONField(default=list, blank=True)
    changed_items = models.JSONField(default=list, blank=True)
    price_adjustment = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    approved_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='approved_addendums')
    approved_at = models.DateTimeField(null=True, blank=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='addendums')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.order.code} #{self.addendum_number}"

    def touched_item_ids(self):
        return set(self.removed_item_ids or []) | {
            change.get('original_item_id') for change in (self.changed_items or [])
        }

    def apply_to_items(self, items):
        """Items of a service order after this addendum: removed dropped, changed replaced, added appended"""
        removed = set(self.removed_item_ids or [])
        changes = {change['original_item_id']: change['updated_item'] for change in (self.changed_items or [])}
        result = []
        for item in items:
            if item.get('id') in removed:
                continue
            result.append(changes.get(item.get('id'), item))
        present = {item.get('id') for item in result}
        result += [item for item in (self.added_items or []) if item.get('id') not in present]
        return result

    class Meta:
        db_table = 'order_addendums'
        ordering = ['order', 'addendum_number']
        unique_together = ['order', 'addendum_number']
        indexes = [
            models.Index(fields=['status', 'created_at'], name='idx_addendum_status'),
        ]
