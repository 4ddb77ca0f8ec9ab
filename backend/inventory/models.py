from django.db import models
from decimal import Decimal
from backend.parties.models import Supplier


class Material(models.Model):
    """Stone materials sold by the square meter"""
    name = models.CharField(max_length=200)
    photo_url = models.URLField(max_length=500, blank=True)
    supplier = models.ForeignKey(Supplier, on_delete=models.SET_NULL, null=True, blank=True, related_name='materials')
    cost_per_sqm = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    slab_width = models.DecimalField(max_digits=6, decimal_places=3, default=Decimal('0.000'), help_text="Standard slab width in meters")
    slab_height = models.DecimalField(max_digits=6, decimal_places=3, default=Decimal('0.000'), help_text="Standard slab height in meters")
    sku = models.CharField(max_length=50, unique=True)
    min_stock_sqm = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.name} ({self.sku})"

    class Meta:
        db_table = 'materials'
        ordering = ['name']


class StockItem(models.Model):
    """A physical slab (chapa) or offcut tracked by QR code"""
    STATUS_CHOICES = [
        ('disponivel', 'Disponível'),
        ('reservada', 'Reservada'),
        ('em_uso', 'Em uso'),
        ('consumida', 'Consumida'),
        ('em_corte', 'Em corte'),
        ('em_acabamento', 'Em acabamento'),
        ('pronto_para_expedicao', 'Pronto para expedição'),
        ('partial', 'Parcial'),
    ]
    AVAILABLE_STATUSES = ('disponivel', 'partial')

    material = models.ForeignKey(Material, on_delete=models.PROTECT, related_name='stock_items')
    internal_id = models.CharField(max_length=50, unique=True)
    qr_code_value = models.CharField(max_length=255, blank=True)
    width = models.DecimalField(max_digits=6, decimal_places=3, help_text="Meters")
    height = models.DecimalField(max_digits=6, decimal_places=3, help_text="Meters")
    thickness = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal('2.00'), help_text="Centimeters")
    location = models.CharField(max_length=100, blank=True)
    status = models.CharField(max_length=30, choices=STATUS_CHOICES, default='disponivel')
    parent_slab = models.ForeignKey('self', on_delete=models.SET_NULL, null=True, blank=True, related_name='offcuts')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.internal_id

    @property
    def area(self):
        return (self.width or Decimal('0')) * (self.height or Decimal('0'))

    def save(self, *args, **kwargs):
        if not self.qr_code_value:
            self.qr_code_value = self.internal_id
        super().save(*args, **kwargs)

    class Meta:
        db_table = 'stock_items'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['material', 'status'], name='idx_stock_item_material'),
            models.Index(fields=['status'], name='idx_stock_item_status'),
        ]
