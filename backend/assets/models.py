from django.db import models


class Equipment(models.Model):
    """Machines and vehicles owned by the shop, tracked by QR code"""
    CATEGORY_CHOICES = [
        ('maquina', 'Máquina'),
        ('veiculo', 'Veículo'),
    ]
    STATUS_CHOICES = [
        ('operacional', 'Operacional'),
        ('em_manutencao', 'Em manutenção'),
        ('desativado', 'Desativado'),
    ]

    name = models.CharField(max_length=200)
    serial_number = models.CharField(max_length=100, unique=True)
    category = models.CharField(max_length=20, choices=CATEGORY_CHOICES)
    purchase_date = models.DateField()
    warranty_end_date = models.DateField()
    purchase_invoice_number = models.CharField(max_length=60)
    supplier_cnpj = models.CharField(max_length=20)
    assigned_to = models.CharField(max_length=200, blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='operacional')
    current_location = models.CharField(max_length=100)
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.name} ({self.serial_number})"

    @property
    def qr_code_value(self):
        return f"marmoraria://asset/equipment/{self.pk}"

    class Meta:
        db_table = 'equipment'
        ordering = ['name']
        verbose_name_plural = 'equipment'
