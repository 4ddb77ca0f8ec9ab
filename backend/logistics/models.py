from django.db import models
from backend.core.models import User
from backend.production.models import ProductionEmployee, ServiceOrder


class Vehicle(models.Model):
    """Company vehicles used for deliveries"""
    TYPE_CHOICES = [
        ('van', 'Van'),
        ('caminhao', 'Caminhão'),
    ]
    STATUS_CHOICES = [
        ('disponivel', 'Disponível'),
        ('em_uso', 'Em uso'),
        ('em_manutencao', 'Em manutenção'),
    ]

    name = models.CharField(max_length=100)
    license_plate = models.CharField(max_length=10, unique=True)
    capacity = models.PositiveIntegerField(default=0, help_text="Load capacity in kg")
    type = models.CharField(max_length=20, choices=TYPE_CHOICES, default='van')
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='disponivel')
    last_maintenance = models.DateField(null=True, blank=True)
    next_maintenance = models.DateField(null=True, blank=True)
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.name} ({self.license_plate})"

    def save(self, *args, **kwargs):
        self.license_plate = (self.license_plate or '').strip().upper()
        super().save(*args, **kwargs)

    class Meta:
        db_table = 'vehicles'
        ordering = ['name']


class DeliveryRoute(models.Model):
    """A delivery or installation trip booking a vehicle and a team over [start, end)"""
    TYPE_CHOICES = [
        ('delivery', 'Delivery'),
        ('installation', 'Installation'),
    ]
    STATUS_CHOICES = [
        ('scheduled', 'Scheduled'),
        ('in_progress', 'In progress'),
        ('completed', 'Completed'),
        ('cancelled', 'Cancelled'),
    ]

    vehicle = models.ForeignKey(Vehicle, on_delete=models.SET_NULL, null=True, blank=True, related_name='routes')
    service_order = models.ForeignKey(ServiceOrder, on_delete=models.CASCADE, related_name='delivery_routes')
    type = models.CharField(max_length=20, choices=TYPE_CHOICES, default='delivery')
    start = models.DateTimeField()
    end = models.DateTimeField()
    team = models.ManyToManyField(ProductionEmployee, blank=True, related_name='delivery_routes')
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='scheduled')
    actual_start = models.DateTimeField(null=True, blank=True)
    actual_end = models.DateTimeField(null=True, blank=True)
    checklist_completed = models.BooleanField(default=False)
    notes = models.TextField(blank=True)
    photos = models.JSONField(default=list, blank=True)
    customer_signature = models.JSONField(default=dict, blank=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='delivery_routes')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.get_type_display()} {self.service_order_id} {self.start:%Y-%m-%d %H:%M}"

    class Meta:
        db_table = 'delivery_routes'
        ordering = ['start']
        indexes = [
            models.Index(fields=['vehicle', 'start', 'end'], name='idx_route_vehicle_period'),
            models.Index(fields=['status'], name='idx_route_status'),
            models.Index(fields=['service_order'], name='idx_route_service_order'),
        ]


class ChecklistTemplate(models.Model):
    """Reusable departure/assembly checklists"""
    TYPE_CHOICES = [
        ('entrega', 'Entrega'),
        ('montagem', 'Montagem'),
    ]

    name = models.CharField(max_length=200)
    type = models.CharField(max_length=20, choices=TYPE_CHOICES)
    items = models.JSONField(default=list)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'checklist_templates'
        ordering = ['name']
