import logging

from django.db import models
from django.utils import timezone
from decimal import Decimal
from backend.core.models import User
from backend.inventory.models import Material, StockItem
from backend.sales.models import Order

logger = logging.getLogger(__name__)


class ProductionEmployee(models.Model):
    """Installers, drivers and helpers that can be put on delivery routes"""
    ROLE_CHOICES = [
        ('installer', 'Installer'),
        ('driver', 'Driver'),
        ('helper', 'Helper'),
        ('technician', 'Technician'),
        ('other', 'Other'),
    ]
    AVAILABILITY_CHOICES = [
        ('available', 'Available'),
        ('on_task', 'On task'),
        ('on_leave', 'On leave'),
    ]
    TASK_TYPE_CHOICES = [
        ('delivery_route', 'Delivery route'),
        ('service_order', 'Service order'),
    ]

    name = models.CharField(max_length=200)
    email = models.EmailField(blank=True)
    phone = models.CharField(max_length=20, blank=True)
    role = models.CharField(max_length=20, choices=ROLE_CHOICES)
    availability = models.CharField(max_length=20, choices=AVAILABILITY_CHOICES, default='available')
    current_task_id = models.CharField(max_length=50, blank=True, null=True)
    current_task_type = models.CharField(max_length=20, choices=TASK_TYPE_CHOICES, blank=True, null=True)
    skills = models.JSONField(default=list, blank=True)
    hire_date = models.DateField(null=True, blank=True)
    notes = models.TextField(blank=True)
    active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.name} ({self.role})"

    def is_available_in_period(self, start, end, exclude_route=None):
        if not self.active or self.availability == 'on_leave':
            return False
        from backend.logistics.scheduling import is_employee_available
        return is_employee_available(self, start, end, exclude_route=exclude_route)

    def assign_to_task(self, task_id, task_type):
        self.availability = 'on_task'
        self.current_task_id = str(task_id)
        self.current_task_type = task_type
        self.save(update_fields=['availability', 'current_task_id', 'current_task_type', 'updated_at'])

    def release_from_task(self):
        if self.availability == 'on_task':
            self.availability = 'available'
        self.current_task_id = None
        self.current_task_type = None
        self.save(update_fields=['availability', 'current_task_id', 'current_task_type', 'updated_at'])

    class Meta:
        db_table = 'production_employees'
        ordering = ['name']


class ServiceOrder(models.Model):
    """
    Service order (OS) for the production and delivery of part of an order.

    `status` is the unified workflow status shown to users. `logistics_status`
    is derived from the delivery routes of the order.
    """
    PRODUCTION_STATUSES = ['pending_production', 'cutting', 'finishing', 'quality_check', 'ready_for_logistics']
    LOGISTICS_PHASE_STATUSES = ['scheduled', 'in_transit', 'delivered', 'awaiting_installation', 'completed']
    EXCEPTION_STATUSES = [
        'rework_needed', 'delivery_issue', 'installation_pending_review', 'installation_issue',
        'quality_issue', 'material_shortage', 'equipment_failure', 'customer_not_available',
        'weather_delay', 'permit_issue', 'measurement_error', 'design_change',
    ]
    STATUS_CHOICES = [
        ('pending_production', 'Pending production'),
        ('cutting', 'Cutting'),
        ('finishing', 'Finishing'),
        ('quality_check', 'Quality check'),
        ('ready_for_logistics', 'Ready for logistics'),
        ('scheduled', 'Scheduled'),
        ('in_transit', 'In transit'),
        ('delivered', 'Delivered'),
        ('awaiting_installation', 'Awaiting installation'),
        ('completed', 'Completed'),
        ('rework_needed', 'Rework needed'),
        ('delivery_issue', 'Delivery issue'),
        ('installation_pending_review', 'Installation pending review'),
        ('installation_issue', 'Installation issue'),
        ('quality_issue', 'Quality issue'),
        ('material_shortage', 'Material shortage'),
        ('equipment_failure', 'Equipment failure'),
        ('customer_not_available', 'Customer not available'),
        ('weather_delay', 'Weather delay'),
        ('permit_issue', 'Permit issue'),
        ('measurement_error', 'Measurement error'),
        ('design_change', 'Design change'),
        ('cancelled', 'Cancelled'),
    ]
    PRODUCTION_STATUS_CHOICES = [
        ('pending_production', 'Pending production'),
        ('cutting', 'Cutting'),
        ('finishing', 'Finishing'),
        ('quality_check', 'Quality check'),
        ('ready_for_logistics', 'Ready for logistics'),
    ]
    LOGISTICS_STATUS_CHOICES = [
        ('awaiting_scheduling', 'Awaiting scheduling'),
        ('scheduled', 'Scheduled'),
        ('in_transit', 'In transit'),
        ('delivered', 'Delivered'),
        ('in_installation', 'In installation'),
        ('completed', 'Completed'),
        ('picked_up', 'Picked up'),
        ('canceled', 'Canceled'),
    ]
    PRIORITY_CHOICES = [
        ('normal', 'Normal'),
        ('alta', 'Alta'),
        ('urgente', 'Urgente'),
    ]
    FINALIZATION_TYPE_CHOICES = [
        ('pickup', 'Pickup'),
        ('delivery_only', 'Delivery only'),
        ('delivery_installation', 'Delivery and installation'),
    ]

    code = models.CharField(max_length=40, unique=True)
    order = models.ForeignKey(Order, on_delete=models.PROTECT, related_name='service_orders')
    client_name = models.CharField(max_length=200)
    delivery_address = models.JSONField(default=dict)
    items = models.JSONField(default=list)
    total = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    delivery_date = models.DateTimeField()
    assigned_to = models.ManyToManyField(ProductionEmployee, blank=True, related_name='service_orders')
    status = models.CharField(max_length=40, choices=STATUS_CHOICES, default='pending_production')
    production_status = models.CharField(max_length=40, choices=PRODUCTION_STATUS_CHOICES, default='pending_production')
    logistics_status = models.CharField(max_length=30, choices=LOGISTICS_STATUS_CHOICES, default='awaiting_scheduling')
    is_finalized = models.BooleanField(default=False)
    allocated_slab = models.ForeignKey(StockItem, on_delete=models.SET_NULL, null=True, blank=True, related_name='service_orders')
    priority = models.CharField(max_length=10, choices=PRIORITY_CHOICES, default='normal')
    finalization_type = models.CharField(max_length=30, choices=FINALIZATION_TYPE_CHOICES, default='delivery_installation')
    delivery_confirmed = models.BooleanField(default=False)
    installation_confirmed = models.BooleanField(default=False)
    departure_checklist = models.JSONField(default=list, blank=True)
    observations = models.TextField(blank=True)
    rework_reason = models.TextField(blank=True)
    rework_resolution = models.JSONField(default=dict, blank=True)
    delivery_issue = models.JSONField(default=dict, blank=True)
    installation_review = models.JSONField(default=dict, blank=True)
    issue_resolution = models.JSONField(default=dict, blank=True)
    confirmed_delivery = models.JSONField(default=dict, blank=True)
    history = models.JSONField(default=list, blank=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='service_orders')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.code

    @property
    def is_in_exception(self):
        return self.status in self.EXCEPTION_STATUSES

    def set_status(self, new_status, user=None, note=''):
        """Change the unified status and record the transition in history. Does not save."""
        previous = self.status
        if previous == new_status:
            return False
        self.status = new_status
        if new_status in self.PRODUCTION_STATUSES:
            self.production_status = new_status
        self.history = list(self.history or []) + [{
            'previous_status': previous,
            'status': new_status,
            'changed_at': timezone.now().isoformat(),
            'changed_by': user.name if user is not None and getattr(user, 'is_authenticated', False) else None,
            'note': note,
        }]
        return True

    def item_ids(self):
        return [item.get('id') for item in (self.items or []) if item.get('id')]

    class Meta:
        db_table = 'service_orders'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status'], name='idx_service_order_status'),
            models.Index(fields=['logistics_status'], name='idx_service_order_logistics'),
            models.Index(fields=['delivery_date'], name='idx_service_order_delivery'),
        ]


class CutPiece(models.Model):
    """A piece cut from the allocated slab for one material item of a service order"""
    STATUS_CHOICES = [
        ('pending_cut', 'Pending cut'),
        ('cut', 'Cut'),
        ('finishing', 'Finishing'),
        ('assembly', 'Assembly'),
        ('ready_for_delivery', 'Ready for delivery'),
        ('delivered', 'Delivered'),
        ('installed', 'Installed'),
    ]
    QR_PREFIX = 'marmoraria://asset/cut_piece/'

    piece_id = models.CharField(max_length=120, unique=True)
    service_order = models.ForeignKey(ServiceOrder, on_delete=models.CASCADE, related_name='cut_pieces')
    original_item_id = models.CharField(max_length=80)
    stock_item = models.ForeignKey(StockItem, on_delete=models.SET_NULL, null=True, blank=True, related_name='cut_pieces')
    material = models.ForeignKey(Material, on_delete=models.SET_NULL, null=True, blank=True, related_name='cut_pieces')
    description = models.CharField(max_length=255)
    category = models.CharField(max_length=100, blank=True)
    dimensions = models.CharField(max_length=50, blank=True)
    status = models.CharField(max_length=30, choices=STATUS_CHOICES, default='pending_cut')
    location = models.CharField(max_length=100, blank=True)
    qr_code_value = models.CharField(max_length=255)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.piece_id

    @classmethod
    def create_for_service_order(cls, service_order):
        """
        One piece per material item of a service order with an allocated slab.
        Does nothing when the order already has pieces.
        """
        existing = list(service_order.cut_pieces.all())
        if existing:
            return existing
        if service_order.allocated_slab_id is None:
            return []

        material_items = [item for item in (service_order.items or []) if item.get('type') == 'material']
        pieces = []
        for index, item in enumerate(material_items, start=1):
            item_id = item.get('id') or f'ITEM-{index}'
            piece_id = f"{service_order.code}-{item_id}-P{index}"
            width, height = item.get('width'), item.get('height')
            material_id = item.get('material_id')
            pieces.append(cls.objects.create(
                piece_id=piece_id,
                service_order=service_order,
                original_item_id=item_id,
                stock_item_id=service_order.allocated_slab_id,
                material=Material.objects.filter(pk=material_id).first() if material_id else None,
                description=item.get('description') or 'Piece without description',
                category=item.get('category') or '',
                dimensions=f"{float(width):.2f} x {float(height):.2f} m" if width and height else '',
                qr_code_value=f"{cls.QR_PREFIX}{piece_id}",
            ))
        if pieces:
            logger.info(f"{len(pieces)} cut pieces created for service order {service_order.code}")
        return pieces

    class Meta:
        db_table = 'cut_pieces'
        ordering = ['created_at', 'id']
