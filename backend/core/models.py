from django.contrib.auth.models import AbstractUser, BaseUserManager
from django.db import models


class UserManager(BaseUserManager):
    """Manager for users that log in with their email address"""
    use_in_migrations = True

    def _create_user(self, email, password, **extra_fields):
        if not email:
            raise ValueError('The email address must be set')
        email = self.normalize_email(email).lower()
        extra_fields.setdefault('username', email)
        user = self.model(email=email, **extra_fields)
        user.set_password(password)
        user.save(using=self._db)
        return user

    def create_user(self, email, password=None, **extra_fields):
        extra_fields.setdefault('is_staff', False)
        extra_fields.setdefault('is_superuser', False)
        return self._create_user(email, password, **extra_fields)

    def create_superuser(self, email, password=None, **extra_fields):
        extra_fields.setdefault('is_staff', True)
        extra_fields.setdefault('is_superuser', True)
        extra_fields.setdefault('role', User.ROLE_ADMIN)
        return self._create_user(email, password, **extra_fields)


class User(AbstractUser):
    """Extended user model with role based page access"""
    ROLE_ADMIN = 'admin'
    ROLE_VENDEDOR = 'vendedor'
    ROLE_PRODUCAO = 'producao'
    ROLE_AUX_ADMINISTRATIVO = 'aux_administrativo'
    ROLE_CHOICES = [
        (ROLE_ADMIN, 'Administrador'),
        (ROLE_VENDEDOR, 'Vendedor'),
        (ROLE_PRODUCAO, 'Produção'),
        (ROLE_AUX_ADMINISTRATIVO, 'Auxiliar Administrativo'),
    ]

    email = models.EmailField(unique=True)
    name = models.CharField(max_length=150)
    phone = models.CharField(max_length=20, blank=True, null=True)
    role = models.CharField(max_length=30, choices=ROLE_CHOICES, default=ROLE_VENDEDOR)
    custom_permissions = models.JSONField(default=list, blank=True, help_text="Page names overriding the role defaults when not empty")
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = UserManager()

    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = ['name']

    def __str__(self):
        return self.name or self.email

    class Meta:
        db_table = 'users'
        ordering = ['name']


class ActivityLog(models.Model):
    """Activity log for critical operations"""
    ACTION_CHOICES = [
        ('create', 'Create'),
        ('update', 'Update'),
        ('delete', 'Delete'),
        ('read', 'Read'),
        ('status_change', 'Status Change'),
        ('status_update', 'Status Update'),
        ('location_update', 'Location Update'),
        ('status_location_update', 'Status and Location Update'),
        ('checklist_update', 'Checklist Update'),
        ('quote_approved', 'Quote Approved'),
        ('invoice_issue', 'Invoice Issued'),
        ('payment', 'Payment'),
        ('assign', 'Assigned to Task'),
        ('release', 'Released from Task'),
    ]

    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='activity_logs')
    action = models.CharField(max_length=50, choices=ACTION_CHOICES)
    model_name = models.CharField(max_length=100)
    object_id = models.CharField(max_length=100)
    object_name = models.CharField(max_length=255, blank=True, null=True, help_text="Human-readable name of the object (e.g., client name, service order code)")
    description = models.TextField(blank=True)
    previous_status = models.CharField(max_length=50, blank=True, null=True)
    new_status = models.CharField(max_length=50, blank=True, null=True)
    previous_location = models.CharField(max_length=255, blank=True, null=True)
    new_location = models.CharField(max_length=255, blank=True, null=True)
    changes = models.JSONField(default=dict, blank=True)
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.action} {self.model_name}#{self.object_id}"

    class Meta:
        db_table = 'activity_logs'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['-created_at'], name='activity_lo_created_6e1f4a_idx'),
            models.Index(fields=['action'], name='activity_lo_action_2b9c1d_idx'),
            models.Index(fields=['model_name', 'object_id'], name='activity_lo_model_n_8d3e7f_idx'),
        ]
