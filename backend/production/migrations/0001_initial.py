# Generated manually
import django.db.models.deletion
from decimal import Decimal
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('sales', '0001_initial'),
        ('inventory', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='ProductionEmployee',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=200)),
                ('email', models.EmailField(blank=True, max_length=254)),
                ('phone', models.CharField(blank=True, max_length=20)),
                ('role', models.CharField(choices=[('installer', 'Installer'), ('driver', 'Driver'), ('helper', 'Helper'), ('technician', 'Technician'), ('other', 'Other')], max_length=20)),
                ('availability', models.CharField(choices=[('available', 'Available'), ('on_task', 'On task'), ('on_leave', 'On leave')], default='available', max_length=20)),
                ('current_task_id', models.CharField(blank=True, max_length=50, null=True)),
                ('current_task_type', models.CharField(blank=True, choices=[('delivery_route', 'Delivery route'), ('service_order', 'Service order')], max_length=20, null=True)),
                ('skills', models.JSONField(blank=True, default=list)),
                ('hire_date', models.DateField(blank=True, null=True)),
                ('notes', models.TextField(blank=True)),
                ('active', models.BooleanField(default=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'db_table': 'production_employees',
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='ServiceOrder',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('code', models.CharField(max_length=40, unique=True)),
                ('client_name', models.CharField(max_length=200)),
                ('delivery_address', models.JSONField(default=dict)),
                ('items', models.JSONField(default=list)),
                ('total', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('delivery_date', models.DateTimeField()),
                ('status', models.CharField(choices=[('pending_production', 'Pending production'), ('cutting', 'Cutting'), ('finishing', 'Finishing'), ('quality_check', 'Quality check'), ('ready_for_logistics', 'Ready for logistics'), ('scheduled', 'Scheduled'), ('in_transit', 'In transit'), ('delivered', 'Delivered'), ('awaiting_installation', 'Awaiting installation'), ('completed', 'Completed'), ('rework_needed', 'Rework needed'), ('delivery_issue', 'Delivery issue'), ('installation_pending_review', 'Installation pending review'), ('installation_issue', 'Installation issue'), ('quality_issue', 'Quality issue'), ('material_shortage', 'Material shortage'), ('equipment_failure', 'Equipment failure'), ('customer_not_available', 'Customer not available'), ('weather_delay', 'Weather delay'), ('permit_issue', 'Permit issue'), ('measurement_error', 'Measurement error'), ('design_change', 'Design change'), ('cancelled', 'Cancelled')], default='pending_production', max_length=40)),
                ('production_status', models.CharField(choices=[('pending_production', 'Pending production'), ('cutting', 'Cutting'), ('finishing', 'Finishing'), ('quality_check', 'Quality check'), ('ready_for_logistics', 'Ready for logistics')], default='pending_production', max_length=40)),
                ('logistics_status', models.CharField(choices=[('awaiting_scheduling', 'Awaiting scheduling'), ('scheduled', 'Scheduled'), ('in_transit', 'In transit'), ('delivered', 'Delivered'), ('in_installation', 'In installation'), ('completed', 'Completed'), ('picked_up', 'Picked up'), ('canceled', 'Canceled')], default='awaiting_scheduling', max_length=30)),
                ('is_finalized', models.BooleanField(default=False)),
                ('priority', models.CharField(choices=[('normal', 'Normal'), ('alta', 'Alta'), ('urgente', 'Urgente')], default='normal', max_length=10)),
                ('finalization_type', models.CharField(choices=[('pickup', 'Pickup'), ('delivery_only', 'Delivery only'), ('delivery_installation', 'Delivery and installation')], default='delivery_installation', max_length=30)),
                ('delivery_confirmed', models.BooleanField(default=False)),
                ('installation_confirmed', models.BooleanField(default=False)),
                ('departure_checklist', models.JSONField(blank=True, default=list)),
                ('observations', models.TextField(blank=True)),
                ('rework_reason', models.TextField(blank=True)),
                ('rework_resolution', models.JSONField(blank=True, default=dict)),
                ('delivery_issue', models.JSONField(blank=True, default=dict)),
                ('installation_review', models.JSONField(blank=True, default=dict)),
                ('issue_resolution', models.JSONField(blank=True, default=dict)),
                ('confirmed_delivery', models.JSONField(blank=True, default=dict)),
                ('history', models.JSONField(blank=True, default=list)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('allocated_slab', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='service_orders', to='inventory.stockitem')),
                ('assigned_to', models.ManyToManyField(blank=True, related_name='service_orders', to='production.productionemployee')),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='service_orders', to=settings.AUTH_USER_MODEL)),
                ('order', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='service_orders', to='sales.order')),
            ],
            options={
                'db_table': 'service_orders',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['status'], name='idx_service_order_status'),
                    models.Index(fields=['logistics_status'], name='idx_service_order_logistics'),
                    models.Index(fields=['delivery_date'], name='idx_service_order_delivery'),
                ],
            },
        ),
    ]
