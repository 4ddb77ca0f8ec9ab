# Generated manually
import django.db.models.deletion
from decimal import Decimal
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('parties', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='Material',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=200)),
                ('photo_url', models.URLField(blank=True, max_length=500)),
                ('cost_per_sqm', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=10)),
                ('slab_width', models.DecimalField(decimal_places=3, default=Decimal('0.000'), help_text='Standard slab width in meters', max_digits=6)),
                ('slab_height', models.DecimalField(decimal_places=3, default=Decimal('0.000'), help_text='Standard slab height in meters', max_digits=6)),
                ('sku', models.CharField(max_length=50, unique=True)),
                ('min_stock_sqm', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=10)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('supplier', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='materials', to='parties.supplier')),
            ],
            options={
                'db_table': 'materials',
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='StockItem',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('internal_id', models.CharField(max_length=50, unique=True)),
                ('qr_code_value', models.CharField(blank=True, max_length=255)),
                ('width', models.DecimalField(decimal_places=3, help_text='Meters', max_digits=6)),
                ('height', models.DecimalField(decimal_places=3, help_text='Meters', max_digits=6)),
                ('thickness', models.DecimalField(decimal_places=2, default=Decimal('2.00'), help_text='Centimeters', max_digits=5)),
                ('location', models.CharField(blank=True, max_length=100)),
                ('status', models.CharField(choices=[('disponivel', 'Disponível'), ('reservada', 'Reservada'), ('em_uso', 'Em uso'), ('consumida', 'Consumida'), ('em_corte', 'Em corte'), ('em_acabamento', 'Em acabamento'), ('pronto_para_expedicao', 'Pronto para expedição'), ('partial', 'Parcial')], default='disponivel', max_length=30)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('material', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='stock_items', to='inventory.material')),
                ('parent_slab', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='offcuts', to='inventory.stockitem')),
            ],
            options={
                'db_table': 'stock_items',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['material', 'status'], name='idx_stock_item_material'),
                    models.Index(fields=['status'], name='idx_stock_item_status'),
                ],
            },
        ),
    ]
