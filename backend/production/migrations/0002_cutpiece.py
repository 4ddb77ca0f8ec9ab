# Generated manually
import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ('inventory', '0001_initial'),
        ('production', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='CutPiece',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('piece_id', models.CharField(max_length=120, unique=True)),
                ('original_item_id', models.CharField(max_length=80)),
                ('description', models.CharField(max_length=255)),
                ('category', models.CharField(blank=True, max_length=100)),
                ('dimensions', models.CharField(blank=True, max_length=50)),
                ('status', models.CharField(choices=[('pending_cut', 'Pending cut'), ('cut', 'Cut'), ('finishing', 'Finishing'), ('assembly', 'Assembly'), ('ready_for_delivery', 'Ready for delivery'), ('delivered', 'Delivered'), ('installed', 'Installed')], default='pending_cut', max_length=30)),
                ('location', models.CharField(blank=True, max_length=100)),
                ('qr_code_value', models.CharField(max_length=255)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('material', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='cut_pieces', to='inventory.material')),
                ('service_order', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='cut_pieces', to='production.serviceorder')),
                ('stock_item', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='cut_pieces', to='inventory.stockitem')),
            ],
            options={
                'db_table': 'cut_pieces',
                'ordering': ['created_at', 'id'],
            },
        ),
    ]
