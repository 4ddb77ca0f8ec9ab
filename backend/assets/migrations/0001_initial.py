# Generated manually
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Equipment',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=200)),
                ('serial_number', models.CharField(max_length=100, unique=True)),
                ('category', models.CharField(choices=[('maquina', 'Máquina'), ('veiculo', 'Veículo')], max_length=20)),
                ('purchase_date', models.DateField()),
                ('warranty_end_date', models.DateField()),
                ('purchase_invoice_number', models.CharField(max_length=60)),
                ('supplier_cnpj', models.CharField(max_length=20)),
                ('assigned_to', models.CharField(blank=True, max_length=200)),
                ('status', models.CharField(choices=[('operacional', 'Operacional'), ('em_manutencao', 'Em manutenção'), ('desativado', 'Desativado')], default='operacional', max_length=20)),
                ('current_location', models.CharField(max_length=100)),
                ('notes', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'db_table': 'equipment',
                'ordering': ['name'],
                'verbose_name_plural': 'equipment',
            },
        ),
    ]
