"""
Test utilities and factories for creating test data
"""
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken
from backend.parties.models import Client, Supplier
from backend.sales.models import Quote, Order
from backend.inventory.models import Material, StockItem
from backend.production.models import ServiceOrder, ProductionEmployee
from backend.logistics.models import Vehicle, DeliveryRoute
from decimal import Decimal
from datetime import datetime, timedelta
from django.utils import timezone
import random
import string

User = get_user_model()

ADDRESS = {
    'cep': '01310-100',
    'uf': 'SP',
    'city': 'São Paulo',
    'neighborhood': 'Bela Vista',
    'address': 'Avenida Paulista',
    'number': '1000',
    'complement': '',
}


class TestDataFactory:
    """Factory class for creating test data"""

    @staticmethod
    def random_string(length=10):
        """Generate a random string"""
        return ''.join(random.choices(string.ascii_letters + string.digits, k=length))

    @staticmethod
    def aware(year, month, day, hour=0, minute=0):
        """Timezone aware datetime in the project timezone"""
        return timezone.make_aware(datetime(year, month, day, hour, minute))

    @staticmethod
    def create_user(email=None, password='testpass123', role='admin', name=None, custom_permissions=None,
                    is_active=True, is_superuser=False):
        """Create a test user (admin role unless told otherwise)"""
        if not email:
            email = f'user_{TestDataFactory.random_string(6).lower()}@test.com'
        return User.objects.create_user(
            email=email,
            password=password,
            name=name or f'Test {role}',
            role=role,
            custom_permissions=custom_permissions or [],
            is_active=is_active,
            is_superuser=is_superuser,
        )

    @staticmethod
    def create_client(name=None, cpf_cnpj=None, client_type='pessoa_fisica'):
        """Create a test client"""
        if not name:
            name = f'Client_{TestDataFactory.random_string(6)}'
        return Client.objects.create(
            name=name,
            type=client_type,
            email=f'{name.lower()}@test.com',
            phone=f'11{random.randint(900000000, 999999999)}',
            address=dict(ADDRESS),
            cpf_cnpj=cpf_cnpj,
        )

    @staticmethod
    def create_supplier(name=None):
        """Create a test supplier"""
        if not name:
            name = f'Supplier_{TestDataFactory.random_string(6)}'
        return Supplier.objects.create(name=name, contact_person='Contact', phone='1133334444')

    @staticmethod
    def line_item(item_id=None, description='Bancada granito', quantity='2', unit_price='500.00'):
        item = {
            'type': 'material',
            'description': description,
            'quantity': float(quantity),
            'unit_price': float(unit_price),
            'discount': 0.0,
            'total_price': float(Decimal(quantity) * Decimal(unit_price)),
        }
        if item_id:
            item['id'] = item_id
        return item

    @staticmethod
    def create_quote(client=None, status='draft', items=None, salesperson=None):
        """Create a test quote with one line item"""
        client = client or TestDataFactory.create_client()
        items = items or [TestDataFactory.line_item('item-1')]
        subtotal = sum((Decimal(str(item['total_price'])) for item in items), Decimal('0.00'))
        return Quote.objects.create(
            code=f'ORC-{TestDataFactory.random_string(10).upper()}',
            client=client,
            client_name=client.name,
            delivery_address=dict(ADDRESS),
            status=status,
            items=items,
            subtotal=subtotal,
            total=subtotal,
            salesperson=salesperson,
        )

    @staticmethod
    def create_order(quote=None, items=None, client=None):
        """Create a test order, optionally attached to a quote"""
        client = client or (quote.client if quote else TestDataFactory.create_client())
        items = items or (quote.items if quote else [
            TestDataFactory.line_item('item-1'),
            TestDataFactory.line_item('item-2', description='Soleira mármore', quantity='1', unit_price='300.00'),
        ])
        subtotal = sum((Decimal(str(item['total_price'])) for item in items), Decimal('0.00'))
        return Order.objects.create(
            code=f'PED-{TestDataFactory.random_string(10).upper()}',
            quote=quote,
            client=client,
            client_name=client.name,
            delivery_address=dict(ADDRESS),
            items=items,
            subtotal=subtotal,
            total=subtotal,
            approval_date=timezone.now(),
        )

    @staticmethod
    def create_material(name=None, sku=None, min_stock_sqm=Decimal('0.00'), supplier=None):
        """Create a test material"""
        if not name:
            name = f'Granito_{TestDataFactory.random_string(6)}'
        if not sku:
            sku = f'SKU-{TestDataFactory.random_string(8).upper()}'
        return Material.objects.create(
            name=name,
            sku=sku,
            supplier=supplier,
            cost_per_sqm=Decimal('250.00'),
            slab_width=Decimal('3.000'),
            slab_height=Decimal('2.000'),
            min_stock_sqm=min_stock_sqm,
        )

    @staticmethod
    def create_stock_item(material=None, width=Decimal('3.000'), height=Decimal('2.000'), status='disponivel',
                          location='A1'):
        """Create a test slab"""
        material = material or TestDataFactory.create_material()
        internal_id = f'CH-{TestDataFactory.random_string(8).upper()}'
        return StockItem.objects.create(
            material=material,
            internal_id=internal_id,
            qr_code_value=internal_id,
            width=width,
            height=height,
            location=location,
            status=status,
        )

    @staticmethod
    def create_service_order(order=None, items=None, status='ready_for_logistics', delivery_date=None):
        """Create a test service order for part of an order"""
        order = order or TestDataFactory.create_order()
        items = items or order.items[:1]
        total = sum((Decimal(str(item['total_price'])) for item in items), Decimal('0.00'))
        return ServiceOrder.objects.create(
            code=f'OS-{TestDataFactory.random_string(10).upper()}',
            order=order,
            client_name=order.client_name,
            delivery_address=dict(order.delivery_address),
            items=items,
            total=total,
            delivery_date=delivery_date or timezone.now() + timedelta(days=7),
            status=status,
        )

    @staticmethod
    def create_employee(name=None, role='installer', active=True, availability='available'):
        """Create a test production employee"""
        if not name:
            name = f'Employee_{TestDataFactory.random_string(6)}'
        return ProductionEmployee.objects.create(name=name, role=role, active=active, availability=availability)

    @staticmethod
    def create_vehicle(name=None, license_plate=None, status='disponivel'):
        """Create a test vehicle"""
        if not name:
            name = f'Van_{TestDataFactory.random_string(4)}'
        if not license_plate:
            license_plate = f'ABC{random.randint(1000, 9999)}'
            while Vehicle.objects.filter(license_plate=license_plate).exists():
                license_plate = f'ABC{random.randint(1000, 9999)}'
        return Vehicle.objects.create(name=name, license_plate=license_plate, capacity=1500, status=status)

    @staticmethod
    def create_route(service_order=None, vehicle=None, start=None, end=None, team=None, status='scheduled',
                     route_type='delivery'):
        """Create a test route directly, without conflict checks"""
        service_order = service_order or TestDataFactory.create_service_order()
        if vehicle is None and route_type == 'delivery':
            vehicle = TestDataFactory.create_vehicle()
        start = start or TestDataFactory.aware(2030, 1, 10, 8)
        end = end or start + timedelta(hours=2)
        route = DeliveryRoute.objects.create(
            service_order=service_order,
            vehicle=vehicle,
            type=route_type,
            start=start,
            end=end,
            status=status,
        )
        if team:
            route.team.set(team)
        return route


class AuthenticatedAPIClient(APIClient):
    """APIClient with authentication helper"""

    def authenticate_user(self, user):
        """Authenticate the client with a user"""
        refresh = RefreshToken.for_user(user)
        self.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
        return self

    def logout(self):
        """Remove authentication"""
        self.credentials()
