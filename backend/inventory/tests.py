"""
Test suite for the inventory module
Tests: materials, slab listing, QR read logging, status/location updates, low stock
"""
from decimal import Decimal
from django.test import TestCase
from rest_framework import status
from backend.core.models import ActivityLog
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.inventory.models import Material


class MaterialAPITests(TestCase):

    def setUp(self):
        self.user = TestDataFactory.create_user(role='admin')
        self.client = AuthenticatedAPIClient().authenticate_user(self.user)

    def test_create_material_uppercases_sku(self):
        data = {'name': 'Branco Itaúnas', 'sku': 'bi-20', 'cost_per_sqm': '320.00', 'min_stock_sqm': '10.00'}
        response = self.client.post('/api/v1/materials/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['sku'], 'BI-20')

    def test_cannot_delete_material_with_slabs(self):
        slab = TestDataFactory.create_stock_item()
        response = self.client.delete(f'/api/v1/materials/{slab.material_id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertTrue(Material.objects.filter(pk=slab.material_id).exists())

    def test_low_stock(self):
        short = TestDataFactory.create_material(name='Short', min_stock_sqm=Decimal('10.00'))
        TestDataFactory.create_stock_item(material=short)  # 6 m²
        TestDataFactory.create_stock_item(material=short, status='consumida')
        plenty = TestDataFactory.create_material(name='Plenty', min_stock_sqm=Decimal('5.00'))
        TestDataFactory.create_stock_item(material=plenty)
        TestDataFactory.create_material(name='No minimum')

        response = self.client.get('/api/v1/materials/low-stock/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([row['name'] for row in response.data], ['Short'])
        self.assertEqual(response.data[0]['available_area'], 6.0)
        self.assertEqual(response.data[0]['missing_area'], 4.0)


class StockItemAPITests(TestCase):

    def setUp(self):
        self.user = TestDataFactory.create_user(role='producao')
        self.client = AuthenticatedAPIClient().authenticate_user(self.user)
        self.slab = TestDataFactory.create_stock_item(location='A1')

    def test_create_slab_defaults_qr_value(self):
        data = {'material': self.slab.material_id, 'internal_id': 'CH-9000', 'width': '2.500', 'height': '1.500'}
        response = self.client.post('/api/v1/stock-items/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['qr_code_value'], 'CH-9000')
        self.assertEqual(response.data['area'], 3.75)

    def test_zero_width_rejected(self):
        data = {'material': self.slab.material_id, 'internal_id': 'CH-9001', 'width': '0', 'height': '1.500'}
        response = self.client.post('/api/v1/stock-items/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_detail_logs_read(self):
        response = self.client.get(f'/api/v1/stock-items/{self.slab.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(ActivityLog.objects.filter(action='read', object_id=str(self.slab.id)).exists())

    def test_filter_available(self):
        TestDataFactory.create_stock_item(material=self.slab.material, status='consumida')
        response = self.client.get('/api/v1/stock-items/?available=true')
        self.assertEqual(response.data['count'], 1)
        response = self.client.get('/api/v1/stock-items/?status=consumida&status=disponivel')
        self.assertEqual(response.data['count'], 2)

    def test_status_update(self):
        response = self.client.patch(
            f'/api/v1/stock-items/{self.slab.id}/status/', {'status': 'em_corte', 'note': 'OS cutting'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        log = ActivityLog.objects.get(action='status_update')
        self.assertEqual(log.previous_status, 'disponivel')
        self.assertEqual(log.new_status, 'em_corte')
        self.assertEqual(log.description, 'OS cutting')
        self.assertIsNone(log.new_location)

    def test_location_update(self):
        response = self.client.patch(f'/api/v1/stock-items/{self.slab.id}/status/', {'location': 'B7'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        log = ActivityLog.objects.get(action='location_update')
        self.assertEqual(log.previous_location, 'A1')
        self.assertEqual(log.new_location, 'B7')

    def test_status_and_location_update(self):
        self.client.patch(
            f'/api/v1/stock-items/{self.slab.id}/status/', {'status': 'reservada', 'location': 'C2'}, format='json'
        )
        self.assertTrue(ActivityLog.objects.filter(action='status_location_update').exists())

    def test_no_change_rejected(self):
        response = self.client.patch(
            f'/api/v1/stock-items/{self.slab.id}/status/', {'status': 'disponivel', 'location': 'A1'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_empty_body_rejected(self):
        response = self.client.patch(f'/api/v1/stock-items/{self.slab.id}/status/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
