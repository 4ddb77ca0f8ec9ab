"""
Test suite for the assets module
Tests: equipment registry, QR code scanning, asset status and location updates
"""
from datetime import date
from django.test import TestCase
from rest_framework import status
from backend.core.models import ActivityLog
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.assets.models import Equipment
from backend.assets.views import parse_asset_uri, resolve_asset_type
from backend.production.models import CutPiece


def create_equipment(**overrides):
    data = {
        'name': 'Serra ponte',
        'serial_number': f'SN-{TestDataFactory.random_string(8)}',
        'category': 'maquina',
        'purchase_date': date(2024, 3, 1),
        'warranty_end_date': date(2026, 3, 1),
        'purchase_invoice_number': 'NF-1234',
        'supplier_cnpj': '11222333000181',
        'current_location': 'Galpão 1',
    }
    data.update(overrides)
    return Equipment.objects.create(**data)


class AssetUriTests(TestCase):

    def test_parse(self):
        self.assertEqual(parse_asset_uri('marmoraria://asset/equipment/12'), ('equipment', '12'))
        self.assertEqual(parse_asset_uri('marmoraria://asset/cut_piece/OS-1-item-1-P1'), ('cut_piece', 'OS-1-item-1-P1'))
        self.assertIsNone(parse_asset_uri('marmoraria://asset/equipment'))
        self.assertIsNone(parse_asset_uri('https://example.com/equipment/12'))
        self.assertIsNone(parse_asset_uri(None))

    def test_aliases(self):
        self.assertEqual(resolve_asset_type('Stock-Item'), 'stock_item')
        self.assertEqual(resolve_asset_type('equipamento'), 'equipment')
        self.assertEqual(resolve_asset_type('cutpiece'), 'cut_piece')
        self.assertIsNone(resolve_asset_type('product'))


class EquipmentAPITests(TestCase):

    def setUp(self):
        self.user = TestDataFactory.create_user(role='producao')
        self.client = AuthenticatedAPIClient().authenticate_user(self.user)

    def payload(self, **overrides):
        data = {
            'name': 'Politriz',
            'serial_number': ' PT-001 ',
            'category': 'maquina',
            'purchase_date': '2024-01-10',
            'warranty_end_date': '2025-01-10',
            'purchase_invoice_number': 'NF-998',
            'supplier_cnpj': '11.222.333/0001-81',
            'current_location': 'Oficina',
        }
        data.update(overrides)
        return data

    def test_create(self):
        response = self.client.post('/api/v1/equipment/', self.payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['serial_number'], 'PT-001')
        self.assertEqual(response.data['supplier_cnpj'], '11222333000181')
        self.assertEqual(response.data['status'], 'operacional')
        self.assertEqual(response.data['qr_code_value'], f"marmoraria://asset/equipment/{response.data['id']}")

    def test_duplicate_serial_number(self):
        create_equipment(serial_number='PT-001')
        response = self.client.post('/api/v1/equipment/', self.payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_warranty_before_purchase(self):
        response = self.client.post('/api/v1/equipment/', self.payload(warranty_end_date='2023-12-31'), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('warranty_end_date', response.data)

    def test_cpf_is_not_a_supplier_cnpj(self):
        response = self.client.post('/api/v1/equipment/', self.payload(supplier_cnpj='123.456.789-09'), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_filter_and_delete(self):
        create_equipment(name='Caminhão munck', category='veiculo')
        machine = create_equipment()
        response = self.client.get('/api/v1/equipment/', {'category': 'maquina'})
        self.assertEqual([row['id'] for row in response.data['results']], [machine.id])

        response = self.client.delete(f'/api/v1/equipment/{machine.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Equipment.objects.filter(pk=machine.pk).exists())

    def test_page_access(self):
        finance_only = TestDataFactory.create_user(role='aux_administrativo', custom_permissions=['finance'])
        client = AuthenticatedAPIClient().authenticate_user(finance_only)
        self.assertEqual(client.get('/api/v1/equipment/').status_code, status.HTTP_403_FORBIDDEN)
        seller = AuthenticatedAPIClient().authenticate_user(TestDataFactory.create_user(role='vendedor'))
        self.assertEqual(seller.get('/api/v1/equipment/').status_code, status.HTTP_200_OK)


class AssetScanAndUpdateTests(TestCase):

    def setUp(self):
        self.user = TestDataFactory.create_user(role='producao')
        self.client = AuthenticatedAPIClient().authenticate_user(self.user)
        self.equipment = create_equipment()
        self.slab = TestDataFactory.create_stock_item(location='A1')

    def scan(self, data):
        return self.client.get('/api/v1/assets/qrcode-scan/', {'data': data})

    def test_scan_equipment(self):
        response = self.scan(self.equipment.qr_code_value)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['type'], 'equipment')
        self.assertEqual(response.data['data']['serial_number'], self.equipment.serial_number)
        log = ActivityLog.objects.get(action='asset_scanned')
        self.assertEqual(log.model_name, 'Equipment')
        self.assertEqual(log.new_location, 'Galpão 1')

    def test_scan_stock_item_alias(self):
        response = self.scan(f'marmoraria://asset/stock/{self.slab.id}')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['type'], 'stock_item')
        self.assertEqual(response.data['data']['internal_id'], self.slab.internal_id)

    def test_scan_cut_piece(self):
        service_order = TestDataFactory.create_service_order()
        piece = CutPiece.objects.create(
            piece_id=f'{service_order.code}-item-1-P1', service_order=service_order, original_item_id='item-1',
            description='Bancada', qr_code_value=f'marmoraria://asset/cut_piece/{service_order.code}-item-1-P1',
        )
        response = self.scan(piece.qr_code_value)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['piece_id'], piece.piece_id)

    def test_scan_errors(self):
        self.assertEqual(self.scan('equipment/1').status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(self.scan('marmoraria://asset/product/1').status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(self.scan('marmoraria://asset/equipment/abc').status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(self.scan('marmoraria://asset/equipment/99999').status_code, status.HTTP_404_NOT_FOUND)
        self.assertFalse(ActivityLog.objects.filter(action='asset_scanned').exists())

    def test_update_status(self):
        url = f'/api/v1/assets/equipment/{self.equipment.id}/status/'
        response = self.client.put(url, {'status': 'em_manutencao'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.equipment.refresh_from_db()
        self.assertEqual(self.equipment.status, 'em_manutencao')
        log = ActivityLog.objects.get(action='asset_status_updated')
        self.assertEqual((log.previous_status, log.new_status), ('operacional', 'em_manutencao'))

        self.assertEqual(self.client.put(url, {'status': 'em_manutencao'}, format='json').status_code,
                         status.HTTP_400_BAD_REQUEST)
        response = self.client.put(url, {'status': 'disponivel'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('operacional', response.data['allowed_statuses'])

    def test_update_stock_item_status_uses_slab_statuses(self):
        url = f'/api/v1/assets/stock_item/{self.slab.id}/status/'
        self.assertEqual(self.client.put(url, {'status': 'em_corte'}, format='json').status_code, status.HTTP_200_OK)
        self.assertEqual(self.client.put(url, {'status': 'operacional'}, format='json').status_code,
                         status.HTTP_400_BAD_REQUEST)

    def test_update_location(self):
        url = f'/api/v1/assets/stock-item/{self.slab.id}/location/'
        response = self.client.put(url, {'location': ' B7 '}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.slab.refresh_from_db()
        self.assertEqual(self.slab.location, 'B7')
        log = ActivityLog.objects.get(action='asset_location_updated')
        self.assertEqual((log.previous_location, log.new_location), ('A1', 'B7'))

        self.assertEqual(self.client.put(url, {'location': 'B7'}, format='json').status_code,
                         status.HTTP_400_BAD_REQUEST)
        self.assertEqual(self.client.put(url, {'location': '  '}, format='json').status_code,
                         status.HTTP_400_BAD_REQUEST)

    def test_unknown_type_and_asset(self):
        response = self.client.put('/api/v1/assets/product/1/status/', {'status': 'x'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = self.client.put('/api/v1/assets/equipment/99999/location/', {'location': 'X'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
