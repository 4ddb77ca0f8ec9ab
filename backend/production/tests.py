"""
Test suite for the production module
Tests: service order creation rules, status workflow, checklist, exceptions, cut pieces,
production employees
"""
from django.test import TestCase
from rest_framework import status
from backend.core.models import ActivityLog
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient, ADDRESS
from backend.production.models import ServiceOrder, ProductionEmployee, CutPiece


class ServiceOrderCreateTests(TestCase):

    def setUp(self):
        self.user = TestDataFactory.create_user(role='producao')
        self.client = AuthenticatedAPIClient().authenticate_user(self.user)
        self.order = TestDataFactory.create_order()

    def payload(self, **overrides):
        data = {
            'order': self.order.id,
            'client_name': self.order.client_name,
            'delivery_address': ADDRESS,
            'items': [self.order.items[0]],
            'total': '1000.00',
            'delivery_date': '2030-02-01T10:00:00-03:00',
        }
        data.update(overrides)
        return data

    def test_create_service_order(self):
        response = self.client.post('/api/v1/service-orders/', self.payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data['code'].startswith('OS-'))
        self.assertEqual(response.data['status'], 'pending_production')
        self.assertEqual(response.data['logistics_status'], 'awaiting_scheduling')
        self.assertEqual(len(response.data['history']), 1)
        self.assertTrue(ActivityLog.objects.filter(model_name='ServiceOrder', action='create').exists())

    def test_missing_fields(self):
        data = self.payload()
        del data['delivery_date']
        del data['total']
        response = self.client.post('/api/v1/service-orders/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('delivery_date', response.data['error'])
        self.assertIn('total', response.data['error'])

    def test_empty_items_rejected(self):
        response = self.client.post('/api/v1/service-orders/', self.payload(items=[]), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_item_ids_generated(self):
        items = [{'description': 'Nicho banheiro', 'quantity': 1, 'unit_price': '200.00'}]
        response = self.client.post('/api/v1/service-orders/', self.payload(items=items), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data['items'][0]['id'])

    def test_duplicate_item_conflict(self):
        TestDataFactory.create_service_order(order=self.order, items=[self.order.items[0]])
        response = self.client.post('/api/v1/service-orders/', self.payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertIn('Bancada granito', response.data['error'])

    def test_cancelled_service_order_frees_items(self):
        TestDataFactory.create_service_order(order=self.order, items=[self.order.items[0]], status='cancelled')
        response = self.client.post('/api/v1/service-orders/', self.payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

    def test_other_items_of_same_order_allowed(self):
        TestDataFactory.create_service_order(order=self.order, items=[self.order.items[0]])
        response = self.client.post('/api/v1/service-orders/', self.payload(items=[self.order.items[1]]), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

    def test_seller_cannot_create(self):
        seller = TestDataFactory.create_user(role='vendedor')
        client = AuthenticatedAPIClient().authenticate_user(seller)
        response = client.post('/api/v1/service-orders/', self.payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        # Sellers still read service orders through the orders page
        response = client.get('/api/v1/service-orders/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)


class ServiceOrderWorkflowTests(TestCase):

    def setUp(self):
        self.user = TestDataFactory.create_user(role='admin')
        self.client = AuthenticatedAPIClient().authenticate_user(self.user)
        self.service_order = TestDataFactory.create_service_order(status='cutting')

    def url(self, suffix=''):
        return f'/api/v1/service-orders/{self.service_order.code}/{suffix}'

    def refresh(self):
        self.service_order.refresh_from_db()
        return self.service_order

    def test_detail_by_code(self):
        response = self.client.get(self.url())
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['code'], self.service_order.code)

    def test_code_is_immutable(self):
        response = self.client.patch(self.url(), {'code': 'OS-HACKED', 'observations': 'Fragile'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(self.refresh().code, self.service_order.code)
        self.assertEqual(self.service_order.observations, 'Fragile')

    def test_status_change_appends_history(self):
        response = self.client.patch(self.url('status/'), {'status': 'finishing'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        service_order = self.refresh()
        self.assertEqual(service_order.status, 'finishing')
        self.assertEqual(service_order.production_status, 'finishing')
        self.assertEqual(service_order.history[-1]['previous_status'], 'cutting')
        log = ActivityLog.objects.get(action='status_change', model_name='ServiceOrder')
        self.assertEqual(log.new_status, 'finishing')

    def test_invalid_status(self):
        response = self.client.patch(self.url('status/'), {'status': 'teleported'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_checklist(self):
        checklist = [{'text': 'Protect edges', 'checked': True}, {'text': 'Load sink cutout'}]
        response = self.client.put(self.url('checklist/'), {'checklist': checklist}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        saved = self.refresh().departure_checklist
        self.assertEqual([item['checked'] for item in saved], [True, False])
        self.assertTrue(all(item['id'] for item in saved))

    def test_checklist_rejects_empty_text(self):
        response = self.client.put(self.url('checklist/'), {'checklist': [{'text': ' '}]}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_checklist_rejects_non_boolean(self):
        response = self.client.put(self.url('checklist/'), {'checklist': [{'text': 'Ok', 'checked': 'yes'}]}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_rework_cycle(self):
        response = self.client.post(self.url('mark-rework/'), {'reason': 'Wrong edge finish'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(self.refresh().status, 'rework_needed')
        self.assertEqual(self.service_order.rework_reason, 'Wrong edge finish')

        response = self.client.post(self.url('resolve-rework/'), {'resolution': 'Re-polished'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(self.refresh().status, 'cutting')
        self.assertEqual(self.service_order.rework_resolution['resolution'], 'Re-polished')

    def test_delivery_issue_cycle(self):
        self.client.post(self.url('report-delivery-issue/'), {'description': 'Piece cracked'}, format='json')
        self.assertEqual(self.refresh().status, 'delivery_issue')
        response = self.client.post(self.url('resolve-delivery-issue/'), {'resolution': 'Replaced'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(self.refresh().status, 'delivered')
        self.assertEqual(self.service_order.delivery_issue['resolution']['resolution'], 'Replaced')

    def test_resolve_issue_targets(self):
        cases = [
            ('installation_pending_review', 'ready_for_logistics'),
            ('delivery_issue', 'delivered'),
            ('quality_issue', 'cutting'),
        ]
        for current, expected in cases:
            with self.subTest(current=current):
                ServiceOrder.objects.filter(pk=self.service_order.pk).update(status=current)
                response = self.client.post(self.url('resolve-issue/'), {'resolution': 'Fixed'}, format='json')
                self.assertEqual(response.status_code, status.HTTP_200_OK)
                self.assertEqual(self.refresh().status, expected)

    def test_review_approved_and_rejected(self):
        self.client.post(self.url('request-review/'), {'reason': 'Seam visible'}, format='json')
        self.assertEqual(self.refresh().status, 'installation_pending_review')
        self.client.post(self.url('complete-review/'), {'approved': True}, format='json')
        self.assertEqual(self.refresh().status, 'ready_for_logistics')
        self.assertTrue(self.service_order.installation_review['approved'])

        self.client.post(self.url('request-review/'), {'reason': 'Seam visible again'}, format='json')
        self.client.post(self.url('complete-review/'), {'approved': False, 'notes': 'Redo'}, format='json')
        self.assertEqual(self.refresh().status, 'rework_needed')

    def test_confirm_delivery_data(self):
        data = {
            'scheduled_date': '2030-02-01',
            'start': '2030-02-01T08:00:00-03:00',
            'end': '2030-02-01T10:00:00-03:00',
            'vehicle': 1,
            'team': [1, 2],
        }
        response = self.client.post(self.url('confirm-delivery-data/'), data, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        service_order = self.refresh()
        self.assertTrue(service_order.delivery_confirmed)
        self.assertEqual(service_order.confirmed_delivery['team'], [1, 2])

    def test_confirm_delivery_data_invalid_interval(self):
        data = {
            'scheduled_date': '2030-02-01',
            'start': '2030-02-01T10:00:00-03:00',
            'end': '2030-02-01T08:00:00-03:00',
        }
        response = self.client.post(self.url('confirm-delivery-data/'), data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_derived_status_is_not_persisted(self):
        TestDataFactory.create_route(service_order=self.service_order, status='in_progress')
        response = self.client.get(self.url('derived-status/'))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['derived_status'], 'in_transit')
        self.assertEqual(response.data['current_logistics_status'], 'awaiting_scheduling')
        self.assertEqual(response.data['routes_count'], 1)
        self.assertEqual(self.refresh().logistics_status, 'awaiting_scheduling')

    def test_derived_status_without_routes(self):
        response = self.client.get(self.url('derived-status/'))
        self.assertIsNone(response.data['derived_status'])

    def test_unknown_code(self):
        response = self.client.get('/api/v1/service-orders/OS-NOPE/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)


class ProductionEmployeeTests(TestCase):

    def setUp(self):
        self.user = TestDataFactory.create_user(role='producao')
        self.client = AuthenticatedAPIClient().authenticate_user(self.user)

    def test_create_and_filter(self):
        response = self.client.post(
            '/api/v1/production-employees/', {'name': 'Paulo', 'role': 'driver', 'skills': ['cnh-d']}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        TestDataFactory.create_employee(role='installer')
        response = self.client.get('/api/v1/production-employees/?role=driver')
        self.assertEqual([row['name'] for row in response.data], ['Paulo'])

    def test_delete_is_soft(self):
        employee = TestDataFactory.create_employee()
        response = self.client.delete(f'/api/v1/production-employees/{employee.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        employee.refresh_from_db()
        self.assertFalse(employee.active)
        response = self.client.get('/api/v1/production-employees/?active=true')
        self.assertEqual(response.data, [])

    def test_assign_and_release(self):
        employee = TestDataFactory.create_employee()
        response = self.client.post(
            f'/api/v1/production-employees/{employee.id}/assign/',
            {'task_id': '42', 'task_type': 'service_order'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['availability'], 'on_task')
        self.assertEqual(response.data['current_task_id'], '42')

        response = self.client.post(f'/api/v1/production-employees/{employee.id}/release/')
        self.assertEqual(response.data['availability'], 'available')
        self.assertIsNone(response.data['current_task_type'])

    def test_assign_invalid_task_type(self):
        employee = TestDataFactory.create_employee()
        response = self.client.post(
            f'/api/v1/production-employees/{employee.id}/assign/',
            {'task_id': '42', 'task_type': 'coffee_break'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_assign_inactive_employee(self):
        employee = TestDataFactory.create_employee(active=False)
        response = self.client.post(
            f'/api/v1/production-employees/{employee.id}/assign/',
            {'task_id': '42', 'task_type': 'delivery_route'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_release_keeps_leave(self):
        employee = TestDataFactory.create_employee(availability='on_leave')
        employee.release_from_task()
        self.assertEqual(ProductionEmployee.objects.get(pk=employee.pk).availability, 'on_leave')


class CutPieceTests(TestCase):

    def setUp(self):
        self.user = TestDataFactory.create_user(role='producao')
        self.client = AuthenticatedAPIClient().authenticate_user(self.user)
        self.slab = TestDataFactory.create_stock_item()
        items = [
            dict(TestDataFactory.line_item('item-1'), width=1.8, height=0.6, material_id=self.slab.material_id),
            dict(TestDataFactory.line_item('item-2', description='Instalação'), type='service'),
            dict(TestDataFactory.line_item('item-3', description='Soleira')),
        ]
        self.order = TestDataFactory.create_order(items=items)
        self.service_order = TestDataFactory.create_service_order(
            order=self.order, items=items, status='pending_production'
        )
        self.service_order.allocated_slab = self.slab
        self.service_order.save()

    def start_cutting(self):
        return self.client.patch(
            f'/api/v1/service-orders/{self.service_order.code}/status/', {'status': 'cutting'}, format='json'
        )

    def test_entering_cutting_creates_pieces(self):
        self.assertEqual(self.start_cutting().status_code, status.HTTP_200_OK)
        pieces = list(self.service_order.cut_pieces.order_by('piece_id'))
        self.assertEqual([piece.piece_id for piece in pieces], [
            f'{self.service_order.code}-item-1-P1',
            f'{self.service_order.code}-item-3-P2',
        ])
        first = pieces[0]
        self.assertEqual(first.dimensions, '1.80 x 0.60 m')
        self.assertEqual(first.stock_item, self.slab)
        self.assertEqual(first.material, self.slab.material)
        self.assertEqual(first.status, 'pending_cut')
        self.assertEqual(first.qr_code_value, f'marmoraria://asset/cut_piece/{first.piece_id}')
        self.assertEqual(pieces[1].dimensions, '')

    def test_creation_is_idempotent(self):
        self.start_cutting()
        self.client.post(
            f'/api/v1/service-orders/{self.service_order.code}/mark-rework/', {'reason': 'Quebra'}, format='json'
        )
        self.client.post(
            f'/api/v1/service-orders/{self.service_order.code}/resolve-rework/', {'resolution': 'Recortada'},
            format='json'
        )
        self.assertEqual(CutPiece.objects.filter(service_order=self.service_order).count(), 2)

    def test_no_pieces_without_allocated_slab(self):
        self.service_order.allocated_slab = None
        self.service_order.save()
        self.start_cutting()
        self.assertFalse(self.service_order.cut_pieces.exists())

    def test_created_with_allocated_slab(self):
        order = TestDataFactory.create_order()
        response = self.client.post('/api/v1/service-orders/', {
            'order': order.id,
            'client_name': order.client_name,
            'delivery_address': ADDRESS,
            'items': [order.items[0]],
            'total': '1000.00',
            'delivery_date': '2030-02-01T10:00:00-03:00',
            'allocated_slab': self.slab.id,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(CutPiece.objects.filter(service_order__code=response.data['code']).count(), 1)

    def test_list_by_service_order(self):
        self.start_cutting()
        response = self.client.get(f'/api/v1/service-orders/{self.service_order.code}/cut-pieces/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['service_order']['code'], self.service_order.code)
        self.assertEqual(len(response.data['cut_pieces']), 2)
        self.assertTrue(ActivityLog.objects.filter(action='cut_pieces_listed').exists())

        response = self.client.get('/api/v1/service-orders/OS-UNKNOWN/cut-pieces/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_detail_logs_view(self):
        self.start_cutting()
        piece = self.service_order.cut_pieces.first()
        response = self.client.get(f'/api/v1/cut-pieces/{piece.piece_id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['service_order_code'], self.service_order.code)
        self.assertTrue(ActivityLog.objects.filter(action='cut_piece_viewed', object_id=str(piece.id)).exists())

    def test_status_update(self):
        self.start_cutting()
        piece = self.service_order.cut_pieces.first()
        url = f'/api/v1/cut-pieces/{piece.piece_id}/status/'

        response = self.client.patch(url, {'status': 'cut', 'reason': 'Corte concluído'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'cut')
        log = ActivityLog.objects.get(action='cut_piece_status_updated')
        self.assertEqual((log.previous_status, log.new_status), ('pending_cut', 'cut'))

        self.assertEqual(self.client.patch(url, {'status': 'cut'}, format='json').status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(self.client.patch(url, {'status': 'broken'}, format='json').status_code, status.HTTP_400_BAD_REQUEST)

    def test_location_update(self):
        self.start_cutting()
        piece = self.service_order.cut_pieces.first()
        url = f'/api/v1/cut-pieces/{piece.piece_id}/location/'

        response = self.client.patch(url, {'location': '  Bancada 3  '}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['location'], 'Bancada 3')
        self.assertTrue(ActivityLog.objects.filter(action='cut_piece_location_updated', new_location='Bancada 3').exists())

        self.assertEqual(self.client.patch(url, {'location': 'Bancada 3'}, format='json').status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(self.client.patch(url, {'location': '   '}, format='json').status_code, status.HTTP_400_BAD_REQUEST)

    def test_seller_has_no_access(self):
        seller = AuthenticatedAPIClient().authenticate_user(TestDataFactory.create_user(role='vendedor'))
        response = seller.get(f'/api/v1/service-orders/{self.service_order.code}/cut-pieces/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
