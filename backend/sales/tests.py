"""
Test suite for the sales module
Tests: quote totals, quote approval and order conversion, order deletion rules,
contracts and their signature, order addendums
"""
import shutil
import tempfile
from decimal import Decimal
from django.test import TestCase, override_settings
from django.utils import timezone
from rest_framework import status
from backend.core.models import ActivityLog
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient, ADDRESS
from backend.sales.models import Quote, Order, Contract, OrderAddendum
from backend.sales.serializers import normalize_items


class NormalizeItemsTests(TestCase):

    def test_generates_ids_and_totals(self):
        items = normalize_items([{'description': 'Pia', 'quantity': 2, 'unit_price': '150.00', 'discount': '10.00'}])
        self.assertTrue(items[0]['id'].startswith('item-'))
        self.assertEqual(items[0]['total_price'], 290.0)
        self.assertEqual(items[0]['type'], 'material')

    def test_keeps_given_id_and_total(self):
        items = normalize_items([{'id': 'abc', 'description': 'Pia', 'quantity': 1, 'unit_price': 100, 'total_price': 80}])
        self.assertEqual(items[0]['id'], 'abc')
        self.assertEqual(items[0]['total_price'], 80.0)


class QuoteAPITests(TestCase):

    def setUp(self):
        self.user = TestDataFactory.create_user(role='vendedor')
        self.client = AuthenticatedAPIClient().authenticate_user(self.user)
        self.customer = TestDataFactory.create_client()

    def quote_payload(self, **overrides):
        data = {
            'client': self.customer.id,
            'client_name': self.customer.name,
            'delivery_address': ADDRESS,
            'items': [{'description': 'Bancada granito', 'quantity': 2, 'unit_price': '500.00'}],
            'discount': '100.00',
            'freight': '50.00',
            'payment_method': 'pix',
        }
        data.update(overrides)
        return data

    def test_create_quote_computes_totals(self):
        response = self.client.post('/api/v1/quotes/', self.quote_payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data['code'].startswith('ORC-'))
        self.assertEqual(response.data['subtotal'], '1000.00')
        self.assertEqual(response.data['total'], '950.00')
        self.assertEqual(response.data['salesperson'], self.user.id)
        self.assertIsNone(response.data['order_id'])

    def test_discount_above_subtotal_rejected(self):
        response = self.client.post('/api/v1/quotes/', self.quote_payload(discount='5000.00'), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_create_approved_quote_creates_order(self):
        response = self.client.post('/api/v1/quotes/', self.quote_payload(status='approved'), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertIsNotNone(response.data['order_id'])
        order = Order.objects.get(pk=response.data['order_id'])
        self.assertTrue(order.code.startswith('PED-'))
        self.assertEqual(order.total, Decimal('950.00'))

    def test_approving_twice_keeps_one_order(self):
        quote = TestDataFactory.create_quote(client=self.customer)
        url = f'/api/v1/quotes/{quote.id}/'
        first = self.client.patch(url, {'status': 'approved'}, format='json')
        self.assertEqual(first.status_code, status.HTTP_200_OK)
        second = self.client.patch(url, {'notes': 'Confirmed by phone'}, format='json')
        self.assertEqual(second.status_code, status.HTTP_200_OK)
        self.assertEqual(Order.objects.filter(quote=quote).count(), 1)
        self.assertEqual(first.data['order_id'], second.data['order_id'])
        self.assertEqual(ActivityLog.objects.filter(action='quote_approved', object_id=str(quote.id)).count(), 1)

    def test_get_or_create_order_is_idempotent(self):
        quote = TestDataFactory.create_quote(client=self.customer, status='approved')
        order, created = quote.get_or_create_order()
        again, created_again = quote.get_or_create_order()
        self.assertTrue(created)
        self.assertFalse(created_again)
        self.assertEqual(order.pk, again.pk)

    def test_status_change_is_logged(self):
        quote = TestDataFactory.create_quote(client=self.customer)
        self.client.patch(f'/api/v1/quotes/{quote.id}/', {'status': 'sent'}, format='json')
        log = ActivityLog.objects.get(action='status_change', model_name='Quote')
        self.assertEqual(log.previous_status, 'draft')
        self.assertEqual(log.new_status, 'sent')

    def test_approved_quote_with_order_cannot_be_rejected(self):
        quote = TestDataFactory.create_quote(client=self.customer, status='approved')
        quote.get_or_create_order()
        response = self.client.patch(f'/api/v1/quotes/{quote.id}/', {'status': 'rejected'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_cannot_delete_quote_with_order(self):
        quote = TestDataFactory.create_quote(client=self.customer, status='approved')
        quote.get_or_create_order()
        response = self.client.delete(f'/api/v1/quotes/{quote.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertTrue(Quote.objects.filter(pk=quote.pk).exists())

    def test_filter_by_status(self):
        TestDataFactory.create_quote(client=self.customer, status='sent')
        TestDataFactory.create_quote(client=self.customer, status='draft')
        response = self.client.get('/api/v1/quotes/?status=sent')
        self.assertEqual(response.data['count'], 1)


class OrderAPITests(TestCase):

    def setUp(self):
        self.user = TestDataFactory.create_user(role='admin')
        self.client = AuthenticatedAPIClient().authenticate_user(self.user)

    def test_detail_embeds_service_orders(self):
        order = TestDataFactory.create_order()
        service_order = TestDataFactory.create_service_order(order=order)
        response = self.client.get(f'/api/v1/orders/{order.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([so['code'] for so in response.data['service_orders']], [service_order.code])

    def test_cannot_delete_order_with_active_service_orders(self):
        order = TestDataFactory.create_order()
        TestDataFactory.create_service_order(order=order)
        response = self.client.delete(f'/api/v1/orders/{order.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_delete_order_without_service_orders(self):
        order = TestDataFactory.create_order()
        response = self.client.delete(f'/api/v1/orders/{order.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)


MEDIA_ROOT = tempfile.mkdtemp()
SIGNATURE = 'data:image/png;base64,iVBORw0KGgo='


@override_settings(MEDIA_ROOT=MEDIA_ROOT)
class ContractAPITests(TestCase):

    @classmethod
    def tearDownClass(cls):
        shutil.rmtree(MEDIA_ROOT, ignore_errors=True)
        super().tearDownClass()

    def setUp(self):
        self.user = TestDataFactory.create_user(role='producao')
        self.client = AuthenticatedAPIClient().authenticate_user(self.user)
        self.order = TestDataFactory.create_order()

    def create_contract(self):
        return self.client.post('/api/v1/contracts/from-order/', {'order': self.order.id}, format='json')

    def test_create_from_order(self):
        response = self.create_contract()
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        year = timezone.localdate().year
        self.assertEqual(response.data['document_number'], f'CTR-{year}-001')
        self.assertEqual(response.data['status'], 'draft')
        self.assertEqual(response.data['client'], self.order.client_id)
        self.assertEqual(response.data['variables']['order_code'], self.order.code)

        second = self.create_contract()
        self.assertEqual(second.data['document_number'], f'CTR-{year}-002')

    def test_create_requires_valid_order(self):
        response = self.client.post('/api/v1/contracts/from-order/', {'order': 'abc'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = self.client.post('/api/v1/contracts/from-order/', {'order': 99999}, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_list_for_order(self):
        self.create_contract()
        other_order = TestDataFactory.create_order()
        self.client.post('/api/v1/contracts/from-order/', {'order': other_order.id}, format='json')
        response = self.client.get(f'/api/v1/orders/{self.order.id}/contracts/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)

    def test_sign(self):
        contract_id = self.create_contract().data['id']
        response = self.client.post(
            f'/api/v1/contracts/{contract_id}/sign/',
            {'name': 'Maria Silva', 'document_number': '12345678909', 'signature_data_url': SIGNATURE},
            format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'signed')
        self.assertEqual(response.data['signatory_info'], {'name': 'Maria Silva', 'document_number': '12345678909'})
        self.assertIn('signatures/signature_', response.data['digital_signature_url'])
        self.assertIsNotNone(response.data['signed_at'])
        self.assertTrue(ActivityLog.objects.filter(action='contract_signed', object_id=str(contract_id)).exists())

        again = self.client.post(
            f'/api/v1/contracts/{contract_id}/sign/', {'signature_data_url': SIGNATURE}, format='json'
        )
        self.assertEqual(again.status_code, status.HTTP_400_BAD_REQUEST)

    def test_sign_rejects_invalid_signature(self):
        contract_id = self.create_contract().data['id']
        for signature in ('not-a-data-url', 'data:image/png;base64,%%%'):
            with self.subTest(signature=signature):
                response = self.client.post(
                    f'/api/v1/contracts/{contract_id}/sign/', {'signature_data_url': signature}, format='json'
                )
                self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(Contract.objects.get(pk=contract_id).status, 'draft')

    def test_order_pages_can_read_contracts(self):
        contract_id = self.create_contract().data['id']
        seller = AuthenticatedAPIClient().authenticate_user(TestDataFactory.create_user(role='vendedor'))
        self.assertEqual(seller.get(f'/api/v1/contracts/{contract_id}/').status_code, status.HTTP_200_OK)
        finance = AuthenticatedAPIClient().authenticate_user(TestDataFactory.create_user(role='aux_administrativo'))
        self.assertEqual(finance.get(f'/api/v1/contracts/{contract_id}/').status_code, status.HTTP_200_OK)

    def test_cannot_delete_order_with_signed_contract(self):
        contract = Contract.objects.create(order=self.order, document_number='CTR-2030-001', status='signed')
        admin = AuthenticatedAPIClient().authenticate_user(TestDataFactory.create_user(role='admin'))
        response = admin.delete(f'/api/v1/orders/{self.order.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertTrue(Contract.objects.filter(pk=contract.pk).exists())


class OrderAddendumAPITests(TestCase):

    def setUp(self):
        self.user = TestDataFactory.create_user(role='vendedor')
        self.client = AuthenticatedAPIClient().authenticate_user(self.user)
        self.order = TestDataFactory.create_order()
        self.url = f'/api/v1/orders/{self.order.id}/addendums/'

    def create_addendum(self, **overrides):
        data = {'reason': 'Cliente pediu troca da soleira', 'price_adjustment': '150.00'}
        data.update(overrides)
        return self.client.post(self.url, data, format='json')

    def test_create_numbers_sequentially(self):
        first = self.create_addendum()
        self.assertEqual(first.status_code, status.HTTP_201_CREATED)
        self.assertEqual(first.data['addendum_number'], 1)
        self.assertEqual(first.data['status'], 'pending')
        second = self.create_addendum(reason='  Outro ajuste  ')
        self.assertEqual(second.data['addendum_number'], 2)
        self.assertEqual(second.data['reason'], 'Outro ajuste')
        self.assertEqual([row['addendum_number'] for row in self.client.get(self.url).data], [1, 2])

    def test_reason_is_required(self):
        response = self.create_addendum(reason='   ')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(OrderAddendum.objects.exists())

    def test_unknown_order(self):
        response = self.client.get('/api/v1/orders/99999/addendums/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_added_items_get_ids(self):
        response = self.create_addendum(added_items=[{'description': 'Rodapé', 'quantity': 3, 'unit_price': '40.00'}])
        item = response.data['added_items'][0]
        self.assertTrue(item['id'].startswith('add-'))
        self.assertEqual(item['total_price'], 120.0)

    def test_pending_list_and_detail(self):
        addendum_id = self.create_addendum().data['id']
        response = self.client.get('/api/v1/addendums/pending/')
        self.assertEqual([row['id'] for row in response.data], [addendum_id])
        response = self.client.get(f'/api/v1/addendums/{addendum_id}/')
        self.assertEqual(response.data['order_code'], self.order.code)

    def test_status_must_be_approved_or_rejected(self):
        addendum_id = self.create_addendum().data['id']
        response = self.client.patch(f'/api/v1/addendums/{addendum_id}/status/', {'status': 'pending'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_reject_then_cannot_process_again(self):
        addendum_id = self.create_addendum().data['id']
        url = f'/api/v1/addendums/{addendum_id}/status/'
        response = self.client.patch(url, {'status': 'rejected'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIsNone(response.data['approved_by'])
        response = self.client.patch(url, {'status': 'approved'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_approval_updates_service_orders_not_started(self):
        waiting = TestDataFactory.create_service_order(
            order=self.order, items=[self.order.items[0]], status='pending_production'
        )
        cutting = TestDataFactory.create_service_order(
            order=self.order, items=[self.order.items[1]], status='cutting'
        )
        untouched = TestDataFactory.create_service_order(
            order=TestDataFactory.create_order(), status='pending_production'
        )
        addendum_id = self.create_addendum(
            removed_item_ids=['item-2'],
            changed_items=[{
                'original_item_id': 'item-1',
                'updated_item': {'description': 'Bancada quartzo', 'quantity': 1, 'unit_price': '900.00'},
            }],
            added_items=[{'id': 'item-3', 'description': 'Cuba', 'quantity': 1, 'unit_price': '250.00'}],
        ).data['id']

        response = self.client.patch(f'/api/v1/addendums/{addendum_id}/status/', {'status': 'approved'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'approved')
        self.assertEqual(response.data['approved_by'], self.user.id)
        self.assertEqual(response.data['impact']['updated_service_orders'], [waiting.code])
        self.assertEqual(
            [entry['code'] for entry in response.data['impact']['requires_manual_intervention']], [cutting.code]
        )

        waiting.refresh_from_db()
        self.assertEqual([item['id'] for item in waiting.items], ['item-1', 'item-3'])
        self.assertEqual(waiting.items[0]['description'], 'Bancada quartzo')
        self.assertEqual(waiting.total, Decimal('1150.00'))

        cutting.refresh_from_db()
        self.assertEqual([item['id'] for item in cutting.items], ['item-2'])
        untouched_items = list(untouched.items)
        untouched.refresh_from_db()
        self.assertEqual(untouched.items, untouched_items)


class OrderAddendumModelTests(TestCase):

    def test_apply_to_items_does_not_duplicate_added_items(self):
        addendum = OrderAddendum(
            added_items=[{'id': 'a', 'description': 'A'}],
            removed_item_ids=['b'],
            changed_items=[],
        )
        items = addendum.apply_to_items([{'id': 'a', 'description': 'A'}, {'id': 'b', 'description': 'B'}])
        self.assertEqual(items, [{'id': 'a', 'description': 'A'}])
