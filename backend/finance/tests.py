"""
Test suite for the finance module
Tests: invoices from orders, simulated NF-e issue, financial transactions and summary
"""
import shutil
import tempfile
from datetime import timedelta
from decimal import Decimal
from django.test import TestCase, override_settings
from django.utils import timezone
from rest_framework import status
from backend.core.models import ActivityLog
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.finance.models import Invoice, FinancialTransaction

MEDIA_ROOT = tempfile.mkdtemp()


@override_settings(MEDIA_ROOT=MEDIA_ROOT)
class InvoiceAPITests(TestCase):

    @classmethod
    def tearDownClass(cls):
        shutil.rmtree(MEDIA_ROOT, ignore_errors=True)
        super().tearDownClass()

    def setUp(self):
        self.user = TestDataFactory.create_user(role='aux_administrativo')
        self.client = AuthenticatedAPIClient().authenticate_user(self.user)
        self.order = TestDataFactory.create_order()

    def test_create_from_order(self):
        response = self.client.post('/api/v1/invoices/from-order/', {'order': self.order.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], 'pending')
        self.assertEqual(response.data['order_code'], self.order.code)
        self.assertEqual(response.data['client'], self.order.client_id)
        self.assertEqual(response.data['total'], '1300.00')
        self.assertEqual(len(response.data['items']), 2)

    def test_one_invoice_per_order(self):
        first = self.client.post('/api/v1/invoices/from-order/', {'order': self.order.id}, format='json')
        response = self.client.post('/api/v1/invoices/from-order/', {'order': self.order.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['invoice']['id'], first.data['id'])
        self.assertEqual(Invoice.objects.count(), 1)

    def test_unknown_order(self):
        response = self.client.post('/api/v1/invoices/from-order/', {'order': 99999}, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_missing_order(self):
        response = self.client.post('/api/v1/invoices/from-order/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_issue_invoice(self):
        created = self.client.post('/api/v1/invoices/from-order/', {'order': self.order.id}, format='json')
        url = f"/api/v1/invoices/{created.data['id']}/issue/"
        response = self.client.post(url)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'issued')
        self.assertTrue(response.data['nfe_key'].startswith('NFE_SIMULADA_55_'))
        self.assertTrue(response.data['nfe_pdf_url'].endswith('.pdf'))
        self.assertIsNotNone(response.data['issue_date'])
        self.assertTrue(ActivityLog.objects.filter(action='invoice_issue').exists())

        response = self.client.post(url)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_seller_has_no_access(self):
        seller = TestDataFactory.create_user(role='vendedor')
        client = AuthenticatedAPIClient().authenticate_user(seller)
        response = client.get('/api/v1/invoices/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class FinancialTransactionAPITests(TestCase):

    def setUp(self):
        self.user = TestDataFactory.create_user(role='admin')
        self.client = AuthenticatedAPIClient().authenticate_user(self.user)
        self.today = timezone.localdate()

    def create_entry(self, amount, entry_type='receita', entry_status='pendente', due_date=None):
        return FinancialTransaction.objects.create(
            description=f'Entry {amount}',
            amount=Decimal(amount),
            type=entry_type,
            status=entry_status,
            due_date=due_date or self.today,
            payment_date=self.today if entry_status == 'pago' else None,
        )

    def test_create_transaction(self):
        data = {'description': 'Sinal pedido', 'amount': '500.00', 'type': 'receita', 'due_date': str(self.today)}
        response = self.client.post('/api/v1/financial-transactions/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], 'pendente')

    def test_amount_must_be_positive(self):
        data = {'description': 'Bad', 'amount': '0.00', 'type': 'despesa', 'due_date': str(self.today)}
        response = self.client.post('/api/v1/financial-transactions/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_paid_requires_payment_date(self):
        data = {'description': 'Frete', 'amount': '80.00', 'type': 'despesa', 'status': 'pago',
                'due_date': str(self.today)}
        response = self.client.post('/api/v1/financial-transactions/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_reopening_clears_payment_date(self):
        entry = self.create_entry('100.00', entry_status='pago')
        response = self.client.patch(
            f'/api/v1/financial-transactions/{entry.id}/', {'status': 'pendente'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIsNone(response.data['payment_date'])

    def test_pay(self):
        entry = self.create_entry('250.00')
        url = f'/api/v1/financial-transactions/{entry.id}/pay/'
        response = self.client.post(url, {'payment_method': 'pix'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'pago')
        self.assertEqual(response.data['payment_date'], str(self.today))
        self.assertEqual(response.data['payment_method'], 'pix')

        response = self.client.post(url, {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_filter_by_type(self):
        self.create_entry('100.00')
        self.create_entry('40.00', entry_type='despesa')
        response = self.client.get('/api/v1/financial-transactions/?type=despesa')
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['amount'], '40.00')

    def test_summary(self):
        self.create_entry('1500.00', entry_status='pago')
        self.create_entry('300.00', entry_type='despesa', entry_status='pago')
        self.create_entry('200.00')
        self.create_entry('50.00', entry_type='despesa', due_date=self.today - timedelta(days=3))

        response = self.client.get('/api/v1/financial-transactions/summary/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['income'], '1500.00')
        self.assertEqual(response.data['expenses'], '300.00')
        self.assertEqual(response.data['balance'], '1200.00')
        self.assertEqual(response.data['pending_income'], '200.00')
        self.assertEqual(response.data['pending_expenses'], '50.00')
        self.assertEqual(response.data['overdue_count'], 1)

    def test_summary_keeps_two_decimal_places(self):
        self.create_entry('1500', entry_status='pago')
        self.create_entry('25.5', entry_type='despesa', entry_status='pago')
        response = self.client.get('/api/v1/financial-transactions/summary/')
        self.assertEqual(response.data['income'], '1500.00')
        self.assertEqual(response.data['expenses'], '25.50')
        self.assertEqual(response.data['balance'], '1474.50')
        self.assertEqual(response.data['pending_income'], '0.00')

    def test_empty_summary(self):
        response = self.client.get('/api/v1/financial-transactions/summary/')
        self.assertEqual(response.data['balance'], '0.00')
        self.assertEqual(response.data['overdue_count'], 0)
