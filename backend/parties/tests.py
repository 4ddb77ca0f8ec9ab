"""
Test suite for the parties module
Tests: clients, client notes and suppliers
"""
from django.test import TestCase
from rest_framework import status
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient, ADDRESS
from backend.core.models import ActivityLog
from backend.parties.models import Client, ClientNote


class ClientAPITests(TestCase):

    def setUp(self):
        self.user = TestDataFactory.create_user(role='vendedor')
        self.client = AuthenticatedAPIClient().authenticate_user(self.user)

    def test_create_client_normalizes_document(self):
        data = {'name': 'Maria Souza', 'type': 'pessoa_fisica', 'cpf_cnpj': '123.456.789-09', 'address': ADDRESS}
        response = self.client.post('/api/v1/clients/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['cpf_cnpj'], '12345678909')
        self.assertTrue(ActivityLog.objects.filter(model_name='Client', action='create').exists())

    def test_duplicate_document_rejected(self):
        TestDataFactory.create_client(cpf_cnpj='12345678909')
        data = {'name': 'Other', 'cpf_cnpj': '123.456.789-09'}
        response = self.client.post('/api/v1/clients/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_invalid_document_length(self):
        response = self.client.post('/api/v1/clients/', {'name': 'Bad', 'cpf_cnpj': '1234'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_invalid_address_state(self):
        address = dict(ADDRESS, uf='SAO')
        response = self.client.post('/api/v1/clients/', {'name': 'Bad', 'address': address}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_unknown_address_field(self):
        address = dict(ADDRESS, planet='Mars')
        response = self.client.post('/api/v1/clients/', {'name': 'Bad', 'address': address}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_list_search_and_pagination(self):
        TestDataFactory.create_client(name='Construtora Alfa', client_type='empresa')
        TestDataFactory.create_client(name='João Lima')
        response = self.client.get('/api/v1/clients/?search=alfa')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['type'], 'empresa')

    def test_update_and_delete(self):
        client = TestDataFactory.create_client(name='Old name')
        response = self.client.patch(f'/api/v1/clients/{client.id}/', {'name': 'New name'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['name'], 'New name')
        response = self.client.delete(f'/api/v1/clients/{client.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Client.objects.filter(pk=client.pk).exists())


class ClientNoteTests(TestCase):

    def setUp(self):
        self.author = TestDataFactory.create_user(role='vendedor')
        self.other = TestDataFactory.create_user(role='vendedor')
        self.customer = TestDataFactory.create_client()
        self.url = f'/api/v1/clients/{self.customer.id}/notes/'

    def test_add_and_list_notes(self):
        client = AuthenticatedAPIClient().authenticate_user(self.author)
        response = client.post(self.url, {'content': 'Prefers white marble'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['created_by'], self.author.id)
        response = client.get(self.url)
        self.assertEqual(len(response.data), 1)

    def test_empty_note_rejected(self):
        client = AuthenticatedAPIClient().authenticate_user(self.author)
        response = client.post(self.url, {'content': '   '}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_only_author_can_edit(self):
        note = ClientNote.objects.create(client=self.customer, content='Call back', created_by=self.author)
        client = AuthenticatedAPIClient().authenticate_user(self.other)
        response = client.patch(f'{self.url}{note.id}/', {'content': 'Hijacked'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_admin_can_delete_any_note(self):
        note = ClientNote.objects.create(client=self.customer, content='Call back', created_by=self.author)
        admin = TestDataFactory.create_user(role='admin')
        client = AuthenticatedAPIClient().authenticate_user(admin)
        response = client.delete(f'{self.url}{note.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)


class SupplierAPITests(TestCase):

    def setUp(self):
        self.user = TestDataFactory.create_user(role='admin')
        self.client = AuthenticatedAPIClient().authenticate_user(self.user)

    def test_create_supplier(self):
        data = {'name': 'Pedreira Norte', 'contact_person': 'Carlos', 'cpf_cnpj': '12.345.678/0001-95'}
        response = self.client.post('/api/v1/suppliers/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['cpf_cnpj'], '12345678000195')

    def test_seller_cannot_edit_supplier(self):
        supplier = TestDataFactory.create_supplier()
        seller = TestDataFactory.create_user(role='vendedor')
        client = AuthenticatedAPIClient().authenticate_user(seller)
        response = client.patch(f'/api/v1/suppliers/{supplier.id}/', {'name': 'X'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
