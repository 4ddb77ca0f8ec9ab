"""
Test suite for the core module
Tests: JWT login, registration, role based page access, user administration, activity logs, search
"""
from datetime import datetime
from io import StringIO
from unittest import mock
from django.apps import apps
from django.core.cache import cache
from django.core.management import call_command
from django.test import TestCase
from rest_framework import status
from rest_framework.test import APIClient
from backend.core.models import ActivityLog, User
from backend.core.permissions import get_user_pages, has_page_access, is_admin_user, ROLE_PERMISSIONS
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.core.utils import create_activity_log, generate_code
from backend.sales.models import Quote


class AuthTests(TestCase):
    """Login, refresh and registration"""

    def setUp(self):
        self.client = APIClient()
        self.user = TestDataFactory.create_user(email='seller@test.com', password='secret123', role='vendedor', name='Seller')

    def test_login_returns_tokens_and_user(self):
        response = self.client.post('/api/v1/auth/login/', {'email': 'seller@test.com', 'password': 'secret123'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)
        self.assertIn('refresh', response.data)
        self.assertEqual(response.data['user']['role'], 'vendedor')
        self.assertEqual(response.data['user']['permissions'], ROLE_PERMISSIONS['vendedor'])

    def test_login_is_case_insensitive_on_email(self):
        response = self.client.post('/api/v1/auth/login/', {'email': 'Seller@Test.com', 'password': 'secret123'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_login_wrong_password(self):
        response = self.client.post('/api/v1/auth/login/', {'email': 'seller@test.com', 'password': 'wrong'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_login_inactive_user(self):
        self.user.is_active = False
        self.user.save()
        response = self.client.post('/api/v1/auth/login/', {'email': 'seller@test.com', 'password': 'secret123'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_refresh_token(self):
        login = self.client.post('/api/v1/auth/login/', {'email': 'seller@test.com', 'password': 'secret123'}, format='json')
        response = self.client.post('/api/v1/auth/refresh/', {'refresh': login.data['refresh']}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)

    def test_refresh_with_garbage_token(self):
        response = self.client.post('/api/v1/auth/refresh/', {'refresh': 'not-a-token'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_register_forces_seller_role(self):
        data = {'email': 'New@Test.com', 'name': 'New', 'password': 'Granito#2030', 'role': 'admin'}
        response = self.client.post('/api/v1/auth/register/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['user']['role'], 'vendedor')
        self.assertEqual(response.data['user']['email'], 'new@test.com')
        self.assertIn('access', response.data)

    def test_register_duplicate_email(self):
        data = {'email': 'seller@test.com', 'name': 'Dup', 'password': 'Granito#2030'}
        response = self.client.post('/api/v1/auth/register/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_register_password_mismatch(self):
        data = {'email': 'other@test.com', 'name': 'Other', 'password': 'Granito#2030', 'password_confirm': 'Granito#2031'}
        response = self.client.post('/api/v1/auth/register/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_me_requires_authentication(self):
        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_me(self):
        client = AuthenticatedAPIClient().authenticate_user(self.user)
        response = client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.data['is_admin'])
        self.assertEqual(response.data['email'], 'seller@test.com')


class PagePermissionTests(TestCase):
    """Effective pages per role and custom overrides"""

    def test_admin_has_every_page(self):
        admin = TestDataFactory.create_user(role='admin')
        self.assertTrue(is_admin_user(admin))
        self.assertTrue(has_page_access(admin, 'finance'))
        self.assertIn('users', get_user_pages(admin))

    def test_superuser_is_admin(self):
        user = TestDataFactory.create_user(role='vendedor', is_superuser=True)
        self.assertTrue(is_admin_user(user))

    def test_role_defaults(self):
        production = TestDataFactory.create_user(role='producao')
        self.assertTrue(has_page_access(production, 'logistics'))
        self.assertFalse(has_page_access(production, 'finance'))

    def test_custom_permissions_replace_role_defaults(self):
        user = TestDataFactory.create_user(role='vendedor', custom_permissions=['finance'])
        self.assertEqual(get_user_pages(user), ['finance'])
        self.assertFalse(has_page_access(user, 'quotes'))


class RoleAccessMatrixTests(TestCase):
    """Page guards on the API for each role"""

    MATRIX = [
        # (role, url, expected status)
        ('vendedor', '/api/v1/quotes/', status.HTTP_200_OK),
        ('vendedor', '/api/v1/clients/', status.HTTP_200_OK),
        ('vendedor', '/api/v1/delivery-routes/', status.HTTP_403_FORBIDDEN),
        ('vendedor', '/api/v1/financial-transactions/', status.HTTP_403_FORBIDDEN),
        ('vendedor', '/api/v1/users/', status.HTTP_403_FORBIDDEN),
        ('producao', '/api/v1/delivery-routes/', status.HTTP_200_OK),
        ('producao', '/api/v1/production-employees/', status.HTTP_200_OK),
        ('producao', '/api/v1/quotes/', status.HTTP_403_FORBIDDEN),
        ('producao', '/api/v1/invoices/', status.HTTP_403_FORBIDDEN),
        ('aux_administrativo', '/api/v1/financial-transactions/', status.HTTP_200_OK),
        ('aux_administrativo', '/api/v1/invoices/', status.HTTP_200_OK),
        ('aux_administrativo', '/api/v1/stock-items/', status.HTTP_403_FORBIDDEN),
        ('admin', '/api/v1/users/', status.HTTP_200_OK),
        ('admin', '/api/v1/financial-transactions/', status.HTTP_200_OK),
    ]

    def test_matrix(self):
        for role, url, expected in self.MATRIX:
            with self.subTest(role=role, url=url):
                user = TestDataFactory.create_user(role=role)
                client = AuthenticatedAPIClient().authenticate_user(user)
                response = client.get(url)
                self.assertEqual(response.status_code, expected)

    def test_unauthenticated_is_rejected(self):
        response = APIClient().get('/api/v1/quotes/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class UserAdminTests(TestCase):
    """User management endpoints (admin only)"""

    def setUp(self):
        self.admin = TestDataFactory.create_user(role='admin', email='admin@test.com')
        self.client = AuthenticatedAPIClient().authenticate_user(self.admin)
        self.seller = TestDataFactory.create_user(role='vendedor', email='seller@test.com')

    def test_create_user(self):
        data = {'email': 'prod@test.com', 'name': 'Prod', 'password': 'Granito#2030', 'role': 'producao'}
        response = self.client.post('/api/v1/users/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['role'], 'producao')
        self.assertTrue(User.objects.get(email='prod@test.com').check_password('Granito#2030'))

    def test_list_filter_by_role(self):
        response = self.client.get('/api/v1/users/?role=vendedor')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([user['email'] for user in response.data], ['seller@test.com'])

    def test_toggle_status(self):
        response = self.client.patch(f'/api/v1/users/{self.seller.id}/toggle-status/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.data['is_active'])
        response = self.client.patch(f'/api/v1/users/{self.seller.id}/toggle-status/')
        self.assertTrue(response.data['is_active'])

    def test_cannot_deactivate_self(self):
        response = self.client.patch(f'/api/v1/users/{self.admin.id}/toggle-status/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_cannot_delete_self(self):
        response = self.client.delete(f'/api/v1/users/{self.admin.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_delete_user(self):
        response = self.client.delete(f'/api/v1/users/{self.seller.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(User.objects.filter(pk=self.seller.pk).exists())

    def test_set_permissions(self):
        response = self.client.put(
            f'/api/v1/users/{self.seller.id}/permissions/', {'custom_permissions': ['finance', 'crm']}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['permissions'], ['finance', 'crm'])

    def test_set_unknown_permission(self):
        response = self.client.put(
            f'/api/v1/users/{self.seller.id}/permissions/', {'custom_permissions': ['nuclear']}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_non_admin_cannot_manage_users(self):
        client = AuthenticatedAPIClient().authenticate_user(self.seller)
        response = client.patch(f'/api/v1/users/{self.admin.id}/toggle-status/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class ActivityLogTests(TestCase):
    """Activity log helper and endpoints"""

    def setUp(self):
        self.admin = TestDataFactory.create_user(role='admin')
        self.seller = TestDataFactory.create_user(role='vendedor')

    def test_create_activity_log_with_user(self):
        log = create_activity_log(action='create', model_name='Quote', object_id=10, user=self.admin, object_name='ORC-1')
        self.assertIsNotNone(log)
        self.assertEqual(log.object_id, '10')
        self.assertEqual(log.user, self.admin)

    def test_create_activity_log_skips_missing_fields(self):
        self.assertIsNone(create_activity_log(action='create', model_name='Quote', object_id=None, user=self.admin))
        self.assertEqual(ActivityLog.objects.count(), 0)

    def test_non_admin_sees_own_logs_only(self):
        create_activity_log(action='create', model_name='Quote', object_id=1, user=self.admin)
        create_activity_log(action='update', model_name='Quote', object_id=1, user=self.seller)
        client = AuthenticatedAPIClient().authenticate_user(self.seller)
        response = client.get('/api/v1/activity-logs/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['action'], 'update')

    def test_admin_filters_by_action(self):
        create_activity_log(action='create', model_name='Quote', object_id=1, user=self.admin)
        create_activity_log(action='update', model_name='Quote', object_id=1, user=self.seller)
        client = AuthenticatedAPIClient().authenticate_user(self.admin)
        response = client.get('/api/v1/activity-logs/?action=create')
        self.assertEqual(response.data['count'], 1)

    def test_detail_of_other_user_forbidden(self):
        log = create_activity_log(action='create', model_name='Quote', object_id=1, user=self.admin)
        client = AuthenticatedAPIClient().authenticate_user(self.seller)
        response = client.get(f'/api/v1/activity-logs/{log.id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class UtilsTests(TestCase):

    def test_generate_code_format(self):
        code = generate_code('ORC', Quote)
        prefix, day, clock, suffix = code.split('-')
        self.assertEqual(prefix, 'ORC')
        self.assertEqual(len(day), 8)
        self.assertEqual(len(clock), 6)
        self.assertEqual(len(suffix), 3)

    def test_generate_code_falls_back_to_milliseconds(self):
        fixed = datetime(2030, 1, 10, 8, 0, 0, 123456)
        quote = TestDataFactory.create_quote()
        Quote.objects.filter(pk=quote.pk).update(code='ORC-20300110-080000-007')
        with mock.patch('django.utils.timezone.localtime', return_value=fixed), \
                mock.patch('random.randint', return_value=7):
            code = generate_code('ORC', Quote, max_retries=2)
        self.assertEqual(code, 'ORC-20300110-080000123-0007')


class InstalledAppsTests(TestCase):
    """Every local app loads its models"""

    LOCAL_APPS = ['core', 'parties', 'sales', 'inventory', 'production', 'logistics', 'finance', 'reports', 'assets']

    def test_local_apps_are_registered(self):
        for label in self.LOCAL_APPS:
            with self.subTest(app=label):
                config = apps.get_app_config(label)
                self.assertTrue(config.name.startswith('backend.'))
                list(config.get_models())

    def test_service_order_production_choices(self):
        from backend.production.models import ServiceOrder
        values = [value for value, _ in ServiceOrder.PRODUCTION_STATUS_CHOICES]
        self.assertEqual(values, ServiceOrder.PRODUCTION_STATUSES)
        self.assertEqual(ServiceOrder._meta.get_field('production_status').choices, ServiceOrder.PRODUCTION_STATUS_CHOICES)


class CheckCacheCommandTests(TestCase):

    def setUp(self):
        cache.clear()

    def test_reports_working_cache(self):
        out = StringIO()
        call_command('check_cache', stdout=out)
        output = out.getvalue()
        self.assertIn('Cache SET/GET: OK', output)
        self.assertIn('Cache DELETE: OK', output)
        self.assertIn('Pattern invalidation: OK', output)
        self.assertNotIn('Cache error', output)


class GlobalSearchTests(TestCase):

    def setUp(self):
        self.user = TestDataFactory.create_user(role='admin')
        self.client = AuthenticatedAPIClient().authenticate_user(self.user)

    def test_empty_query(self):
        response = self.client.get('/api/v1/search/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['clients'], [])

    def test_finds_client_and_vehicle(self):
        TestDataFactory.create_client(name='Marmoraria Silva')
        TestDataFactory.create_vehicle(name='Silva truck')
        response = self.client.get('/api/v1/search/?q=silva')
        self.assertEqual(len(response.data['clients']), 1)
        self.assertEqual(len(response.data['vehicles']), 1)
