"""
Test suite for the reports module
Tests: dashboard counts and caching, employee productivity, daily logistics report
"""
from datetime import timedelta
from django.core.cache import cache
from django.test import TestCase
from django.utils import timezone
from rest_framework import status
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient

aware = TestDataFactory.aware


class DashboardTests(TestCase):

    def setUp(self):
        cache.clear()
        self.user = TestDataFactory.create_user(role='admin')
        self.client = AuthenticatedAPIClient().authenticate_user(self.user)

    def test_counts(self):
        customer = TestDataFactory.create_client()
        TestDataFactory.create_quote(client=customer, status='sent')
        TestDataFactory.create_quote(client=customer, status='sent')
        TestDataFactory.create_service_order(status='rework_needed')
        TestDataFactory.create_stock_item()
        TestDataFactory.create_stock_item(status='consumida')

        response = self.client.get('/api/v1/reports/dashboard/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['quotes']['sent'], 2)
        self.assertEqual(response.data['service_orders']['rework_needed'], 1)
        self.assertEqual(response.data['service_orders_in_exception'], 1)
        self.assertEqual(response.data['available_slabs'], 1)
        self.assertEqual(response.data['orders']['total'], 1)
        self.assertEqual(response.data['finance']['balance'], '0.00')

    def test_cache_hit_and_invalidation(self):
        first = self.client.get('/api/v1/reports/dashboard/')
        self.assertEqual(first['X-Cache'], 'MISS')
        second = self.client.get('/api/v1/reports/dashboard/')
        self.assertEqual(second['X-Cache'], 'HIT')

        TestDataFactory.create_quote(status='draft')
        third = self.client.get('/api/v1/reports/dashboard/')
        self.assertEqual(third['X-Cache'], 'MISS')
        self.assertEqual(third.data['quotes']['draft'], 1)

    def test_routes_today(self):
        now = timezone.now()
        TestDataFactory.create_route(start=now - timedelta(minutes=30), end=now + timedelta(minutes=30),
                                     status='in_progress')
        TestDataFactory.create_route(start=now + timedelta(days=3), end=now + timedelta(days=3, hours=2))
        response = self.client.get('/api/v1/reports/dashboard/')
        self.assertEqual(response.data['routes_today']['total'], 1)
        self.assertEqual(response.data['routes_today']['in_progress'], 1)

    def test_requires_dashboard_page(self):
        user = TestDataFactory.create_user(role='vendedor', custom_permissions=['quotes'])
        client = AuthenticatedAPIClient().authenticate_user(user)
        self.assertEqual(client.get('/api/v1/reports/dashboard/').status_code, status.HTTP_403_FORBIDDEN)


class EmployeeProductivityTests(TestCase):

    def setUp(self):
        cache.clear()
        self.user = TestDataFactory.create_user(role='producao')
        self.client = AuthenticatedAPIClient().authenticate_user(self.user)
        self.installer = TestDataFactory.create_employee(name='Ana')
        self.driver = TestDataFactory.create_employee(name='Bruno', role='driver')

        done = TestDataFactory.create_service_order(status='completed', delivery_date=aware(2030, 1, 10, 9))
        open_order = TestDataFactory.create_service_order(status='cutting', delivery_date=aware(2030, 1, 12, 9))
        outside = TestDataFactory.create_service_order(status='completed', delivery_date=aware(2030, 3, 1, 9))
        for service_order in (done, open_order, outside):
            service_order.assigned_to.add(self.installer)

        TestDataFactory.create_route(start=aware(2030, 1, 10, 8), team=[self.installer, self.driver], status='completed')
        TestDataFactory.create_route(start=aware(2030, 1, 11, 8), team=[self.driver])
        TestDataFactory.create_route(start=aware(2030, 1, 12, 8), team=[self.driver], status='cancelled')

    def get(self, **params):
        query = {'start_date': '2030-01-01', 'end_date': '2030-01-31'}
        query.update(params)
        return self.client.get('/api/v1/reports/employee-productivity/', query)

    def test_dates_required(self):
        response = self.client.get('/api/v1/reports/employee-productivity/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_invalid_dates(self):
        self.assertEqual(self.get(start_date='01/01/2030').status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(self.get(start_date='2030-02-01').status_code, status.HTTP_400_BAD_REQUEST)

    def test_counts_per_employee(self):
        response = self.get()
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        rows = {row['name']: row for row in response.data['results']}

        self.assertEqual(rows['Ana']['assigned_service_orders'], 2)
        self.assertEqual(rows['Ana']['completed_service_orders'], 1)
        self.assertEqual(rows['Ana']['service_order_completion_rate'], 50.0)
        self.assertEqual(rows['Ana']['total_routes'], 1)
        self.assertEqual(rows['Ana']['route_completion_rate'], 100.0)

        self.assertEqual(rows['Bruno']['total_routes'], 2)
        self.assertEqual(rows['Bruno']['completed_routes'], 1)
        self.assertEqual(rows['Bruno']['route_completion_rate'], 50.0)
        self.assertEqual(rows['Bruno']['service_order_completion_rate'], 0)

    def test_role_filter(self):
        response = self.get(role='driver')
        self.assertEqual([row['name'] for row in response.data['results']], ['Bruno'])


class LogisticsReportTests(TestCase):

    def setUp(self):
        self.user = TestDataFactory.create_user(role='producao')
        self.client = AuthenticatedAPIClient().authenticate_user(self.user)

    def test_routes_grouped_by_vehicle(self):
        van = TestDataFactory.create_vehicle(name='Van 1')
        truck = TestDataFactory.create_vehicle(name='Truck 1')
        TestDataFactory.create_route(vehicle=van, start=aware(2030, 1, 10, 8))
        TestDataFactory.create_route(vehicle=van, start=aware(2030, 1, 10, 13), status='completed')
        TestDataFactory.create_route(vehicle=truck, start=aware(2030, 1, 10, 9))
        TestDataFactory.create_route(vehicle=truck, start=aware(2030, 1, 11, 9))

        response = self.client.get('/api/v1/reports/logistics/', {'date': '2030-01-10'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_routes'], 3)
        self.assertEqual(response.data['by_status'], {'scheduled': 2, 'completed': 1})
        groups = {group['vehicle']['name']: len(group['routes']) for group in response.data['vehicles']}
        self.assertEqual(groups, {'Van 1': 2, 'Truck 1': 1})

    def test_invalid_date(self):
        response = self.client.get('/api/v1/reports/logistics/', {'date': 'tomorrow'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
