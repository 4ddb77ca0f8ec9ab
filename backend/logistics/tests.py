"""
Test suite for the logistics module
Tests: interval overlap detection, derived logistics status, route scheduling API, vehicles
"""
from datetime import timedelta
from django.test import TestCase
from rest_framework import status
from rest_framework.exceptions import ValidationError
from backend.core.models import ActivityLog
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.logistics.models import DeliveryRoute, Vehicle
from backend.logistics.scheduling import (
    SchedulingConflict, available_employees, available_vehicles, ensure_resources_available,
    find_employee_conflicts, find_vehicle_conflicts, is_employee_available, is_vehicle_available,
)
from backend.logistics.status import apply_derived_status, calculate_derived_status

aware = TestDataFactory.aware


class VehicleConflictTests(TestCase):
    """A vehicle booked over [08:00, 10:00)"""

    def setUp(self):
        self.vehicle = TestDataFactory.create_vehicle()
        self.route = TestDataFactory.create_route(
            vehicle=self.vehicle, start=aware(2030, 1, 10, 8), end=aware(2030, 1, 10, 10)
        )

    def conflicts(self, start_hour, end_hour, exclude_route=None):
        return list(find_vehicle_conflicts(
            self.vehicle, aware(2030, 1, 10, start_hour), aware(2030, 1, 10, end_hour), exclude_route
        ))

    def test_partial_overlap(self):
        self.assertEqual(self.conflicts(9, 11), [self.route])
        self.assertEqual(self.conflicts(7, 9), [self.route])

    def test_containment(self):
        self.assertEqual(self.conflicts(7, 11), [self.route])
        self.assertEqual(len(find_vehicle_conflicts(
            self.vehicle, aware(2030, 1, 10, 8, 30), aware(2030, 1, 10, 9, 30)
        )), 1)

    def test_identical_interval(self):
        self.assertEqual(self.conflicts(8, 10), [self.route])

    def test_touching_intervals_do_not_conflict(self):
        self.assertEqual(self.conflicts(10, 12), [])
        self.assertEqual(self.conflicts(6, 8), [])

    def test_disjoint(self):
        self.assertEqual(self.conflicts(13, 15), [])

    def test_self_exclusion(self):
        self.assertEqual(self.conflicts(8, 10, exclude_route=self.route), [])
        self.assertEqual(self.conflicts(8, 10, exclude_route=self.route.id), [])

    def test_finished_routes_still_block(self):
        for finished in ('completed', 'cancelled'):
            with self.subTest(status=finished):
                DeliveryRoute.objects.filter(pk=self.route.pk).update(status=finished)
                self.assertEqual(self.conflicts(8, 10), [self.route])
                self.assertEqual(self.conflicts(10, 12), [])

    def test_in_progress_route_blocks(self):
        DeliveryRoute.objects.filter(pk=self.route.pk).update(status='in_progress')
        self.assertEqual(self.conflicts(9, 10), [self.route])

    def test_other_vehicle_is_free(self):
        other = TestDataFactory.create_vehicle()
        self.assertTrue(is_vehicle_available(other, aware(2030, 1, 10, 8), aware(2030, 1, 10, 10)))
        self.assertFalse(is_vehicle_available(self.vehicle, aware(2030, 1, 10, 8), aware(2030, 1, 10, 10)))

    def test_invalid_interval(self):
        with self.assertRaises(ValidationError):
            self.conflicts(10, 10)
        with self.assertRaises(ValidationError):
            self.conflicts(11, 9)

    def test_available_vehicles_skips_maintenance(self):
        free = TestDataFactory.create_vehicle()
        TestDataFactory.create_vehicle(status='em_manutencao')
        vehicles = list(available_vehicles(aware(2030, 1, 10, 9), aware(2030, 1, 10, 11)))
        self.assertEqual(vehicles, [free])


class EmployeeConflictTests(TestCase):

    def setUp(self):
        self.busy = TestDataFactory.create_employee(name='Busy')
        self.free = TestDataFactory.create_employee(name='Free')
        self.route = TestDataFactory.create_route(
            start=aware(2030, 1, 10, 8), end=aware(2030, 1, 10, 12), team=[self.busy],
            route_type='installation'
        )

    def test_employee_conflict(self):
        start, end = aware(2030, 1, 10, 11), aware(2030, 1, 10, 13)
        self.assertEqual(list(find_employee_conflicts([self.busy, self.free], start, end)), [self.route])
        self.assertFalse(is_employee_available(self.busy, start, end))
        self.assertTrue(is_employee_available(self.free, start, end))
        self.assertFalse(self.busy.is_available_in_period(start, end))

    def test_touching_interval(self):
        self.assertTrue(is_employee_available(self.busy, aware(2030, 1, 10, 12), aware(2030, 1, 10, 14)))

    def test_cancelled_route_keeps_team_busy(self):
        DeliveryRoute.objects.filter(pk=self.route.pk).update(status='cancelled')
        self.assertFalse(is_employee_available(self.busy, aware(2030, 1, 10, 9), aware(2030, 1, 10, 10)))

    def test_available_employees(self):
        TestDataFactory.create_employee(name='On leave', availability='on_leave')
        TestDataFactory.create_employee(name='Gone', active=False)
        TestDataFactory.create_employee(name='Driver', role='driver')
        start, end = aware(2030, 1, 10, 9), aware(2030, 1, 10, 10)
        names = sorted(employee.name for employee in available_employees(start, end))
        self.assertEqual(names, ['Driver', 'Free'])
        names = [employee.name for employee in available_employees(start, end, role='driver')]
        self.assertEqual(names, ['Driver'])

    def test_ensure_resources_reports_busy_employees(self):
        with self.assertRaises(SchedulingConflict) as ctx:
            ensure_resources_available(None, [self.busy, self.free], aware(2030, 1, 10, 9), aware(2030, 1, 10, 10))
        data = ctx.exception.as_response_data()
        self.assertEqual(data['conflicts']['employees'], [self.busy.id])
        self.assertEqual(data['conflicts']['employee_routes'], [self.route.id])
        self.assertEqual(data['conflicts']['vehicle_routes'], [])

    def test_ensure_resources_passes_when_free(self):
        ensure_resources_available(None, [self.free], aware(2030, 1, 10, 9), aware(2030, 1, 10, 10))


class DerivedStatusTests(TestCase):
    """Precedence of the logistics status derived from route statuses"""

    TABLE = [
        ([], None),
        (['cancelled'], 'awaiting_scheduling'),
        (['cancelled', 'cancelled'], 'awaiting_scheduling'),
        (['completed'], 'completed'),
        (['completed', 'cancelled'], None),
        (['in_progress', 'cancelled'], 'in_transit'),
        (['completed', 'in_progress'], 'in_transit'),
        (['scheduled', 'in_progress'], 'in_transit'),
        (['scheduled', 'completed'], 'scheduled'),
        (['scheduled', 'cancelled'], 'scheduled'),
        (['scheduled'], 'scheduled'),
        (['unknown'], None),
    ]

    def test_precedence_table(self):
        for statuses, expected in self.TABLE:
            with self.subTest(statuses=statuses):
                self.assertEqual(calculate_derived_status(statuses), expected)

    def test_apply_persists_and_mirrors(self):
        service_order = TestDataFactory.create_service_order(status='ready_for_logistics')
        TestDataFactory.create_route(service_order=service_order)
        self.assertEqual(apply_derived_status(service_order), 'scheduled')
        service_order.refresh_from_db()
        self.assertEqual(service_order.logistics_status, 'scheduled')
        self.assertEqual(service_order.status, 'scheduled')
        self.assertEqual(service_order.history[-1]['status'], 'scheduled')

    def test_apply_completed_finalizes(self):
        service_order = TestDataFactory.create_service_order(status='in_transit')
        TestDataFactory.create_route(service_order=service_order, status='completed')
        apply_derived_status(service_order)
        service_order.refresh_from_db()
        self.assertEqual(service_order.status, 'completed')
        self.assertTrue(service_order.is_finalized)

    def test_exception_status_is_kept(self):
        service_order = TestDataFactory.create_service_order(status='delivery_issue')
        TestDataFactory.create_route(service_order=service_order, status='in_progress')
        apply_derived_status(service_order)
        service_order.refresh_from_db()
        self.assertEqual(service_order.logistics_status, 'in_transit')
        self.assertEqual(service_order.status, 'delivery_issue')

    def test_no_routes_resets_route_driven_status(self):
        service_order = TestDataFactory.create_service_order(status='scheduled')
        service_order.logistics_status = 'scheduled'
        service_order.save()
        self.assertEqual(apply_derived_status(service_order), 'awaiting_scheduling')
        service_order.refresh_from_db()
        self.assertEqual(service_order.logistics_status, 'awaiting_scheduling')
        self.assertEqual(service_order.status, 'ready_for_logistics')

    def test_no_routes_keeps_manual_status(self):
        service_order = TestDataFactory.create_service_order()
        service_order.logistics_status = 'picked_up'
        service_order.save()
        self.assertEqual(apply_derived_status(service_order), 'picked_up')

    def test_unresolved_mix_keeps_current_status(self):
        service_order = TestDataFactory.create_service_order(status='in_transit')
        service_order.logistics_status = 'in_transit'
        service_order.save()
        TestDataFactory.create_route(service_order=service_order, status='completed')
        TestDataFactory.create_route(
            service_order=service_order, status='cancelled',
            start=aware(2030, 1, 11, 8), end=aware(2030, 1, 11, 10)
        )
        self.assertEqual(apply_derived_status(service_order), 'in_transit')
        service_order.refresh_from_db()
        self.assertEqual(service_order.status, 'in_transit')
        self.assertFalse(service_order.is_finalized)


class DeliveryRouteAPITests(TestCase):

    def setUp(self):
        self.user = TestDataFactory.create_user(role='producao')
        self.client = AuthenticatedAPIClient().authenticate_user(self.user)
        self.vehicle = TestDataFactory.create_vehicle()
        self.service_order = TestDataFactory.create_service_order()
        self.driver = TestDataFactory.create_employee(role='driver')

    def payload(self, start='2030-01-10T08:00:00-03:00', end='2030-01-10T10:00:00-03:00', **overrides):
        data = {
            'vehicle': self.vehicle.id,
            'service_order': self.service_order.code,
            'start': start,
            'end': end,
            'team': [self.driver.id],
        }
        data.update(overrides)
        return data

    def test_create_route_updates_service_order(self):
        response = self.client.post('/api/v1/delivery-routes/', self.payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], 'scheduled')
        self.assertEqual(response.data['team_names'], [self.driver.name])
        self.service_order.refresh_from_db()
        self.assertEqual(self.service_order.logistics_status, 'scheduled')
        self.assertEqual(self.service_order.status, 'scheduled')
        self.assertTrue(ActivityLog.objects.filter(model_name='DeliveryRoute', action='create').exists())

    def test_vehicle_double_booking(self):
        self.client.post('/api/v1/delivery-routes/', self.payload(), format='json')
        other = TestDataFactory.create_service_order()
        response = self.client.post(
            '/api/v1/delivery-routes/',
            self.payload(start='2030-01-10T09:00:00-03:00', end='2030-01-10T11:00:00-03:00',
                         service_order=other.code, team=[]),
            format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(len(response.data['conflicts']['vehicle_routes']), 1)
        self.assertEqual(DeliveryRoute.objects.count(), 1)

    def test_back_to_back_booking_allowed(self):
        self.client.post('/api/v1/delivery-routes/', self.payload(), format='json')
        response = self.client.post(
            '/api/v1/delivery-routes/',
            self.payload(start='2030-01-10T10:00:00-03:00', end='2030-01-10T12:00:00-03:00'),
            format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

    def test_team_double_booking(self):
        self.client.post('/api/v1/delivery-routes/', self.payload(), format='json')
        other_vehicle = TestDataFactory.create_vehicle()
        response = self.client.post(
            '/api/v1/delivery-routes/', self.payload(vehicle=other_vehicle.id), format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['conflicts']['employees'], [self.driver.id])

    def test_unknown_vehicle(self):
        response = self.client.post('/api/v1/delivery-routes/', self.payload(vehicle=99999), format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_missing_fields(self):
        data = self.payload()
        del data['vehicle']
        response = self.client.post('/api/v1/delivery-routes/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_end_before_start(self):
        response = self.client.post(
            '/api/v1/delivery-routes/',
            self.payload(start='2030-01-10T10:00:00-03:00', end='2030-01-10T10:00:00-03:00'),
            format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_vehicle_in_maintenance(self):
        broken = TestDataFactory.create_vehicle(status='em_manutencao')
        response = self.client.post('/api/v1/delivery-routes/', self.payload(vehicle=broken.id), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_cancelled_service_order(self):
        cancelled = TestDataFactory.create_service_order(status='cancelled')
        response = self.client.post(
            '/api/v1/delivery-routes/', self.payload(service_order=cancelled.code), format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_installation_requires_team(self):
        data = {
            'service_order': self.service_order.code,
            'start': '2030-01-11T08:00:00-03:00',
            'end': '2030-01-11T17:00:00-03:00',
        }
        response = self.client.post('/api/v1/delivery-routes/installation/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        data['team'] = [self.driver.id]
        response = self.client.post('/api/v1/delivery-routes/installation/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['type'], 'installation')
        self.assertIsNone(response.data['vehicle'])

    def test_installation_team_conflict(self):
        self.client.post('/api/v1/delivery-routes/', self.payload(), format='json')
        data = {
            'service_order': self.service_order.code,
            'start': '2030-01-10T09:00:00-03:00',
            'end': '2030-01-10T17:00:00-03:00',
            'team': [self.driver.id],
        }
        response = self.client.post('/api/v1/delivery-routes/installation/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

    def test_reschedule_excludes_itself(self):
        created = self.client.post('/api/v1/delivery-routes/', self.payload(), format='json')
        response = self.client.patch(
            f"/api/v1/delivery-routes/{created.data['id']}/", {'end': '2030-01-10T11:00:00-03:00'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_reschedule_into_conflict(self):
        self.client.post('/api/v1/delivery-routes/', self.payload(), format='json')
        other = TestDataFactory.create_service_order()
        created = self.client.post(
            '/api/v1/delivery-routes/',
            self.payload(start='2030-01-10T12:00:00-03:00', end='2030-01-10T14:00:00-03:00',
                         service_order=other.code, team=[]),
            format='json'
        )
        response = self.client.patch(
            f"/api/v1/delivery-routes/{created.data['id']}/", {'start': '2030-01-10T09:30:00-03:00'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

    def test_status_flow(self):
        created = self.client.post('/api/v1/delivery-routes/', self.payload(), format='json')
        url = f"/api/v1/delivery-routes/{created.data['id']}/status/"

        response = self.client.patch(url, {'status': 'in_progress'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIsNotNone(response.data['actual_start'])
        self.driver.refresh_from_db()
        self.assertEqual(self.driver.availability, 'on_task')
        self.assertEqual(self.driver.current_task_id, str(created.data['id']))
        self.service_order.refresh_from_db()
        self.assertEqual(self.service_order.logistics_status, 'in_transit')

        response = self.client.patch(url, {'status': 'completed'}, format='json')
        self.assertIsNotNone(response.data['actual_end'])
        self.driver.refresh_from_db()
        self.assertEqual(self.driver.availability, 'available')
        self.service_order.refresh_from_db()
        self.assertEqual(self.service_order.logistics_status, 'completed')
        self.assertTrue(self.service_order.is_finalized)

    def test_cancelled_route_keeps_its_slot(self):
        created = self.client.post('/api/v1/delivery-routes/', self.payload(), format='json')
        response = self.client.patch(
            f"/api/v1/delivery-routes/{created.data['id']}/status/", {'status': 'cancelled'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.driver.refresh_from_db()
        self.assertEqual(self.driver.availability, 'available')
        self.service_order.refresh_from_db()
        self.assertEqual(self.service_order.logistics_status, 'awaiting_scheduling')

        response = self.client.post('/api/v1/delivery-routes/', self.payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

        self.client.delete(f"/api/v1/delivery-routes/{created.data['id']}/")
        response = self.client.post('/api/v1/delivery-routes/', self.payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

    def test_delete_route_recalculates(self):
        created = self.client.post('/api/v1/delivery-routes/', self.payload(), format='json')
        response = self.client.delete(f"/api/v1/delivery-routes/{created.data['id']}/")
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.service_order.refresh_from_db()
        self.assertEqual(self.service_order.logistics_status, 'awaiting_scheduling')
        self.assertEqual(self.service_order.status, 'ready_for_logistics')

    def test_list_window_filter(self):
        TestDataFactory.create_route(vehicle=self.vehicle, start=aware(2030, 1, 10, 8), end=aware(2030, 1, 10, 10))
        TestDataFactory.create_route(vehicle=self.vehicle, start=aware(2030, 1, 12, 8), end=aware(2030, 1, 12, 10))
        response = self.client.get('/api/v1/delivery-routes/', {
            'start': aware(2030, 1, 10, 9).isoformat(),
            'end': aware(2030, 1, 11, 0).isoformat(),
        })
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)
        response = self.client.get('/api/v1/delivery-routes/', {'vehicle': self.vehicle.id})
        self.assertEqual(len(response.data), 2)

    def test_availability_check(self):
        created = self.client.post('/api/v1/delivery-routes/', self.payload(), format='json')
        params = {
            'vehicle': self.vehicle.id,
            'start': aware(2030, 1, 10, 9).isoformat(),
            'end': aware(2030, 1, 10, 11).isoformat(),
        }
        response = self.client.get('/api/v1/delivery-routes/availability/check/', params)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.data['available'])

        params['route'] = created.data['id']
        response = self.client.get('/api/v1/delivery-routes/availability/check/', params)
        self.assertTrue(response.data['available'])

    def test_availability_check_rejects_non_numeric_ids(self):
        params = {
            'vehicle': self.vehicle.id,
            'start': aware(2030, 1, 10, 9).isoformat(),
            'end': aware(2030, 1, 10, 11).isoformat(),
            'route': 'abc',
        }
        response = self.client.get('/api/v1/delivery-routes/availability/check/', params)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('route', response.data)

        params.update(vehicle='abc', route='')
        response = self.client.get('/api/v1/delivery-routes/availability/check/', params)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.get(
            '/api/v1/delivery-routes/resources/availability/',
            {'type': 'vehicle', 'start': params['start'], 'end': params['end'], 'route': 'abc'}
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_availability_check_invalid_interval(self):
        params = {
            'vehicle': self.vehicle.id,
            'start': aware(2030, 1, 10, 11).isoformat(),
            'end': aware(2030, 1, 10, 9).isoformat(),
        }
        response = self.client.get('/api/v1/delivery-routes/availability/check/', params)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_resources_availability(self):
        self.client.post('/api/v1/delivery-routes/', self.payload(), format='json')
        free_vehicle = TestDataFactory.create_vehicle()
        free_employee = TestDataFactory.create_employee()
        params = {'start': aware(2030, 1, 10, 9).isoformat(), 'end': aware(2030, 1, 10, 11).isoformat()}

        response = self.client.get('/api/v1/delivery-routes/resources/availability/', dict(params, type='vehicle'))
        self.assertEqual([row['id'] for row in response.data['results']], [free_vehicle.id])

        response = self.client.get('/api/v1/delivery-routes/resources/availability/', dict(params, type='employee'))
        self.assertEqual([row['id'] for row in response.data['results']], [free_employee.id])


class VehicleAPITests(TestCase):

    def setUp(self):
        self.admin = TestDataFactory.create_user(role='admin')
        self.client = AuthenticatedAPIClient().authenticate_user(self.admin)

    def test_create_uppercases_plate(self):
        response = self.client.post(
            '/api/v1/vehicles/', {'name': 'Iveco', 'license_plate': 'abc1d23', 'capacity': 3000, 'type': 'caminhao'},
            format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['license_plate'], 'ABC1D23')

    def test_duplicate_plate(self):
        TestDataFactory.create_vehicle(license_plate='ABC1D23')
        response = self.client.post('/api/v1/vehicles/', {'name': 'Other', 'license_plate': 'abc1d23'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_non_admin_cannot_create(self):
        user = TestDataFactory.create_user(role='producao')
        client = AuthenticatedAPIClient().authenticate_user(user)
        response = client.post('/api/v1/vehicles/', {'name': 'Van', 'license_plate': 'XYZ1234'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(client.get('/api/v1/vehicles/').status_code, status.HTTP_200_OK)

    def test_cannot_delete_vehicle_with_scheduled_routes(self):
        vehicle = TestDataFactory.create_vehicle()
        TestDataFactory.create_route(vehicle=vehicle)
        response = self.client.delete(f'/api/v1/vehicles/{vehicle.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_delete_vehicle_with_finished_routes(self):
        vehicle = TestDataFactory.create_vehicle()
        route = TestDataFactory.create_route(vehicle=vehicle, status='completed')
        response = self.client.delete(f'/api/v1/vehicles/{vehicle.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Vehicle.objects.filter(pk=vehicle.pk).exists())
        route.refresh_from_db()
        self.assertIsNone(route.vehicle)


class ChecklistTemplateTests(TestCase):

    def setUp(self):
        self.user = TestDataFactory.create_user(role='producao')
        self.client = AuthenticatedAPIClient().authenticate_user(self.user)

    def test_create_template(self):
        data = {'name': 'Saída padrão', 'type': 'entrega', 'items': [{'text': 'Cintas'}, {'text': 'Cavaletes'}]}
        response = self.client.post('/api/v1/checklist-templates/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(all(item['id'] for item in response.data['items']))

    def test_empty_items_rejected(self):
        data = {'name': 'Vazio', 'type': 'montagem', 'items': []}
        response = self.client.post('/api/v1/checklist-templates/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
