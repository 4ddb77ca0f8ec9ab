"""
Double-booking checks for vehicles and team members.

A booking occupies its resources over the half-open interval [start, end).
Two bookings overlap when stored.start < queried.end and stored.end > queried.start,
so back-to-back routes sharing an endpoint do not conflict. Every stored route
holds its resources whatever its status; only the route being edited is excluded.
"""
import logging
from datetime import datetime, time

from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime
from rest_framework import status
from rest_framework.exceptions import APIException, ValidationError

from backend.production.models import ProductionEmployee
from .models import DeliveryRoute, Vehicle

logger = logging.getLogger('backend.logistics')


class SchedulingConflict(APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Resource already booked for this period.'
    default_code = 'scheduling_conflict'

    def __init__(self, detail=None, vehicle_routes=None, employee_ids=None, employee_routes=None):
        self.vehicle_routes = list(vehicle_routes or [])
        self.employee_ids = list(employee_ids or [])
        self.employee_routes = list(employee_routes or [])
        super().__init__(detail or self.default_detail)

    def as_response_data(self):
        return {
            'error': str(self.detail),
            'conflicts': {
                'vehicle_routes': self.vehicle_routes,
                'employees': self.employee_ids,
                'employee_routes': self.employee_routes,
            },
        }


def parse_datetime_param(value, name):
    """Parse an ISO datetime (or date) query value into an aware datetime"""
    if value in (None, ''):
        raise ValidationError({name: 'This parameter is required.'})
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = parse_datetime(str(value))
        if parsed is None:
            day = parse_date(str(value))
            if day is None:
                raise ValidationError({name: f'Invalid date: {value}'})
            parsed = datetime.combine(day, time.min)
    if timezone.is_naive(parsed):
        parsed = timezone.make_aware(parsed)
    return parsed


def validate_interval(start, end):
    if start is None or end is None:
        raise ValidationError({'error': 'start and end are required'})
    if start >= end:
        raise ValidationError({'error': 'end must be after start'})


def _route_pk(route):
    return getattr(route, 'pk', route)


def overlapping_routes(start, end, exclude_route=None):
    """Routes whose [start, end) intersects the given interval"""
    validate_interval(start, end)
    queryset = DeliveryRoute.objects.filter(
        start__lt=end,
        end__gt=start,
    )
    if exclude_route is not None:
        queryset = queryset.exclude(pk=_route_pk(exclude_route))
    return queryset


def find_vehicle_conflicts(vehicle, start, end, exclude_route=None):
    if vehicle is None:
        return DeliveryRoute.objects.none()
    return overlapping_routes(start, end, exclude_route).filter(vehicle=vehicle)


def find_employee_conflicts(employees, start, end, exclude_route=None):
    employee_ids = [getattr(employee, 'pk', employee) for employee in employees or []]
    if not employee_ids:
        return DeliveryRoute.objects.none()
    return overlapping_routes(start, end, exclude_route).filter(team__in=employee_ids).distinct()


def busy_employee_ids(employees, start, end, exclude_route=None):
    """Ids of the given employees that already sit on an overlapping route"""
    employee_ids = {getattr(employee, 'pk', employee) for employee in employees or []}
    if not employee_ids:
        return set()
    busy = overlapping_routes(start, end, exclude_route).filter(
        team__in=employee_ids
    ).values_list('team__id', flat=True)
    return set(busy) & employee_ids


def is_vehicle_available(vehicle, start, end, exclude_route=None):
    return not find_vehicle_conflicts(vehicle, start, end, exclude_route).exists()


def is_employee_available(employee, start, end, exclude_route=None):
    return not find_employee_conflicts([employee], start, end, exclude_route).exists()


def available_vehicles(start, end, exclude_route=None):
    """Vehicles not in maintenance and free over the interval"""
    busy = overlapping_routes(start, end, exclude_route).filter(
        vehicle__isnull=False
    ).values_list('vehicle_id', flat=True)
    return Vehicle.objects.exclude(status='em_manutencao').exclude(pk__in=busy)


def available_employees(start, end, role=None, exclude_route=None):
    """Active employees, not on leave, free over the interval"""
    queryset = ProductionEmployee.objects.filter(active=True).exclude(availability='on_leave')
    if role:
        queryset = queryset.filter(role=role)
    busy = overlapping_routes(start, end, exclude_route).filter(
        team__isnull=False
    ).values_list('team__id', flat=True)
    return queryset.exclude(pk__in=busy)


def ensure_resources_available(vehicle, employees, start, end, exclude_route=None):
    """Raise SchedulingConflict if the vehicle or any team member is already booked"""
    validate_interval(start, end)
    vehicle_routes = list(
        find_vehicle_conflicts(vehicle, start, end, exclude_route).values_list('id', flat=True)
    )
    employee_routes = list(
        find_employee_conflicts(employees, start, end, exclude_route).values_list('id', flat=True)
    )
    if not vehicle_routes and not employee_routes:
        return

    busy_ids = sorted(busy_employee_ids(employees, start, end, exclude_route))
    if vehicle_routes:
        message = 'Vehicle is already booked for this period.'
    else:
        message = 'One or more team members are already booked for this period.'
    logger.warning(
        f"Scheduling conflict for [{start.isoformat()}, {end.isoformat()}): "
        f"vehicle routes {vehicle_routes}, busy employees {busy_ids}"
    )
    raise SchedulingConflict(
        message,
        vehicle_routes=vehicle_routes,
        employee_ids=busy_ids,
        employee_routes=employee_routes,
    )
