import logging
from datetime import datetime, time, timedelta
from decimal import Decimal

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.db.models import Count, Q
from django.utils import timezone

from backend.core.cache_utils import (
    get_cached_dashboard_kpis, cache_dashboard_kpis, cached_query, DASHBOARD_KPI_CACHE_TTL, REPORTS_CACHE_TTL,
)
from backend.core.permissions import page_permission
from backend.finance.models import FinancialTransaction
from backend.finance.views import transactions_summary
from backend.inventory.models import StockItem
from backend.logistics.models import DeliveryRoute
from backend.logistics.serializers import DeliveryRouteSerializer
from backend.production.models import ServiceOrder, ProductionEmployee
from backend.sales.models import Quote, Order

logger = logging.getLogger('backend.reports')


def _parse_date(value, name):
    try:
        return datetime.strptime(value, '%Y-%m-%d').date()
    except (TypeError, ValueError):
        raise ValueError(f'{name} must be a date in YYYY-MM-DD format')


def _day_bounds(day):
    start = timezone.make_aware(datetime.combine(day, time.min))
    return start, start + timedelta(days=1)


def _counts_by_status(queryset):
    return {row['status']: row['count'] for row in queryset.values('status').annotate(count=Count('id')).order_by()}


@api_view(['GET'])
@permission_classes([IsAuthenticated, page_permission('dashboard')])
def dashboard(request):
    """Counts by status, today's routes and open finance totals"""
    today = timezone.localdate()

    try:
        cached_data, cache_key = get_cached_dashboard_kpis(today)
        if cached_data:
            logger.info(f"Dashboard cache HIT (user: {request.user.email})")
            response = Response(cached_data)
            response['X-Cache'] = 'HIT'
            return response
        logger.info(f"Dashboard cache MISS (user: {request.user.email})")
    except Exception as e:
        logger.warning(f"Cache unavailable, proceeding without cache: {e}")
        cache_key = None

    day_start, day_end = _day_bounds(today)
    routes_today = DeliveryRoute.objects.filter(start__lt=day_end, end__gt=day_start).exclude(status='cancelled')
    finance = transactions_summary(FinancialTransaction.objects.all())

    response_data = {
        'date': today.isoformat(),
        'quotes': _counts_by_status(Quote.objects.all()),
        'orders': {
            'total': Order.objects.count(),
            'this_month': Order.objects.filter(
                created_at__year=today.year, created_at__month=today.month
            ).count(),
        },
        'service_orders': _counts_by_status(ServiceOrder.objects.all()),
        'service_orders_in_exception': ServiceOrder.objects.filter(status__in=ServiceOrder.EXCEPTION_STATUSES).count(),
        'routes_today': {
            'total': routes_today.count(),
            'in_progress': routes_today.filter(status='in_progress').count(),
            'completed': routes_today.filter(status='completed').count(),
        },
        'available_slabs': StockItem.objects.filter(status__in=StockItem.AVAILABLE_STATUSES).count(),
        'finance': {key: str(value) if isinstance(value, Decimal) else value for key, value in finance.items()},
    }

    if cache_key:
        try:
            cache_dashboard_kpis(cache_key, response_data, DASHBOARD_KPI_CACHE_TTL)
        except Exception as e:
            logger.warning(f"Unable to cache response: {e}")

    response = Response(response_data)
    response['X-Cache'] = 'MISS'
    return response


@api_view(['GET'])
@permission_classes([IsAuthenticated, page_permission('production', 'dashboard')])
def employee_productivity(request):
    """Service orders and routes handled by each employee over a period"""
    start_param = request.query_params.get('start_date', None)
    end_param = request.query_params.get('end_date', None)
    if not start_param or not end_param:
        return Response({'error': 'start_date and end_date are required'}, status=status.HTTP_400_BAD_REQUEST)
    try:
        start_date = _parse_date(start_param, 'start_date')
        end_date = _parse_date(end_param, 'end_date')
    except ValueError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
    if start_date > end_date:
        return Response({'error': 'start_date must not be after end_date'}, status=status.HTTP_400_BAD_REQUEST)

    role = request.query_params.get('role', None)
    return Response({
        'period': {'start_date': start_date.isoformat(), 'end_date': end_date.isoformat()},
        'results': _productivity_rows(start_date, end_date, role),
    })


@cached_query(cache_ttl=REPORTS_CACHE_TTL, key_prefix="reports_productivity")
def _productivity_rows(start_date, end_date, role=None):
    period_start, _ = _day_bounds(start_date)
    _, period_end = _day_bounds(end_date)

    employees = ProductionEmployee.objects.filter(active=True)
    if role:
        employees = employees.filter(role=role)

    in_period_orders = Q(service_orders__delivery_date__gte=period_start, service_orders__delivery_date__lt=period_end)
    in_period_routes = Q(delivery_routes__start__gte=period_start, delivery_routes__start__lt=period_end)
    employees = employees.annotate(
        assigned_orders=Count('service_orders', filter=in_period_orders, distinct=True),
        completed_orders=Count(
            'service_orders', filter=in_period_orders & Q(service_orders__status='completed'), distinct=True
        ),
        total_routes=Count('delivery_routes', filter=in_period_routes & ~Q(delivery_routes__status='cancelled'), distinct=True),
        completed_routes=Count(
            'delivery_routes', filter=in_period_routes & Q(delivery_routes__status='completed'), distinct=True
        ),
    )

    results = []
    for employee in employees:
        results.append({
            'employee_id': employee.id,
            'name': employee.name,
            'role': employee.role,
            'assigned_service_orders': employee.assigned_orders,
            'completed_service_orders': employee.completed_orders,
            'service_order_completion_rate': round(employee.completed_orders * 100 / employee.assigned_orders, 1) if employee.assigned_orders else 0,
            'total_routes': employee.total_routes,
            'completed_routes': employee.completed_routes,
            'route_completion_rate': round(employee.completed_routes * 100 / employee.total_routes, 1) if employee.total_routes else 0,
        })
    results.sort(key=lambda row: (-row['completed_routes'], row['name']))
    return results


@api_view(['GET'])
@permission_classes([IsAuthenticated, page_permission('logistics')])
def logistics_report(request):
    """Routes of one day grouped by vehicle"""
    date_param = request.query_params.get('date', None)
    if date_param:
        try:
            day = _parse_date(date_param, 'date')
        except ValueError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
    else:
        day = timezone.localdate()

    day_start, day_end = _day_bounds(day)
    day_routes = DeliveryRoute.objects.filter(start__lt=day_end, end__gt=day_start)
    routes = day_routes.select_related('vehicle', 'service_order').prefetch_related('team').order_by('start')

    groups = {}
    for route in routes:
        key = route.vehicle_id
        if key not in groups:
            vehicle = route.vehicle
            groups[key] = {
                'vehicle': {'id': vehicle.id, 'name': vehicle.name, 'license_plate': vehicle.license_plate} if vehicle else None,
                'routes': [],
            }
        groups[key]['routes'].append(DeliveryRouteSerializer(route).data)

    by_status = _counts_by_status(day_routes)
    return Response({
        'date': day.isoformat(),
        'total_routes': sum(by_status.values()),
        'by_status': by_status,
        'vehicles': list(groups.values()),
    })
