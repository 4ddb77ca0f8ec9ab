import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import ValidationError
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.db import transaction
from django.shortcuts import get_object_or_404
from django.utils import timezone
from backend.core.permissions import page_permission, is_admin_user
from backend.core.utils import create_activity_log
from backend.production.serializers import ProductionEmployeeSerializer
from .filters import DeliveryRouteFilter
from .models import Vehicle, DeliveryRoute, ChecklistTemplate
from .scheduling import (
    SchedulingConflict, available_employees, available_vehicles,
    ensure_resources_available, find_vehicle_conflicts, parse_datetime_param, validate_interval,
)
from .serializers import (
    VehicleSerializer, DeliveryRouteSerializer, InstallationRouteSerializer,
    RouteStatusSerializer, ChecklistTemplateSerializer,
)
from .status import apply_derived_status

logger = logging.getLogger('backend.logistics')

# Routes still under way; a vehicle holding one cannot be deleted
ACTIVE_ROUTE_STATUSES = ('scheduled', 'in_progress')


# Vehicle views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, page_permission('logistics')])
def vehicle_list_create(request):
    """List vehicles (logistics) or create one (admin only)"""
    if request.method == 'GET':
        queryset = Vehicle.objects.all()
        status_filter = request.query_params.get('status', None)
        if status_filter:
            queryset = queryset.filter(status=status_filter)
        vehicle_type = request.query_params.get('type', None)
        if vehicle_type:
            queryset = queryset.filter(type=vehicle_type)
        serializer = VehicleSerializer(queryset, many=True)
        return Response(serializer.data)
    else:
        if not is_admin_user(request.user):
            return Response({'error': 'Access restricted to administrators.'}, status=status.HTTP_403_FORBIDDEN)
        serializer = VehicleSerializer(data=request.data)
        if serializer.is_valid():
            vehicle = serializer.save()
            create_activity_log(request, 'create', 'Vehicle', vehicle.id, object_name=vehicle.license_plate)
            return Response(serializer.data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, page_permission('logistics')])
def vehicle_detail(request, pk):
    """Retrieve, update or delete a vehicle. Changes are admin only."""
    vehicle = get_object_or_404(Vehicle, pk=pk)

    if request.method == 'GET':
        serializer = VehicleSerializer(vehicle)
        return Response(serializer.data)

    if not is_admin_user(request.user):
        return Response({'error': 'Access restricted to administrators.'}, status=status.HTTP_403_FORBIDDEN)

    if request.method in ('PUT', 'PATCH'):
        serializer = VehicleSerializer(vehicle, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        if vehicle.routes.filter(status__in=ACTIVE_ROUTE_STATUSES).exists():
            return Response(
                {'error': 'Vehicle has scheduled or in-progress routes and cannot be deleted'},
                status=status.HTTP_400_BAD_REQUEST
            )
        create_activity_log(request, 'delete', 'Vehicle', vehicle.id, object_name=vehicle.license_plate)
        vehicle.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


def _vehicle_exists(data):
    vehicle_id = data.get('vehicle')
    if vehicle_id in (None, ''):
        return True
    try:
        return Vehicle.objects.filter(pk=int(vehicle_id)).exists()
    except (TypeError, ValueError):
        # Let the serializer report a malformed id
        return True


def _save_route(request, serializer, instance=None):
    """
    Check resources and save a route inside one transaction.
    Returns (route, None) or (None, error response).
    """
    data = serializer.validated_data
    vehicle = data['vehicle'] if 'vehicle' in data else (instance.vehicle if instance else None)
    start = data.get('start', instance.start if instance else None)
    end = data.get('end', instance.end if instance else None)
    team = data['team'] if 'team' in data else (list(instance.team.all()) if instance else [])
    previous_service_order = instance.service_order if instance else None

    try:
        with transaction.atomic():
            if vehicle is not None:
                # Serialize bookings of the same vehicle
                Vehicle.objects.select_for_update().filter(pk=vehicle.pk).first()
            ensure_resources_available(vehicle, team, start, end, exclude_route=instance)
            if instance is None:
                route = serializer.save(created_by=request.user)
            else:
                route = serializer.save()
    except SchedulingConflict as exc:
        return None, Response(exc.as_response_data(), status=status.HTTP_409_CONFLICT)

    apply_derived_status(route.service_order, user=request.user)
    if previous_service_order is not None and previous_service_order.pk != route.service_order_id:
        apply_derived_status(previous_service_order, user=request.user)
    return route, None


def _id_param(request, name):
    """Optional integer id from the query string; anything else is a 400"""
    value = request.query_params.get(name)
    if value in (None, ''):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError({name: f'Invalid id: {value}'})


def _release_team(route):
    for employee in route.team.all():
        if employee.current_task_type == 'delivery_route' and employee.current_task_id == str(route.id):
            employee.release_from_task()


# DeliveryRoute views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, page_permission('logistics')])
def route_list_create(request):
    """List routes (filterable by vehicle, order, status and time window) or schedule a delivery"""
    if request.method == 'GET':
        queryset = DeliveryRoute.objects.select_related('vehicle', 'service_order').prefetch_related('team')
        filterset = DeliveryRouteFilter(request.query_params, queryset=queryset)
        if not filterset.is_valid():
            return Response(filterset.errors, status=status.HTTP_400_BAD_REQUEST)
        serializer = DeliveryRouteSerializer(filterset.qs.order_by('start'), many=True)
        return Response(serializer.data)
    else:  # POST
        missing = [field for field in ('vehicle', 'service_order', 'start', 'end') if not request.data.get(field)]
        if missing:
            return Response({'error': f"Missing required fields: {', '.join(missing)}"}, status=status.HTTP_400_BAD_REQUEST)
        if not _vehicle_exists(request.data):
            return Response({'error': 'Vehicle not found'}, status=status.HTTP_404_NOT_FOUND)

        serializer = DeliveryRouteSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        route, error = _save_route(request, serializer)
        if error:
            return error
        create_activity_log(
            request, 'create', 'DeliveryRoute', route.id, object_name=route.service_order.code,
            new_status=route.status, description=f'{route.get_type_display()} scheduled'
        )
        logger.info(f"Route {route.id} scheduled for {route.service_order.code}")
        return Response(DeliveryRouteSerializer(route).data, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([IsAuthenticated, page_permission('logistics')])
def installation_route_create(request):
    """Schedule an installation; the team is required and checked, the vehicle is optional"""
    missing = [field for field in ('service_order', 'start', 'end', 'team') if not request.data.get(field)]
    if missing:
        return Response({'error': f"Missing required fields: {', '.join(missing)}"}, status=status.HTTP_400_BAD_REQUEST)
    if not _vehicle_exists(request.data):
        return Response({'error': 'Vehicle not found'}, status=status.HTTP_404_NOT_FOUND)

    serializer = InstallationRouteSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    route, error = _save_route(request, serializer)
    if error:
        return error
    create_activity_log(
        request, 'create', 'DeliveryRoute', route.id, object_name=route.service_order.code,
        new_status=route.status, description='Installation scheduled'
    )
    return Response(DeliveryRouteSerializer(route).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, page_permission('logistics')])
def route_detail(request, pk):
    """Retrieve, reschedule or delete a route"""
    route = get_object_or_404(
        DeliveryRoute.objects.select_related('vehicle', 'service_order').prefetch_related('team'), pk=pk
    )

    if request.method == 'GET':
        serializer = DeliveryRouteSerializer(route)
        return Response(serializer.data)
    elif request.method in ('PUT', 'PATCH'):
        if not _vehicle_exists(request.data):
            return Response({'error': 'Vehicle not found'}, status=status.HTTP_404_NOT_FOUND)
        serializer_class = InstallationRouteSerializer if route.type == 'installation' and request.method == 'PUT' else DeliveryRouteSerializer
        serializer = serializer_class(route, data=request.data, partial=request.method == 'PATCH')
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        route, error = _save_route(request, serializer, instance=route)
        if error:
            return error
        create_activity_log(request, 'update', 'DeliveryRoute', route.id, object_name=route.service_order.code)
        return Response(DeliveryRouteSerializer(route).data)
    else:  # DELETE
        service_order = route.service_order
        route_id = route.id
        with transaction.atomic():
            _release_team(route)
            route.delete()
        apply_derived_status(service_order, user=request.user)
        create_activity_log(request, 'delete', 'DeliveryRoute', route_id, object_name=service_order.code)
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['PATCH'])
@permission_classes([IsAuthenticated, page_permission('logistics')])
def route_status(request, pk):
    """Move a route through scheduled -> in_progress -> completed, or cancel it"""
    route = get_object_or_404(DeliveryRoute.objects.select_related('service_order', 'vehicle'), pk=pk)
    serializer = RouteStatusSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    new_status = serializer.validated_data['status']
    previous_status = route.status
    if new_status == previous_status:
        return Response(DeliveryRouteSerializer(route).data)

    with transaction.atomic():
        now = timezone.now()
        route.status = new_status
        if new_status == 'in_progress' and route.actual_start is None:
            route.actual_start = now
            for employee in route.team.all():
                employee.assign_to_task(route.id, 'delivery_route')
        elif new_status == 'completed':
            route.actual_end = now
            route.actual_start = route.actual_start or now
            _release_team(route)
        elif new_status == 'cancelled':
            _release_team(route)
        if 'notes' in serializer.validated_data:
            route.notes = serializer.validated_data['notes']
        route.save()

    apply_derived_status(route.service_order, user=request.user)
    create_activity_log(
        request, 'status_change', 'DeliveryRoute', route.id, object_name=route.service_order.code,
        previous_status=previous_status, new_status=new_status
    )
    return Response(DeliveryRouteSerializer(route).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated, page_permission('logistics')])
def route_availability_check(request):
    """Check whether a vehicle is free over [start, end), optionally ignoring one route"""
    vehicle_id = _id_param(request, 'vehicle')
    if vehicle_id is None:
        return Response({'error': 'vehicle, start and end are required'}, status=status.HTTP_400_BAD_REQUEST)
    start = parse_datetime_param(request.query_params.get('start'), 'start')
    end = parse_datetime_param(request.query_params.get('end'), 'end')
    validate_interval(start, end)

    vehicle = get_object_or_404(Vehicle, pk=vehicle_id)
    exclude_route = _id_param(request, 'route')
    conflicts = list(find_vehicle_conflicts(vehicle, start, end, exclude_route).values_list('id', flat=True))
    return Response({'available': not conflicts, 'conflicts': conflicts})


@api_view(['GET'])
@permission_classes([IsAuthenticated, page_permission('logistics', 'production')])
def resource_availability(request):
    """List vehicles or employees that are free over [start, end)"""
    resource_type = request.query_params.get('type', 'vehicle')
    if resource_type not in ('vehicle', 'employee'):
        return Response({'error': 'type must be vehicle or employee'}, status=status.HTTP_400_BAD_REQUEST)
    start = parse_datetime_param(request.query_params.get('start'), 'start')
    end = parse_datetime_param(request.query_params.get('end'), 'end')
    validate_interval(start, end)
    exclude_route = _id_param(request, 'route')

    if resource_type == 'vehicle':
        vehicles = available_vehicles(start, end, exclude_route=exclude_route)
        return Response({'type': 'vehicle', 'results': VehicleSerializer(vehicles, many=True).data})

    role = request.query_params.get('role') or None
    employees = available_employees(start, end, role=role, exclude_route=exclude_route)
    return Response({'type': 'employee', 'results': ProductionEmployeeSerializer(employees, many=True).data})


# ChecklistTemplate views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, page_permission('logistics', 'checklist_templates')])
def checklist_template_list_create(request):
    """List all checklist templates or create one"""
    if request.method == 'GET':
        queryset = ChecklistTemplate.objects.all()
        template_type = request.query_params.get('type', None)
        if template_type:
            queryset = queryset.filter(type=template_type)
        serializer = ChecklistTemplateSerializer(queryset, many=True)
        return Response(serializer.data)
    else:
        serializer = ChecklistTemplateSerializer(data=request.data)
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, page_permission('logistics', 'checklist_templates')])
def checklist_template_detail(request, pk):
    """Retrieve, update or delete a checklist template"""
    template = get_object_or_404(ChecklistTemplate, pk=pk)

    if request.method == 'GET':
        serializer = ChecklistTemplateSerializer(template)
        return Response(serializer.data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = ChecklistTemplateSerializer(template, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        template.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)
