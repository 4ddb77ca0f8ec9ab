import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.db import transaction
from django.db.models import Q
from django.shortcuts import get_object_or_404
from django.utils import timezone
from backend.core.permissions import page_permission, has_page_access
from backend.core.utils import create_activity_log, generate_code, paginate_queryset
from backend.logistics.status import derive_service_order_status
from .models import ServiceOrder, ProductionEmployee, CutPiece
from .serializers import (
    ServiceOrderSerializer, ServiceOrderStatusSerializer, ChecklistSerializer,
    ReworkSerializer, DeliveryIssueSerializer, ReviewRequestSerializer, ResolutionSerializer,
    ReviewResultSerializer, ConfirmedDeliverySerializer,
    ProductionEmployeeSerializer, EmployeeAssignSerializer,
    CutPieceSerializer, CutPieceStatusSerializer, CutPieceLocationSerializer,
)

logger = logging.getLogger(__name__)

REQUIRED_SERVICE_ORDER_FIELDS = ('order', 'client_name', 'delivery_address', 'items', 'total', 'delivery_date')


def _item_conflicts(order_id, items, exclude_pk=None):
    """Items of `items` already held by another live service order of the same order"""
    item_ids = {item['id'] for item in items}
    others = ServiceOrder.objects.filter(order_id=order_id).exclude(status='cancelled')
    if exclude_pk is not None:
        others = others.exclude(pk=exclude_pk)
    conflicts = []
    for other in others:
        for item in other.items or []:
            if item.get('id') in item_ids:
                conflicts.append({'service_order': other.code, 'item_id': item['id'], 'description': item.get('description', '')})
    return conflicts


def _conflict_response(conflicts):
    descriptions = ', '.join(conflict['description'] or conflict['item_id'] for conflict in conflicts)
    return Response(
        {'error': f'Items already belong to another service order: {descriptions}', 'conflicts': conflicts},
        status=status.HTTP_409_CONFLICT
    )


def _change_status(request, service_order, new_status, note='', **fields):
    """Apply a workflow transition with its payload fields and log it"""
    previous_status = service_order.status
    for name, value in fields.items():
        setattr(service_order, name, value)
    service_order.set_status(new_status, user=request.user, note=note)
    if new_status == 'completed':
        service_order.is_finalized = True
    service_order.save()
    if new_status == 'cutting':
        CutPiece.create_for_service_order(service_order)
    create_activity_log(
        request, 'status_change', 'ServiceOrder', service_order.id, object_name=service_order.code,
        previous_status=previous_status, new_status=new_status, description=note
    )
    logger.info(f"Service order {service_order.code}: {previous_status} -> {new_status}")
    return Response(ServiceOrderSerializer(service_order).data)


# ServiceOrder views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, page_permission('production', 'logistics', 'orders')])
def service_order_list_create(request):
    """List service orders or open one for part of an order"""
    if request.method == 'GET':
        queryset = ServiceOrder.objects.select_related('order').prefetch_related('assigned_to', 'delivery_routes')

        status_filter = request.query_params.get('status', None)
        logistics_status = request.query_params.get('logistics_status', None)
        order_id = request.query_params.get('order', None)
        priority = request.query_params.get('priority', None)
        search = request.query_params.get('search', None)
        date_from = request.query_params.get('date_from', None)
        date_to = request.query_params.get('date_to', None)

        if status_filter:
            queryset = queryset.filter(status__in=status_filter.split(','))
        if logistics_status:
            queryset = queryset.filter(logistics_status=logistics_status)
        if order_id:
            queryset = queryset.filter(order_id=order_id)
        if priority:
            queryset = queryset.filter(priority=priority)
        if search:
            queryset = queryset.filter(Q(code__icontains=search) | Q(client_name__icontains=search))
        if date_from:
            queryset = queryset.filter(delivery_date__date__gte=date_from)
        if date_to:
            queryset = queryset.filter(delivery_date__date__lte=date_to)

        return Response(paginate_queryset(request, queryset.order_by('-created_at'), ServiceOrderSerializer, default_limit=50))

    # POST
    if not has_page_access(request.user, 'production'):
        return Response({'error': 'You do not have access to: production.'}, status=status.HTTP_403_FORBIDDEN)

    missing = [field for field in REQUIRED_SERVICE_ORDER_FIELDS if request.data.get(field) in (None, '', [], {})]
    if missing:
        return Response({'error': f"Missing required fields: {', '.join(missing)}"}, status=status.HTTP_400_BAD_REQUEST)

    serializer = ServiceOrderSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    order = serializer.validated_data['order']
    with transaction.atomic():
        # Lock the order so two service orders cannot claim the same items
        order.__class__.objects.select_for_update().filter(pk=order.pk).first()
        conflicts = _item_conflicts(order.pk, serializer.validated_data['items'])
        if conflicts:
            return _conflict_response(conflicts)
        service_order = serializer.save(
            code=generate_code('OS', ServiceOrder),
            created_by=request.user,
            history=[{
                'previous_status': None,
                'status': 'pending_production',
                'changed_at': timezone.now().isoformat(),
                'changed_by': request.user.name,
                'note': 'Service order created',
            }],
        )
        CutPiece.create_for_service_order(service_order)
    create_activity_log(request, 'create', 'ServiceOrder', service_order.id, object_name=service_order.code,
                        new_status=service_order.status)
    return Response(ServiceOrderSerializer(service_order).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH'])
@permission_classes([IsAuthenticated, page_permission('production', 'logistics', 'orders')])
def service_order_detail(request, code):
    """Retrieve or update a service order. Code and creation date never change."""
    service_order = get_object_or_404(ServiceOrder.objects.select_related('order'), code=code)

    if request.method == 'GET':
        serializer = ServiceOrderSerializer(service_order)
        return Response(serializer.data)

    if not has_page_access(request.user, 'production', 'logistics'):
        return Response({'error': 'You do not have access to: production, logistics.'}, status=status.HTTP_403_FORBIDDEN)
    serializer = ServiceOrderSerializer(service_order, data=request.data, partial=request.method == 'PATCH')
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    if 'items' in serializer.validated_data:
        conflicts = _item_conflicts(service_order.order_id, serializer.validated_data['items'], exclude_pk=service_order.pk)
        if conflicts:
            return _conflict_response(conflicts)
    serializer.save()
    create_activity_log(request, 'update', 'ServiceOrder', service_order.id, object_name=service_order.code)
    return Response(serializer.data)


@api_view(['PATCH'])
@permission_classes([IsAuthenticated, page_permission('production', 'logistics')])
def service_order_status(request, code):
    """Set the unified status of a service order"""
    service_order = get_object_or_404(ServiceOrder, code=code)
    serializer = ServiceOrderStatusSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    new_status = serializer.validated_data['status']
    if new_status == service_order.status:
        return Response(ServiceOrderSerializer(service_order).data)
    return _change_status(request, service_order, new_status, note=serializer.validated_data['note'])


@api_view(['PUT'])
@permission_classes([IsAuthenticated, page_permission('logistics')])
def service_order_checklist(request, code):
    """Replace the departure checklist"""
    service_order = get_object_or_404(ServiceOrder, code=code)
    serializer = ChecklistSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    service_order.departure_checklist = serializer.validated_data['checklist']
    service_order.save(update_fields=['departure_checklist', 'updated_at'])
    checked = sum(1 for item in service_order.departure_checklist if item['checked'])
    create_activity_log(
        request, 'checklist_update', 'ServiceOrder', service_order.id, object_name=service_order.code,
        description=f'{checked}/{len(service_order.departure_checklist)} items checked'
    )
    return Response(ServiceOrderSerializer(service_order).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated, page_permission('production', 'logistics')])
def service_order_mark_rework(request, code):
    service_order = get_object_or_404(ServiceOrder, code=code)
    serializer = ReworkSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    reason = serializer.validated_data['reason']
    return _change_status(request, service_order, 'rework_needed', note=reason, rework_reason=reason)


@api_view(['POST'])
@permission_classes([IsAuthenticated, page_permission('production', 'logistics')])
def service_order_report_delivery_issue(request, code):
    service_order = get_object_or_404(ServiceOrder, code=code)
    serializer = DeliveryIssueSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    issue = dict(serializer.validated_data, reported_at=timezone.now().isoformat(), reported_by=request.user.name)
    return _change_status(request, service_order, 'delivery_issue', note=issue['description'], delivery_issue=issue)


@api_view(['POST'])
@permission_classes([IsAuthenticated, page_permission('production', 'logistics')])
def service_order_request_review(request, code):
    service_order = get_object_or_404(ServiceOrder, code=code)
    serializer = ReviewRequestSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    review = dict(serializer.validated_data, requested_at=timezone.now().isoformat(), requested_by=request.user.name)
    return _change_status(request, service_order, 'installation_pending_review', note=review['reason'],
                          installation_review=review)


@api_view(['POST'])
@permission_classes([IsAuthenticated, page_permission('production', 'logistics')])
def service_order_resolve_issue(request, code):
    """Resolve the current exception and return the order to the matching phase"""
    service_order = get_object_or_404(ServiceOrder, code=code)
    serializer = ResolutionSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    if service_order.status == 'installation_pending_review':
        next_status = 'ready_for_logistics'
    elif service_order.status == 'delivery_issue':
        next_status = 'delivered'
    else:
        next_status = 'cutting'
    resolution = dict(
        serializer.validated_data,
        resolved_status=service_order.status,
        resolved_at=timezone.now().isoformat(),
        resolved_by=request.user.name,
    )
    return _change_status(request, service_order, next_status, note=resolution['resolution'],
                          issue_resolution=resolution)


@api_view(['POST'])
@permission_classes([IsAuthenticated, page_permission('production', 'logistics')])
def service_order_resolve_rework(request, code):
    service_order = get_object_or_404(ServiceOrder, code=code)
    serializer = ResolutionSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    resolution = dict(serializer.validated_data, resolved_at=timezone.now().isoformat(), resolved_by=request.user.name)
    return _change_status(request, service_order, 'cutting', note=resolution['resolution'],
                          rework_resolution=resolution)


@api_view(['POST'])
@permission_classes([IsAuthenticated, page_permission('production', 'logistics')])
def service_order_resolve_delivery_issue(request, code):
    service_order = get_object_or_404(ServiceOrder, code=code)
    serializer = ResolutionSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    issue = dict(service_order.delivery_issue or {})
    issue['resolution'] = dict(serializer.validated_data, resolved_at=timezone.now().isoformat(),
                               resolved_by=request.user.name)
    return _change_status(request, service_order, 'delivered', note=serializer.validated_data['resolution'],
                          delivery_issue=issue)


@api_view(['POST'])
@permission_classes([IsAuthenticated, page_permission('production', 'logistics')])
def service_order_complete_review(request, code):
    service_order = get_object_or_404(ServiceOrder, code=code)
    serializer = ReviewResultSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    approved = serializer.validated_data['approved']
    review = dict(service_order.installation_review or {})
    review.update(approved=approved, review_notes=serializer.validated_data['notes'],
                  reviewed_at=timezone.now().isoformat(), reviewed_by=request.user.name)
    next_status = 'ready_for_logistics' if approved else 'rework_needed'
    return _change_status(request, service_order, next_status, note=serializer.validated_data['notes'],
                          installation_review=review)


@api_view(['POST'])
@permission_classes([IsAuthenticated, page_permission('logistics')])
def service_order_confirm_delivery_data(request, code):
    """Store the confirmed delivery schedule, vehicle and team"""
    service_order = get_object_or_404(ServiceOrder, code=code)
    serializer = ConfirmedDeliverySerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    data = serializer.validated_data
    service_order.confirmed_delivery = {
        'scheduled_date': data['scheduled_date'].isoformat(),
        'start': data['start'].isoformat(),
        'end': data['end'].isoformat(),
        'vehicle': data.get('vehicle'),
        'driver': data.get('driver'),
        'team': data['team'],
        'confirmed_at': timezone.now().isoformat(),
        'confirmed_by': request.user.name,
    }
    service_order.delivery_confirmed = True
    service_order.save(update_fields=['confirmed_delivery', 'delivery_confirmed', 'updated_at'])
    create_activity_log(request, 'update', 'ServiceOrder', service_order.id, object_name=service_order.code,
                        description='Delivery data confirmed')
    return Response(ServiceOrderSerializer(service_order).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated, page_permission('production', 'logistics', 'orders')])
def service_order_derived_status(request, code):
    """Logistics status the routes would give this order. Nothing is saved."""
    service_order = get_object_or_404(ServiceOrder, code=code)
    return Response({
        'service_order': service_order.code,
        'derived_status': derive_service_order_status(service_order),
        'current_logistics_status': service_order.logistics_status,
        'routes_count': service_order.delivery_routes.count(),
    })


# CutPiece views
@api_view(['GET'])
@permission_classes([IsAuthenticated, page_permission('production', 'logistics')])
def service_order_cut_pieces(request, code):
    """Pieces cut for a service order"""
    service_order = get_object_or_404(ServiceOrder, code=code)
    pieces = service_order.cut_pieces.select_related('service_order', 'stock_item', 'material')
    create_activity_log(
        request, 'cut_pieces_listed', 'ServiceOrder', service_order.id, object_name=service_order.code,
        description=f'{len(pieces)} cut pieces'
    )
    return Response({
        'service_order': {
            'code': service_order.code,
            'client_name': service_order.client_name,
            'status': service_order.status,
        },
        'cut_pieces': CutPieceSerializer(pieces, many=True).data,
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated, page_permission('production', 'logistics')])
def cut_piece_detail(request, piece_id):
    piece = get_object_or_404(CutPiece.objects.select_related('service_order', 'stock_item', 'material'), piece_id=piece_id)
    create_activity_log(request, 'cut_piece_viewed', 'CutPiece', piece.id, object_name=piece.piece_id)
    return Response(CutPieceSerializer(piece).data)


@api_view(['PATCH'])
@permission_classes([IsAuthenticated, page_permission('production', 'logistics')])
def cut_piece_status(request, piece_id):
    piece = get_object_or_404(CutPiece.objects.select_related('service_order'), piece_id=piece_id)
    serializer = CutPieceStatusSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    new_status = serializer.validated_data['status']
    previous_status = piece.status
    if new_status == previous_status:
        return Response({'error': 'The piece already has this status'}, status=status.HTTP_400_BAD_REQUEST)

    piece.status = new_status
    piece.save(update_fields=['status', 'updated_at'])
    create_activity_log(
        request, 'cut_piece_status_updated', 'CutPiece', piece.id, object_name=piece.piece_id,
        description=serializer.validated_data['reason'], previous_status=previous_status, new_status=new_status
    )
    logger.info(f"Cut piece {piece.piece_id}: {previous_status} -> {new_status}")
    return Response(CutPieceSerializer(piece).data)


@api_view(['PATCH'])
@permission_classes([IsAuthenticated, page_permission('production', 'logistics')])
def cut_piece_location(request, piece_id):
    piece = get_object_or_404(CutPiece.objects.select_related('service_order'), piece_id=piece_id)
    serializer = CutPieceLocationSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    new_location = serializer.validated_data['location']
    previous_location = piece.location
    if new_location == previous_location:
        return Response({'error': 'The piece is already at this location'}, status=status.HTTP_400_BAD_REQUEST)

    piece.location = new_location
    piece.save(update_fields=['location', 'updated_at'])
    create_activity_log(
        request, 'cut_piece_location_updated', 'CutPiece', piece.id, object_name=piece.piece_id,
        previous_location=previous_location, new_location=new_location
    )
    return Response(CutPieceSerializer(piece).data)


# ProductionEmployee views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, page_permission('production', 'logistics')])
def employee_list_create(request):
    """List production employees or register a new one"""
    if request.method == 'GET':
        queryset = ProductionEmployee.objects.all()
        role = request.query_params.get('role', None)
        availability = request.query_params.get('availability', None)
        active = request.query_params.get('active', None)
        search = request.query_params.get('search', None)

        if role:
            queryset = queryset.filter(role=role)
        if availability:
            queryset = queryset.filter(availability=availability)
        if active is not None and active != '':
            queryset = queryset.filter(active=active.lower() in ('true', '1'))
        if search:
            queryset = queryset.filter(Q(name__icontains=search) | Q(email__icontains=search))

        serializer = ProductionEmployeeSerializer(queryset, many=True)
        return Response(serializer.data)
    else:
        serializer = ProductionEmployeeSerializer(data=request.data)
        if serializer.is_valid():
            employee = serializer.save()
            create_activity_log(request, 'create', 'ProductionEmployee', employee.id, object_name=employee.name)
            return Response(serializer.data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, page_permission('production', 'logistics')])
def employee_detail(request, pk):
    """Retrieve, update or deactivate a production employee"""
    employee = get_object_or_404(ProductionEmployee, pk=pk)

    if request.method == 'GET':
        serializer = ProductionEmployeeSerializer(employee)
        return Response(serializer.data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = ProductionEmployeeSerializer(employee, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE keeps the row for route history
        employee.active = False
        employee.save(update_fields=['active', 'updated_at'])
        create_activity_log(request, 'delete', 'ProductionEmployee', employee.id, object_name=employee.name)
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['POST'])
@permission_classes([IsAuthenticated, page_permission('production', 'logistics')])
def employee_assign(request, pk):
    employee = get_object_or_404(ProductionEmployee, pk=pk)
    if not employee.active:
        return Response({'error': 'Employee is inactive'}, status=status.HTTP_400_BAD_REQUEST)
    serializer = EmployeeAssignSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    employee.assign_to_task(serializer.validated_data['task_id'], serializer.validated_data['task_type'])
    create_activity_log(
        request, 'assign', 'ProductionEmployee', employee.id, object_name=employee.name,
        description=f"{serializer.validated_data['task_type']} {serializer.validated_data['task_id']}"
    )
    return Response(ProductionEmployeeSerializer(employee).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated, page_permission('production', 'logistics')])
def employee_release(request, pk):
    employee = get_object_or_404(ProductionEmployee, pk=pk)
    employee.release_from_task()
    create_activity_log(request, 'release', 'ProductionEmployee', employee.id, object_name=employee.name)
    return Response(ProductionEmployeeSerializer(employee).data)
