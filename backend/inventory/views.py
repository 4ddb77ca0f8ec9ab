import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.db.models import Sum, F, Q, DecimalField, ExpressionWrapper, Value
from django.db.models.functions import Coalesce
from django.shortcuts import get_object_or_404
from decimal import Decimal
from backend.core.permissions import page_permission
from backend.core.utils import create_activity_log, paginate_queryset
from .filters import StockItemFilter
from .models import Material, StockItem
from .serializers import MaterialSerializer, StockItemSerializer, StockItemStatusSerializer

logger = logging.getLogger(__name__)


def materials_with_available_area():
    """Annotate materials with the area (m²) of their available slabs"""
    area = ExpressionWrapper(
        F('stock_items__width') * F('stock_items__height'),
        output_field=DecimalField(max_digits=12, decimal_places=3)
    )
    return Material.objects.annotate(
        available_area=Coalesce(
            Sum(area, filter=Q(stock_items__status__in=StockItem.AVAILABLE_STATUSES)),
            Value(Decimal('0')),
            output_field=DecimalField(max_digits=12, decimal_places=3)
        )
    )


# Material views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, page_permission('stock', 'catalog', 'quotes')])
def material_list_create(request):
    """List all materials or create a new material"""
    if request.method == 'GET':
        queryset = Material.objects.select_related('supplier')
        search = request.query_params.get('search', None)
        if search:
            queryset = queryset.filter(Q(name__icontains=search) | Q(sku__icontains=search))
        serializer = MaterialSerializer(queryset.order_by('name'), many=True)
        return Response(serializer.data)
    else:
        serializer = MaterialSerializer(data=request.data)
        if serializer.is_valid():
            material = serializer.save()
            create_activity_log(request, 'create', 'Material', material.id, object_name=material.name)
            return Response(serializer.data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, page_permission('stock', 'catalog')])
def material_detail(request, pk):
    """Retrieve, update or delete a material"""
    material = get_object_or_404(Material, pk=pk)

    if request.method == 'GET':
        serializer = MaterialSerializer(material)
        return Response(serializer.data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = MaterialSerializer(material, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        if material.stock_items.exists():
            return Response({'error': 'Cannot delete a material that has slabs in stock'}, status=status.HTTP_400_BAD_REQUEST)
        create_activity_log(request, 'delete', 'Material', material.id, object_name=material.name)
        material.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([IsAuthenticated, page_permission('stock', 'catalog')])
def material_low_stock(request):
    """Materials whose available slab area is below their minimum stock"""
    materials = materials_with_available_area().filter(
        min_stock_sqm__gt=0, available_area__lt=F('min_stock_sqm')
    ).select_related('supplier')

    results = []
    for material in materials:
        data = MaterialSerializer(material).data
        data['available_area'] = float(material.available_area)
        data['missing_area'] = float(material.min_stock_sqm - material.available_area)
        results.append(data)
    return Response(results)


# StockItem views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, page_permission('stock')])
def stock_item_list_create(request):
    """List slabs with filters or register a new slab"""
    if request.method == 'GET':
        queryset = StockItem.objects.select_related('material')
        filterset = StockItemFilter(request.query_params, queryset=queryset)
        if not filterset.is_valid():
            return Response(filterset.errors, status=status.HTTP_400_BAD_REQUEST)
        return Response(paginate_queryset(request, filterset.qs, StockItemSerializer, default_limit=50))
    else:
        serializer = StockItemSerializer(data=request.data)
        if serializer.is_valid():
            item = serializer.save()
            create_activity_log(
                request, 'create', 'StockItem', item.id, object_name=item.internal_id,
                new_status=item.status, new_location=item.location
            )
            return Response(StockItemSerializer(item).data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, page_permission('stock')])
def stock_item_detail(request, pk):
    """Retrieve (logged as a QR read), update or delete a slab"""
    item = get_object_or_404(StockItem.objects.select_related('material'), pk=pk)

    if request.method == 'GET':
        create_activity_log(
            request, 'read', 'StockItem', item.id, object_name=item.internal_id,
            description='Slab opened (QR scan)'
        )
        serializer = StockItemSerializer(item)
        return Response(serializer.data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = StockItemSerializer(item, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            create_activity_log(request, 'update', 'StockItem', item.id, object_name=item.internal_id)
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        create_activity_log(request, 'delete', 'StockItem', item.id, object_name=item.internal_id)
        item.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['PATCH'])
@permission_classes([IsAuthenticated, page_permission('stock', 'production')])
def stock_item_status(request, pk):
    """Change the status and/or location of a slab"""
    item = get_object_or_404(StockItem, pk=pk)
    serializer = StockItemStatusSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    new_status = serializer.validated_data.get('status', item.status)
    new_location = serializer.validated_data.get('location', item.location)
    status_changed = new_status != item.status
    location_changed = new_location != item.location

    if not status_changed and not location_changed:
        return Response({'error': 'No changes to status or location'}, status=status.HTTP_400_BAD_REQUEST)

    if status_changed and location_changed:
        action = 'status_location_update'
    elif status_changed:
        action = 'status_update'
    else:
        action = 'location_update'

    previous_status, previous_location = item.status, item.location
    item.status = new_status
    item.location = new_location
    item.save(update_fields=['status', 'location', 'updated_at'])

    create_activity_log(
        request, action, 'StockItem', item.id, object_name=item.internal_id,
        description=serializer.validated_data.get('note', ''),
        previous_status=previous_status if status_changed else None,
        new_status=new_status if status_changed else None,
        previous_location=previous_location if location_changed else None,
        new_location=new_location if location_changed else None,
    )
    logger.info(f"Stock item {item.internal_id}: {action}")
    return Response(StockItemSerializer(item).data)
