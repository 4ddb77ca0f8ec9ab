import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import NotFound, ValidationError
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.db.models import Q
from django.shortcuts import get_object_or_404
from backend.core.permissions import page_permission
from backend.core.utils import create_activity_log, paginate_queryset
from backend.inventory.models import StockItem
from backend.inventory.serializers import StockItemSerializer
from backend.production.models import CutPiece
from backend.production.serializers import CutPieceSerializer
from .models import Equipment
from .serializers import EquipmentSerializer, AssetStatusSerializer, AssetLocationSerializer

logger = logging.getLogger(__name__)

ASSET_URI_PREFIX = 'marmoraria://asset/'

# Asset types reachable by QR code: lookup field, status/location fields and accepted aliases
ASSET_TYPES = {
    'stock_item': {
        'model': StockItem,
        'serializer': StockItemSerializer,
        'lookup': 'pk',
        'status_field': 'status',
        'location_field': 'location',
        'aliases': ('stock_item', 'stock', 'stock-item', 'stockitem'),
    },
    'equipment': {
        'model': Equipment,
        'serializer': EquipmentSerializer,
        'lookup': 'pk',
        'status_field': 'status',
        'location_field': 'current_location',
        'aliases': ('equipment', 'equipamento'),
    },
    'cut_piece': {
        'model': CutPiece,
        'serializer': CutPieceSerializer,
        'lookup': 'piece_id',
        'status_field': 'status',
        'location_field': 'location',
        'aliases': ('cut_piece', 'cut-piece', 'cutpiece'),
    },
}


def resolve_asset_type(raw_type):
    """Canonical asset type name for a type or alias, or None"""
    lowered = (raw_type or '').lower()
    for name, config in ASSET_TYPES.items():
        if lowered in config['aliases']:
            return name
    return None


def parse_asset_uri(value):
    """Split marmoraria://asset/<type>/<id> into (type, id); None when malformed"""
    if not isinstance(value, str) or not value.startswith(ASSET_URI_PREFIX):
        return None
    parts = [part for part in value[len(ASSET_URI_PREFIX):].split('/') if part]
    if len(parts) < 2:
        return None
    return parts[0], '/'.join(parts[1:])


def _get_asset(asset_type, asset_id):
    config = ASSET_TYPES[asset_type]
    if config['lookup'] == 'pk':
        try:
            asset_id = int(asset_id)
        except (TypeError, ValueError):
            raise ValidationError({'id': f'Invalid id for {asset_type}: {asset_id}'})
    asset = config['model'].objects.filter(**{config['lookup']: asset_id}).first()
    if asset is None:
        raise NotFound('Asset not found')
    return asset


def _asset_response(asset_type, asset):
    return {'type': asset_type, 'data': ASSET_TYPES[asset_type]['serializer'](asset).data}


def _log_name(asset):
    return getattr(asset, 'piece_id', None) or getattr(asset, 'internal_id', None) or str(asset)


# Equipment views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, page_permission('stock', 'production', 'catalog')])
def equipment_list_create(request):
    """List all equipment or register a new machine or vehicle"""
    if request.method == 'GET':
        queryset = Equipment.objects.all()

        search = request.query_params.get('search', None)
        category = request.query_params.get('category', None)
        status_filter = request.query_params.get('status', None)
        if search:
            queryset = queryset.filter(Q(name__icontains=search) | Q(serial_number__icontains=search))
        if category:
            queryset = queryset.filter(category=category)
        if status_filter:
            queryset = queryset.filter(status=status_filter)

        return Response(paginate_queryset(request, queryset.order_by('name'), EquipmentSerializer, default_limit=50))
    else:
        serializer = EquipmentSerializer(data=request.data)
        if serializer.is_valid():
            equipment = serializer.save()
            create_activity_log(request, 'create', 'Equipment', equipment.id, object_name=equipment.name)
            return Response(serializer.data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, page_permission('stock', 'production', 'catalog')])
def equipment_detail(request, pk):
    """Retrieve, update or delete a piece of equipment"""
    equipment = get_object_or_404(Equipment, pk=pk)

    if request.method == 'GET':
        return Response(EquipmentSerializer(equipment).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = EquipmentSerializer(equipment, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            create_activity_log(request, 'update', 'Equipment', equipment.id, object_name=equipment.name)
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        create_activity_log(request, 'delete', 'Equipment', equipment.id, object_name=equipment.name)
        equipment.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


# Asset views
@api_view(['GET'])
@permission_classes([IsAuthenticated, page_permission('stock', 'production', 'catalog')])
def asset_qrcode_scan(request):
    """Resolve a scanned QR value to its asset and log the read"""
    data = request.query_params.get('data', '')
    parsed = parse_asset_uri(data)
    if parsed is None:
        return Response(
            {'error': f'Invalid QR code. Expected {ASSET_URI_PREFIX}<type>/<id>'},
            status=status.HTTP_400_BAD_REQUEST
        )
    asset_type = resolve_asset_type(parsed[0])
    if asset_type is None:
        return Response({'error': f'Unsupported asset type: {parsed[0]}'}, status=status.HTTP_400_BAD_REQUEST)

    asset = _get_asset(asset_type, parsed[1])
    config = ASSET_TYPES[asset_type]
    current_status = getattr(asset, config['status_field'])
    current_location = getattr(asset, config['location_field'])
    create_activity_log(
        request, 'asset_scanned', config['model'].__name__, asset.id, object_name=_log_name(asset),
        description=data, previous_status=current_status, new_status=current_status,
        previous_location=current_location, new_location=current_location,
    )
    return Response(_asset_response(asset_type, asset))


@api_view(['PUT'])
@permission_classes([IsAuthenticated, page_permission('stock', 'production', 'catalog')])
def asset_status(request, asset_type, asset_id):
    """Set the status of any QR-tracked asset"""
    name = resolve_asset_type(asset_type)
    if name is None:
        return Response({'error': f'Unsupported asset type: {asset_type}'}, status=status.HTTP_400_BAD_REQUEST)
    asset = _get_asset(name, asset_id)
    config = ASSET_TYPES[name]

    serializer = AssetStatusSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    new_status = serializer.validated_data['status']
    allowed = [value for value, _ in config['model']._meta.get_field(config['status_field']).choices]
    if new_status not in allowed:
        return Response({'error': 'Invalid status for this asset', 'allowed_statuses': allowed},
                        status=status.HTTP_400_BAD_REQUEST)

    previous_status = getattr(asset, config['status_field'])
    if new_status == previous_status:
        return Response({'error': 'The asset already has this status'}, status=status.HTTP_400_BAD_REQUEST)

    setattr(asset, config['status_field'], new_status)
    asset.save(update_fields=[config['status_field'], 'updated_at'])
    location = getattr(asset, config['location_field'])
    create_activity_log(
        request, 'asset_status_updated', config['model'].__name__, asset.id, object_name=_log_name(asset),
        previous_status=previous_status, new_status=new_status, previous_location=location, new_location=location,
    )
    logger.info(f"{name} {_log_name(asset)}: status {previous_status} -> {new_status}")
    return Response(_asset_response(name, asset))


@api_view(['PUT'])
@permission_classes([IsAuthenticated, page_permission('stock', 'production', 'catalog')])
def asset_location(request, asset_type, asset_id):
    """Move any QR-tracked asset to a new location"""
    name = resolve_asset_type(asset_type)
    if name is None:
        return Response({'error': f'Unsupported asset type: {asset_type}'}, status=status.HTTP_400_BAD_REQUEST)
    asset = _get_asset(name, asset_id)
    config = ASSET_TYPES[name]

    serializer = AssetLocationSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    new_location = serializer.validated_data['location']

    previous_location = getattr(asset, config['location_field']) or ''
    if new_location == previous_location:
        return Response({'error': 'The asset is already at this location'}, status=status.HTTP_400_BAD_REQUEST)

    setattr(asset, config['location_field'], new_location)
    asset.save(update_fields=[config['location_field'], 'updated_at'])
    current_status = getattr(asset, config['status_field'])
    create_activity_log(
        request, 'asset_location_updated', config['model'].__name__, asset.id, object_name=_log_name(asset),
        previous_status=current_status, new_status=current_status,
        previous_location=previous_location, new_location=new_location,
    )
    logger.info(f"{name} {_log_name(asset)}: moved to {new_location}")
    return Response(_asset_response(name, asset))
