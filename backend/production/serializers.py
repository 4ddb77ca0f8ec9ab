import uuid

from rest_framework import serializers
from backend.parties.serializers import validate_address_dict
from backend.sales.models import Order
from backend.sales.serializers import normalize_items
from .models import ServiceOrder, ProductionEmployee, CutPiece


class ProductionEmployeeSerializer(serializers.ModelSerializer):
    class Meta:
        model = ProductionEmployee
        fields = ['id', 'name', 'email', 'phone', 'role', 'availability', 'current_task_id',
                  'current_task_type', 'skills', 'hire_date', 'notes', 'active', 'created_at', 'updated_at']
        read_only_fields = ['current_task_id', 'current_task_type', 'created_at', 'updated_at']

    def validate_skills(self, value):
        if not isinstance(value, list) or not all(isinstance(skill, str) for skill in value):
            raise serializers.ValidationError("Skills must be a list of strings.")
        return value


class EmployeeAssignSerializer(serializers.Serializer):
    task_id = serializers.CharField(max_length=50)
    task_type = serializers.ChoiceField(choices=ProductionEmployee.TASK_TYPE_CHOICES)


def validate_checklist(value):
    """Departure checklist: list of {id, text, checked}"""
    if not isinstance(value, list):
        raise serializers.ValidationError("Checklist must be a list.")
    checklist = []
    for entry in value:
        if not isinstance(entry, dict):
            raise serializers.ValidationError("Every checklist item must be an object.")
        text = entry.get('text')
        if not isinstance(text, str) or not text.strip():
            raise serializers.ValidationError("Every checklist item needs a non-empty text.")
        checked = entry.get('checked', False)
        if not isinstance(checked, bool):
            raise serializers.ValidationError("checked must be a boolean.")
        checklist.append({'id': entry.get('id') or uuid.uuid4().hex[:12], 'text': text.strip(), 'checked': checked})
    return checklist


class ServiceOrderSerializer(serializers.ModelSerializer):
    order = serializers.PrimaryKeyRelatedField(queryset=Order.objects.all())
    order_code = serializers.CharField(source='order.code', read_only=True)
    assigned_to = serializers.PrimaryKeyRelatedField(
        queryset=ProductionEmployee.objects.filter(active=True), many=True, required=False
    )
    assigned_names = serializers.SerializerMethodField()
    routes_count = serializers.SerializerMethodField()

    class Meta:
        model = ServiceOrder
        fields = ['id', 'code', 'order', 'order_code', 'client_name', 'delivery_address', 'items', 'total',
                  'delivery_date', 'assigned_to', 'assigned_names', 'status', 'production_status',
                  'logistics_status', 'is_finalized', 'allocated_slab', 'priority', 'finalization_type',
                  'delivery_confirmed', 'installation_confirmed', 'departure_checklist', 'observations',
                  'rework_reason', 'rework_resolution', 'delivery_issue', 'installation_review',
                  'issue_resolution', 'confirmed_delivery', 'history', 'routes_count',
                  'created_by', 'created_at', 'updated_at']
        read_only_fields = ['code', 'status', 'production_status', 'logistics_status', 'is_finalized',
                            'rework_reason', 'rework_resolution', 'delivery_issue', 'installation_review',
                            'issue_resolution', 'confirmed_delivery', 'history', 'created_by',
                            'created_at', 'updated_at']

    def get_assigned_names(self, obj):
        return [employee.name for employee in obj.assigned_to.all()]

    def get_routes_count(self, obj):
        return obj.delivery_routes.count()

    def validate_delivery_address(self, value):
        return validate_address_dict(value)

    def validate_items(self, value):
        if not isinstance(value, list) or not value:
            raise serializers.ValidationError("Items must be a non-empty list.")
        return normalize_items(value, id_prefix='os-item')

    def validate_departure_checklist(self, value):
        return validate_checklist(value)

    def validate_total(self, value):
        if value < 0:
            raise serializers.ValidationError("Total cannot be negative.")
        return value

    def validate(self, attrs):
        if self.instance is not None and 'order' in attrs and attrs['order'].pk != self.instance.order_id:
            raise serializers.ValidationError({'order': 'The order of a service order cannot change.'})
        return attrs


class ServiceOrderStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=ServiceOrder.STATUS_CHOICES)
    note = serializers.CharField(required=False, allow_blank=True, default='')


class ChecklistSerializer(serializers.Serializer):
    checklist = serializers.JSONField()

    def validate_checklist(self, value):
        return validate_checklist(value)


class ReworkSerializer(serializers.Serializer):
    reason = serializers.CharField()


class DeliveryIssueSerializer(serializers.Serializer):
    description = serializers.CharField()
    type = serializers.CharField(required=False, allow_blank=True, default='')
    photos = serializers.ListField(child=serializers.CharField(), required=False, default=list)


class ReviewRequestSerializer(serializers.Serializer):
    reason = serializers.CharField()
    photos = serializers.ListField(child=serializers.CharField(), required=False, default=list)


class ResolutionSerializer(serializers.Serializer):
    resolution = serializers.CharField()
    notes = serializers.CharField(required=False, allow_blank=True, default='')


class ReviewResultSerializer(serializers.Serializer):
    approved = serializers.BooleanField()
    notes = serializers.CharField(required=False, allow_blank=True, default='')


class ConfirmedDeliverySerializer(serializers.Serializer):
    scheduled_date = serializers.DateField()
    start = serializers.DateTimeField()
    end = serializers.DateTimeField()
    vehicle = serializers.IntegerField(required=False, allow_null=True)
    driver = serializers.IntegerField(required=False, allow_null=True)
    team = serializers.ListField(child=serializers.IntegerField(), required=False, default=list)

    def validate(self, attrs):
        if attrs['start'] >= attrs['end']:
            raise serializers.ValidationError({'end': 'end must be after start'})
        return attrs


class CutPieceSerializer(serializers.ModelSerializer):
    service_order_code = serializers.CharField(source='service_order.code', read_only=True)
    client_name = serializers.CharField(source='service_order.client_name', read_only=True)
    stock_item_internal_id = serializers.CharField(source='stock_item.internal_id', read_only=True, default=None)
    material_name = serializers.CharField(source='material.name', read_only=True, default=None)

    class Meta:
        model = CutPiece
        fields = ['id', 'piece_id', 'service_order', 'service_order_code', 'client_name', 'original_item_id',
                  'stock_item', 'stock_item_internal_id', 'material', 'material_name', 'description',
                  'category', 'dimensions', 'status', 'location', 'qr_code_value', 'created_at', 'updated_at']
        read_only_fields = fields


class CutPieceStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=CutPiece.STATUS_CHOICES)
    reason = serializers.CharField(required=False, allow_blank=True, max_length=500, default='')


class CutPieceLocationSerializer(serializers.Serializer):
    location = serializers.CharField(min_length=2, max_length=100)
