import uuid

from rest_framework import serializers
from backend.production.models import ProductionEmployee, ServiceOrder
from .models import Vehicle, DeliveryRoute, ChecklistTemplate


class VehicleSerializer(serializers.ModelSerializer):
    class Meta:
        model = Vehicle
        fields = ['id', 'name', 'license_plate', 'capacity', 'type', 'status', 'last_maintenance',
                  'next_maintenance', 'notes', 'created_at', 'updated_at']

    def validate_license_plate(self, value):
        value = value.strip().upper()
        existing = Vehicle.objects.filter(license_plate=value)
        if self.instance:
            existing = existing.exclude(pk=self.instance.pk)
        if existing.exists():
            raise serializers.ValidationError("A vehicle with this license plate already exists.")
        return value


class DeliveryRouteSerializer(serializers.ModelSerializer):
    service_order = serializers.SlugRelatedField(slug_field='code', queryset=ServiceOrder.objects.all())
    vehicle = serializers.PrimaryKeyRelatedField(queryset=Vehicle.objects.all(), allow_null=True, required=False)
    team = serializers.PrimaryKeyRelatedField(
        queryset=ProductionEmployee.objects.filter(active=True), many=True, required=False
    )
    vehicle_name = serializers.CharField(source='vehicle.name', read_only=True, default=None)
    client_name = serializers.CharField(source='service_order.client_name', read_only=True)
    team_names = serializers.SerializerMethodField()

    class Meta:
        model = DeliveryRoute
        fields = ['id', 'vehicle', 'vehicle_name', 'service_order', 'client_name', 'type', 'start', 'end',
                  'team', 'team_names', 'status', 'actual_start', 'actual_end', 'checklist_completed',
                  'notes', 'photos', 'customer_signature', 'created_at', 'updated_at']
        read_only_fields = ['status', 'actual_start', 'actual_end', 'created_at', 'updated_at']

    def get_team_names(self, obj):
        return [employee.name for employee in obj.team.all()]

    def validate_photos(self, value):
        if not isinstance(value, list):
            raise serializers.ValidationError("Photos must be a list.")
        return value

    def validate(self, attrs):
        instance = self.instance
        start = attrs.get('start', instance.start if instance else None)
        end = attrs.get('end', instance.end if instance else None)
        if start and end and start >= end:
            raise serializers.ValidationError({'end': 'end must be after start'})

        route_type = attrs.get('type', instance.type if instance else 'delivery')
        vehicle = attrs['vehicle'] if 'vehicle' in attrs else (instance.vehicle if instance else None)
        if route_type == 'delivery' and vehicle is None:
            raise serializers.ValidationError({'vehicle': 'A delivery route needs a vehicle.'})
        if vehicle is not None and vehicle.status == 'em_manutencao' and 'vehicle' in attrs:
            raise serializers.ValidationError({'vehicle': 'Vehicle is under maintenance.'})

        service_order = attrs.get('service_order')
        if service_order is not None and service_order.status == 'cancelled':
            raise serializers.ValidationError({'service_order': 'Service order is cancelled.'})
        return attrs


class InstallationRouteSerializer(DeliveryRouteSerializer):
    """Installation routes always carry a team; the vehicle is optional"""

    def validate(self, attrs):
        attrs['type'] = 'installation'
        if not attrs.get('team'):
            raise serializers.ValidationError({'team': 'An installation route needs at least one team member.'})
        return super().validate(attrs)


class RouteStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=DeliveryRoute.STATUS_CHOICES)
    notes = serializers.CharField(required=False, allow_blank=True)


class ChecklistTemplateSerializer(serializers.ModelSerializer):
    class Meta:
        model = ChecklistTemplate
        fields = ['id', 'name', 'type', 'items', 'created_at', 'updated_at']

    def validate_items(self, value):
        if not isinstance(value, list) or not value:
            raise serializers.ValidationError("Items must be a non-empty list.")
        items = []
        for entry in value:
            text = entry.get('text') if isinstance(entry, dict) else None
            if not isinstance(text, str) or not text.strip():
                raise serializers.ValidationError("Every item needs a non-empty text.")
            items.append({'id': entry.get('id') or uuid.uuid4().hex[:12], 'text': text.strip()})
        return items
