from rest_framework import serializers
from .models import Material, StockItem


class MaterialSerializer(serializers.ModelSerializer):
    supplier_name = serializers.CharField(source='supplier.name', read_only=True, default=None)

    class Meta:
        model = Material
        fields = ['id', 'name', 'photo_url', 'supplier', 'supplier_name', 'cost_per_sqm', 'slab_width',
                  'slab_height', 'sku', 'min_stock_sqm', 'created_at', 'updated_at']

    def validate_sku(self, value):
        return value.strip().upper()


class StockItemSerializer(serializers.ModelSerializer):
    material_name = serializers.CharField(source='material.name', read_only=True)
    area = serializers.SerializerMethodField()

    class Meta:
        model = StockItem
        fields = ['id', 'material', 'material_name', 'internal_id', 'qr_code_value', 'width', 'height',
                  'thickness', 'area', 'location', 'status', 'parent_slab', 'created_at', 'updated_at']

    def get_area(self, obj):
        return float(obj.area)

    def validate(self, attrs):
        for field in ('width', 'height'):
            value = attrs.get(field)
            if value is not None and value <= 0:
                raise serializers.ValidationError({field: 'Must be greater than zero.'})
        parent = attrs.get('parent_slab')
        if parent and self.instance and parent.pk == self.instance.pk:
            raise serializers.ValidationError({'parent_slab': 'A slab cannot be its own parent.'})
        return attrs


class StockItemStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=StockItem.STATUS_CHOICES, required=False)
    location = serializers.CharField(required=False, allow_blank=True, max_length=100)
    note = serializers.CharField(required=False, allow_blank=True)

    def validate(self, attrs):
        if 'status' not in attrs and 'location' not in attrs:
            raise serializers.ValidationError('Provide a status or a location.')
        return attrs
