from rest_framework import serializers
from backend.parties.serializers import normalize_document
from .models import Equipment


class EquipmentSerializer(serializers.ModelSerializer):
    qr_code_value = serializers.CharField(read_only=True)

    class Meta:
        model = Equipment
        fields = ['id', 'name', 'serial_number', 'category', 'purchase_date', 'warranty_end_date',
                  'purchase_invoice_number', 'supplier_cnpj', 'assigned_to', 'status', 'current_location',
                  'notes', 'qr_code_value', 'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']

    def validate_serial_number(self, value):
        return value.strip()

    def validate_supplier_cnpj(self, value):
        digits = normalize_document(value)
        if digits is None or len(digits) != 14:
            raise serializers.ValidationError("CNPJ must have 14 digits.")
        return digits

    def validate(self, attrs):
        purchase = attrs.get('purchase_date', self.instance.purchase_date if self.instance else None)
        warranty = attrs.get('warranty_end_date', self.instance.warranty_end_date if self.instance else None)
        if purchase and warranty and warranty < purchase:
            raise serializers.ValidationError({'warranty_end_date': 'Warranty cannot end before the purchase date.'})
        return attrs


class AssetStatusSerializer(serializers.Serializer):
    status = serializers.CharField(max_length=30)


class AssetLocationSerializer(serializers.Serializer):
    location = serializers.CharField(max_length=100)
