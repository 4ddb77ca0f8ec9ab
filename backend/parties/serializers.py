import re

from rest_framework import serializers
from .models import Client, ClientNote, Supplier

ADDRESS_FIELDS = ['cep', 'uf', 'city', 'neighborhood', 'address', 'number', 'complement']


def validate_address_dict(value):
    """Addresses are stored as a flat dict of known keys"""
    if value in (None, ''):
        return {}
    if not isinstance(value, dict):
        raise serializers.ValidationError("Address must be an object.")
    unknown = [key for key in value if key not in ADDRESS_FIELDS]
    if unknown:
        raise serializers.ValidationError(f"Unknown address fields: {', '.join(unknown)}")
    uf = value.get('uf')
    if uf and len(uf) != 2:
        raise serializers.ValidationError({'uf': 'State must be a 2 letter code.'})
    return {key: value[key] for key in ADDRESS_FIELDS if key in value}


def normalize_document(value):
    """Keep only the digits of a CPF/CNPJ"""
    if not value:
        return None
    digits = re.sub(r'\D', '', value)
    if len(digits) not in (11, 14):
        raise serializers.ValidationError("CPF must have 11 digits and CNPJ 14 digits.")
    return digits


class ClientSerializer(serializers.ModelSerializer):
    class Meta:
        model = Client
        fields = ['id', 'name', 'type', 'email', 'phone', 'address', 'cpf_cnpj', 'created_at', 'updated_at']

    def validate_address(self, value):
        return validate_address_dict(value)

    def validate_cpf_cnpj(self, value):
        value = normalize_document(value)
        if value:
            existing = Client.objects.filter(cpf_cnpj=value)
            if self.instance:
                existing = existing.exclude(pk=self.instance.pk)
            if existing.exists():
                raise serializers.ValidationError("A client with this CPF/CNPJ already exists.")
        return value


class ClientNoteSerializer(serializers.ModelSerializer):
    created_by_name = serializers.CharField(source='created_by.name', read_only=True, default=None)

    class Meta:
        model = ClientNote
        fields = ['id', 'client', 'content', 'created_by', 'created_by_name', 'created_at', 'updated_at']
        read_only_fields = ['client', 'created_by', 'created_at', 'updated_at']

    def validate_content(self, value):
        if not value.strip():
            raise serializers.ValidationError("Note content cannot be empty.")
        return value.strip()


class SupplierSerializer(serializers.ModelSerializer):
    class Meta:
        model = Supplier
        fields = ['id', 'name', 'contact_person', 'phone', 'email', 'address', 'cpf_cnpj', 'created_at', 'updated_at']

    def validate_address(self, value):
        return validate_address_dict(value)

    def validate_cpf_cnpj(self, value):
        value = normalize_document(value)
        if value:
            existing = Supplier.objects.filter(cpf_cnpj=value)
            if self.instance:
                existing = existing.exclude(pk=self.instance.pk)
            if existing.exists():
                raise serializers.ValidationError("A supplier with this CPF/CNPJ already exists.")
        return value
