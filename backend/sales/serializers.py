import uuid
from decimal import Decimal, ROUND_HALF_UP

from rest_framework import serializers
from backend.parties.serializers import validate_address_dict
from .models import Quote, Order, Contract, OrderAddendum


class QuoteItemSerializer(serializers.Serializer):
    """Line item of a quote, order or service order (stored as JSON)"""
    TYPE_CHOICES = ['material', 'service', 'product']

    id = serializers.CharField(required=False, allow_blank=True)
    type = serializers.ChoiceField(choices=TYPE_CHOICES, default='material')
    description = serializers.CharField()
    category = serializers.CharField(required=False, allow_blank=True)
    quantity = serializers.DecimalField(max_digits=12, decimal_places=3, min_value=Decimal('0'), default=Decimal('0'))
    unit_price = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0'), default=Decimal('0'))
    discount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0'), default=Decimal('0'))
    total_price = serializers.DecimalField(max_digits=12, decimal_places=2, required=False)
    width = serializers.DecimalField(max_digits=8, decimal_places=3, required=False)
    height = serializers.DecimalField(max_digits=8, decimal_places=3, required=False)
    material_id = serializers.IntegerField(required=False, allow_null=True)


def normalize_items(items, id_prefix='item'):
    """
    Validate a list of line items and return JSON-ready dicts.
    Missing ids are generated and missing totals are computed.
    """
    if not isinstance(items, list):
        raise serializers.ValidationError("Items must be a list.")
    serializer = QuoteItemSerializer(data=items, many=True)
    serializer.is_valid(raise_exception=True)

    normalized = []
    for index, item in enumerate(serializer.validated_data):
        item = dict(item)
        if not item.get('id'):
            item['id'] = f"{id_prefix}-{uuid.uuid4().hex[:12]}-{index}"
        if item.get('total_price') is None:
            line_total = item['quantity'] * item['unit_price'] - item['discount']
            item['total_price'] = max(line_total, Decimal('0')).quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)
        for key, value in item.items():
            if isinstance(value, Decimal):
                item[key] = float(value)
        normalized.append(item)
    return normalized


def items_subtotal(items):
    return sum((Decimal(str(item.get('total_price', 0))) for item in items), Decimal('0.00'))


class QuoteSerializer(serializers.ModelSerializer):
    salesperson_name = serializers.CharField(source='salesperson.name', read_only=True, default=None)
    order_id = serializers.SerializerMethodField()

    class Meta:
        model = Quote
        fields = ['id', 'code', 'client', 'client_name', 'client_email', 'client_phone',
                  'delivery_address', 'status', 'items', 'subtotal', 'discount', 'freight',
                  'payment_method', 'installments', 'total', 'notes', 'salesperson',
                  'salesperson_name', 'order_id', 'created_at', 'updated_at']
        read_only_fields = ['code', 'subtotal', 'total', 'salesperson', 'created_at', 'updated_at']

    def get_order_id(self, obj):
        order = getattr(obj, 'order', None)
        return order.id if order else None

    def validate_delivery_address(self, value):
        return validate_address_dict(value)

    def validate_items(self, value):
        return normalize_items(value)

    def validate(self, attrs):
        items = attrs.get('items', self.instance.items if self.instance else [])
        discount = attrs.get('discount', self.instance.discount if self.instance else Decimal('0.00'))
        freight = attrs.get('freight', self.instance.freight if self.instance else Decimal('0.00'))
        subtotal = items_subtotal(items)
        total = subtotal - discount + freight
        if total < 0:
            raise serializers.ValidationError({'discount': 'Discount cannot exceed the quote subtotal.'})
        attrs['subtotal'] = subtotal
        attrs['total'] = total
        if self.instance and self.instance.status == 'approved' and attrs.get('status', 'approved') != 'approved':
            if hasattr(self.instance, 'order'):
                raise serializers.ValidationError({'status': 'An approved quote with an order cannot change status.'})
        return attrs


class OrderSerializer(serializers.ModelSerializer):
    quote_code = serializers.CharField(source='quote.code', read_only=True, default=None)
    salesperson_name = serializers.CharField(source='salesperson.name', read_only=True, default=None)

    class Meta:
        model = Order
        fields = ['id', 'code', 'quote', 'quote_code', 'client', 'client_name', 'delivery_address',
                  'items', 'subtotal', 'discount', 'freight', 'payment_method', 'installments',
                  'total', 'approval_date', 'salesperson', 'salesperson_name', 'created_at', 'updated_at']
        read_only_fields = ['code', 'quote', 'subtotal', 'total', 'approval_date', 'created_at', 'updated_at']

    def validate_delivery_address(self, value):
        return validate_address_dict(value)

    def validate_items(self, value):
        return normalize_items(value)

    def validate(self, attrs):
        items = attrs.get('items', self.instance.items if self.instance else [])
        discount = attrs.get('discount', self.instance.discount if self.instance else Decimal('0.00'))
        freight = attrs.get('freight', self.instance.freight if self.instance else Decimal('0.00'))
        attrs['subtotal'] = items_subtotal(items)
        attrs['total'] = attrs['subtotal'] - discount + freight
        return attrs


class OrderDetailSerializer(OrderSerializer):
    service_orders = serializers.SerializerMethodField()

    class Meta(OrderSerializer.Meta):
        fields = OrderSerializer.Meta.fields + ['service_orders']

    def get_service_orders(self, obj):
        from backend.production.serializers import ServiceOrderSerializer
        return ServiceOrderSerializer(obj.service_orders.all(), many=True).data


class ContractSerializer(serializers.ModelSerializer):
    order_code = serializers.CharField(source='order.code', read_only=True)
    signatory_info = serializers.SerializerMethodField()

    class Meta:
        model = Contract
        fields = ['id', 'order', 'order_code', 'quote', 'client', 'document_number', 'status',
                  'content_template', 'variables', 'signatory_info', 'digital_signature_url',
                  'signed_at', 'created_by', 'created_at', 'updated_at']
        read_only_fields = fields

    def get_signatory_info(self, obj):
        return {'name': obj.signatory_name, 'document_number': obj.signatory_document}


class ContractSignSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=200, required=False, allow_blank=True, default='')
    document_number = serializers.CharField(max_length=30, required=False, allow_blank=True, default='')
    signature_data_url = serializers.CharField()

    def validate_signature_data_url(self, value):
        if not value.startswith('data:') or ',' not in value:
            raise serializers.ValidationError('Invalid signature.')
        return value


class ChangedItemSerializer(serializers.Serializer):
    original_item_id = serializers.CharField()
    updated_item = serializers.DictField()


class OrderAddendumSerializer(serializers.ModelSerializer):
    order_code = serializers.CharField(source='order.code', read_only=True)
    created_by_name = serializers.CharField(source='created_by.name', read_only=True, default=None)
    approved_by_name = serializers.CharField(source='approved_by.name', read_only=True, default=None)

    class Meta:
        model = OrderAddendum
        fields = ['id', 'order', 'order_code', 'addendum_number', 'reason', 'status', 'added_items',
                  'removed_item_ids', 'changed_items', 'price_adjustment', 'approved_by',
                  'approved_by_name', 'approved_at', 'created_by', 'created_by_name', 'created_at', 'updated_at']
        read_only_fields = ['order', 'addendum_number', 'status', 'approved_by', 'approved_at',
                            'created_by', 'created_at', 'updated_at']

    def validate_reason(self, value):
        value = (value or '').strip()
        if not value:
            raise serializers.ValidationError('A reason is required.')
        return value

    def validate_added_items(self, value):
        return normalize_items(value, id_prefix='add')

    def validate_removed_item_ids(self, value):
        if not isinstance(value, list) or not all(isinstance(item_id, str) and item_id for item_id in value):
            raise serializers.ValidationError('Must be a list of item ids.')
        return value

    def validate_changed_items(self, value):
        serializer = ChangedItemSerializer(data=value, many=True)
        serializer.is_valid(raise_exception=True)
        changes = []
        for change in serializer.validated_data:
            # The replacement keeps the id of the item it replaces
            updated = dict(change['updated_item'], id=change['original_item_id'])
            changes.append({
                'original_item_id': change['original_item_id'],
                'updated_item': normalize_items([updated])[0],
            })
        return changes


class AddendumStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=['approved', 'rejected'])
