from decimal import Decimal

from rest_framework import serializers
from .models import Invoice, FinancialTransaction


class InvoiceSerializer(serializers.ModelSerializer):
    order_code = serializers.CharField(source='order.code', read_only=True)

    class Meta:
        model = Invoice
        fields = ['id', 'order', 'order_code', 'client', 'client_name', 'buyer_document', 'buyer_address',
                  'items', 'total', 'status', 'issue_date', 'nfe_key', 'nfe_xml_url', 'nfe_pdf_url',
                  'created_at', 'updated_at']
        read_only_fields = fields


class FinancialTransactionSerializer(serializers.ModelSerializer):
    related_order_code = serializers.CharField(source='related_order.code', read_only=True, default=None)
    related_client_name = serializers.CharField(source='related_client.name', read_only=True, default=None)

    class Meta:
        model = FinancialTransaction
        fields = ['id', 'description', 'amount', 'type', 'status', 'due_date', 'payment_date',
                  'related_order', 'related_order_code', 'related_client', 'related_client_name',
                  'payment_method', 'attachment_url', 'attachment_name', 'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']

    def validate_amount(self, value):
        if value <= Decimal('0'):
            raise serializers.ValidationError("Amount must be greater than zero.")
        return value

    def validate(self, attrs):
        status = attrs.get('status', self.instance.status if self.instance else 'pendente')
        payment_date = attrs.get('payment_date', self.instance.payment_date if self.instance else None)
        if status == 'pendente' and 'status' in attrs:
            attrs['payment_date'] = None
        elif status == 'pago' and payment_date is None:
            raise serializers.ValidationError({'payment_date': 'A paid transaction needs a payment date.'})
        return attrs


class PaymentSerializer(serializers.Serializer):
    payment_date = serializers.DateField(required=False)
    payment_method = serializers.ChoiceField(choices=FinancialTransaction._meta.get_field('payment_method').choices,
                                             required=False)
