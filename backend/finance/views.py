import logging
from decimal import Decimal

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.core.files.base import ContentFile
from django.core.files.storage import default_storage
from django.db import transaction
from django.db.models import Sum, Q
from django.shortcuts import get_object_or_404
from django.utils import timezone
from backend.core.permissions import page_permission
from backend.core.utils import create_activity_log, paginate_queryset
from backend.parties.models import Client
from backend.sales.models import Order
from .models import Invoice, FinancialTransaction
from .serializers import InvoiceSerializer, FinancialTransactionSerializer, PaymentSerializer

logger = logging.getLogger(__name__)


# Invoice views
@api_view(['GET'])
@permission_classes([IsAuthenticated, page_permission('finance', 'invoices')])
def invoice_list(request):
    queryset = Invoice.objects.select_related('order')
    status_filter = request.query_params.get('status', None)
    if status_filter:
        queryset = queryset.filter(status=status_filter)
    search = request.query_params.get('search', None)
    if search:
        queryset = queryset.filter(Q(client_name__icontains=search) | Q(order__code__icontains=search) | Q(nfe_key__icontains=search))
    return Response(paginate_queryset(request, queryset.order_by('-created_at'), InvoiceSerializer, default_limit=50))


@api_view(['GET'])
@permission_classes([IsAuthenticated, page_permission('finance', 'invoices')])
def invoice_detail(request, pk):
    invoice = get_object_or_404(Invoice.objects.select_related('order'), pk=pk)
    return Response(InvoiceSerializer(invoice).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated, page_permission('finance', 'invoices')])
def invoice_from_order(request):
    """Create the pending invoice of an order. An order has at most one invoice."""
    order_id = request.data.get('order')
    try:
        order_id = int(order_id)
    except (TypeError, ValueError):
        return Response({'error': 'A valid order id is required'}, status=status.HTTP_400_BAD_REQUEST)

    existing = Invoice.objects.filter(order_id=order_id).first()
    if existing:
        return Response(
            {'error': 'An invoice already exists for this order', 'invoice': InvoiceSerializer(existing).data},
            status=status.HTTP_400_BAD_REQUEST
        )
    order = get_object_or_404(Order, pk=order_id)

    client = order.client
    if client is None:
        client = Client.objects.filter(name=order.client_name).first()

    invoice = Invoice.objects.create(
        order=order,
        client=client,
        client_name=order.client_name,
        buyer_document=(client.cpf_cnpj or '') if client else '',
        buyer_address=order.delivery_address,
        items=order.items,
        total=order.total,
        created_by=request.user,
    )
    create_activity_log(request, 'create', 'Invoice', invoice.id, object_name=order.code, new_status='pending')
    return Response(InvoiceSerializer(invoice).data, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([IsAuthenticated, page_permission('finance', 'invoices')])
def invoice_issue(request, pk):
    """Simulate the NF-e emission of a pending invoice"""
    with transaction.atomic():
        invoice = get_object_or_404(Invoice.objects.select_for_update().select_related('order'), pk=pk)
        if invoice.status != 'pending':
            return Response({'error': 'Invoice is not pending'}, status=status.HTTP_400_BAD_REQUEST)

        now = timezone.now()
        nfe_key = f"NFE_SIMULADA_55_{int(now.timestamp() * 1000)}"
        content = f"PDF simulado para NFE {nfe_key}\nPedido: {invoice.order.code}\nCliente: {invoice.client_name}\n"
        pdf_path = default_storage.save(f"nfe_simulada/{nfe_key}.pdf", ContentFile(content.encode('utf-8')))

        invoice.status = 'issued'
        invoice.issue_date = now
        invoice.nfe_key = nfe_key
        invoice.nfe_pdf_url = default_storage.url(pdf_path)
        invoice.save()

    logger.info(f"Invoice {invoice.id} issued with key {nfe_key}")
    create_activity_log(
        request, 'invoice_issue', 'Invoice', invoice.id, object_name=nfe_key,
        previous_status='pending', new_status='issued'
    )
    return Response(InvoiceSerializer(invoice).data)


# FinancialTransaction views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, page_permission('finance')])
def transaction_list_create(request):
    """List financial transactions or create one"""
    if request.method == 'GET':
        queryset = FinancialTransaction.objects.select_related('related_order', 'related_client')

        transaction_type = request.query_params.get('type', None)
        status_filter = request.query_params.get('status', None)
        search = request.query_params.get('search', None)
        date_from = request.query_params.get('date_from', None)
        date_to = request.query_params.get('date_to', None)

        if transaction_type:
            queryset = queryset.filter(type=transaction_type)
        if status_filter:
            queryset = queryset.filter(status=status_filter)
        if search:
            queryset = queryset.filter(description__icontains=search)
        if date_from:
            queryset = queryset.filter(due_date__gte=date_from)
        if date_to:
            queryset = queryset.filter(due_date__lte=date_to)

        return Response(paginate_queryset(request, queryset, FinancialTransactionSerializer, default_limit=50))
    else:
        serializer = FinancialTransactionSerializer(data=request.data)
        if serializer.is_valid():
            entry = serializer.save(created_by=request.user)
            create_activity_log(request, 'create', 'FinancialTransaction', entry.id, object_name=entry.description)
            return Response(serializer.data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, page_permission('finance')])
def transaction_detail(request, pk):
    entry = get_object_or_404(FinancialTransaction, pk=pk)

    if request.method == 'GET':
        serializer = FinancialTransactionSerializer(entry)
        return Response(serializer.data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = FinancialTransactionSerializer(entry, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            create_activity_log(request, 'update', 'FinancialTransaction', entry.id, object_name=entry.description)
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        create_activity_log(request, 'delete', 'FinancialTransaction', entry.id, object_name=entry.description)
        entry.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['POST'])
@permission_classes([IsAuthenticated, page_permission('finance')])
def transaction_pay(request, pk):
    """Mark a pending transaction as paid"""
    entry = get_object_or_404(FinancialTransaction, pk=pk)
    if entry.status == 'pago':
        return Response({'error': 'Transaction is already paid'}, status=status.HTTP_400_BAD_REQUEST)
    serializer = PaymentSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    entry.status = 'pago'
    entry.payment_date = serializer.validated_data.get('payment_date') or timezone.localdate()
    if serializer.validated_data.get('payment_method'):
        entry.payment_method = serializer.validated_data['payment_method']
    entry.save()
    create_activity_log(
        request, 'payment', 'FinancialTransaction', entry.id, object_name=entry.description,
        previous_status='pendente', new_status='pago'
    )
    return Response(FinancialTransactionSerializer(entry).data)


def _total(queryset):
    total = queryset.aggregate(total=Sum('amount'))['total'] or Decimal('0.00')
    return total.quantize(Decimal('0.01'))


def transactions_summary(queryset):
    """Paid income/expenses, balance and open amounts of a transaction queryset"""
    today = timezone.localdate()
    paid = queryset.filter(status='pago')
    pending = queryset.filter(status='pendente')
    income = _total(paid.filter(type='receita'))
    expenses = _total(paid.filter(type='despesa'))
    return {
        'income': income,
        'expenses': expenses,
        'balance': income - expenses,
        'pending_income': _total(pending.filter(type='receita')),
        'pending_expenses': _total(pending.filter(type='despesa')),
        'overdue_count': pending.filter(due_date__lt=today).count(),
    }


@api_view(['GET'])
@permission_classes([IsAuthenticated, page_permission('finance')])
def transaction_summary(request):
    queryset = FinancialTransaction.objects.all()
    date_from = request.query_params.get('date_from', None)
    date_to = request.query_params.get('date_to', None)
    if date_from:
        queryset = queryset.filter(due_date__gte=date_from)
    if date_to:
        queryset = queryset.filter(due_date__lte=date_to)

    summary = transactions_summary(queryset)
    return Response({key: str(value) if isinstance(value, Decimal) else value for key, value in summary.items()})
