import base64
import binascii
import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.core.files.base import ContentFile
from django.core.files.storage import default_storage
from django.db import transaction
from django.db.models import Q
from django.shortcuts import get_object_or_404
from django.utils import timezone
from backend.core.permissions import page_permission
from backend.core.utils import create_activity_log, generate_code, paginate_queryset
from backend.parties.models import Client
from .models import Quote, Order, Contract, OrderAddendum
from .serializers import (
    QuoteSerializer, OrderSerializer, OrderDetailSerializer, ContractSerializer, ContractSignSerializer,
    OrderAddendumSerializer, AddendumStatusSerializer, items_subtotal,
)

logger = logging.getLogger(__name__)


def _approve_quote(request, quote):
    """Create the order of an approved quote and log the conversion"""
    order, created = quote.get_or_create_order()
    if created:
        logger.info(f"Quote {quote.code} approved, order {order.code} created")
        create_activity_log(
            request, 'quote_approved', 'Quote', quote.id, object_name=quote.code,
            new_status='approved', description=f'Order {order.code} created from quote'
        )
    return order


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, page_permission('quotes')])
def quote_list_create(request):
    """List all quotes or create a new quote"""
    if request.method == 'GET':
        queryset = Quote.objects.select_related('salesperson', 'order')

        status_filter = request.query_params.get('status', None)
        search = request.query_params.get('search', None)
        salesperson = request.query_params.get('salesperson', None)
        date_from = request.query_params.get('date_from', None)
        date_to = request.query_params.get('date_to', None)

        if status_filter:
            queryset = queryset.filter(status=status_filter)
        if search:
            queryset = queryset.filter(Q(code__icontains=search) | Q(client_name__icontains=search))
        if salesperson:
            queryset = queryset.filter(salesperson_id=salesperson)
        if date_from:
            queryset = queryset.filter(created_at__date__gte=date_from)
        if date_to:
            queryset = queryset.filter(created_at__date__lte=date_to)

        return Response(paginate_queryset(request, queryset.order_by('-created_at'), QuoteSerializer))
    else:  # POST
        serializer = QuoteSerializer(data=request.data)
        if serializer.is_valid():
            with transaction.atomic():
                quote = serializer.save(code=generate_code('ORC', Quote), salesperson=request.user)
                create_activity_log(request, 'create', 'Quote', quote.id, object_name=quote.code)
                if quote.status == 'approved':
                    _approve_quote(request, quote)
            return Response(QuoteSerializer(quote).data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, page_permission('quotes')])
def quote_detail(request, pk):
    """Retrieve, update or delete a quote. Moving a quote to approved creates its order."""
    quote = get_object_or_404(Quote, pk=pk)

    if request.method == 'GET':
        serializer = QuoteSerializer(quote)
        return Response(serializer.data)
    elif request.method in ('PUT', 'PATCH'):
        previous_status = quote.status
        serializer = QuoteSerializer(quote, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            with transaction.atomic():
                quote = serializer.save()
                if quote.status != previous_status:
                    create_activity_log(
                        request, 'status_change', 'Quote', quote.id, object_name=quote.code,
                        previous_status=previous_status, new_status=quote.status
                    )
                if quote.status == 'approved':
                    _approve_quote(request, quote)
            return Response(QuoteSerializer(Quote.objects.get(pk=quote.pk)).data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        if hasattr(quote, 'order'):
            return Response({'error': 'Cannot delete a quote that already has an order'}, status=status.HTTP_400_BAD_REQUEST)
        create_activity_log(request, 'delete', 'Quote', quote.id, object_name=quote.code)
        quote.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, page_permission('orders')])
def order_list_create(request):
    """List all orders or create an order without a quote"""
    if request.method == 'GET':
        queryset = Order.objects.select_related('quote', 'salesperson')

        search = request.query_params.get('search', None)
        date_from = request.query_params.get('date_from', None)
        date_to = request.query_params.get('date_to', None)
        if search:
            queryset = queryset.filter(Q(code__icontains=search) | Q(client_name__icontains=search))
        if date_from:
            queryset = queryset.filter(approval_date__date__gte=date_from)
        if date_to:
            queryset = queryset.filter(approval_date__date__lte=date_to)

        return Response(paginate_queryset(request, queryset.order_by('-created_at'), OrderSerializer))
    else:  # POST
        serializer = OrderSerializer(data=request.data)
        if serializer.is_valid():
            order = serializer.save(code=generate_code('PED', Order), salesperson=request.user)
            create_activity_log(request, 'create', 'Order', order.id, object_name=order.code)
            return Response(OrderSerializer(order).data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, page_permission('orders')])
def order_detail(request, pk):
    """Retrieve, update or delete an order"""
    order = get_object_or_404(Order.objects.select_related('quote', 'salesperson'), pk=pk)

    if request.method == 'GET':
        serializer = OrderDetailSerializer(order)
        return Response(serializer.data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = OrderSerializer(order, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            create_activity_log(request, 'update', 'Order', order.id, object_name=order.code)
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        if order.service_orders.exclude(status='cancelled').exists():
            return Response({'error': 'Cannot delete an order with active service orders'}, status=status.HTTP_400_BAD_REQUEST)
        if order.contracts.filter(status='signed').exists():
            return Response({'error': 'Cannot delete an order with a signed contract'}, status=status.HTTP_400_BAD_REQUEST)
        create_activity_log(request, 'delete', 'Order', order.id, object_name=order.code)
        order.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


# Contract views
CONTRACT_TEMPLATE = (
    "CONTRATO DE PRESTAÇÃO DE SERVIÇOS\n\n"
    "Pelo presente instrumento particular, as partes acordam nos termos e condições a seguir.\n\n"
    "Cláusula 1ª - Do Objeto\n"
    "Cláusula 2ª - Do Preço e Condições de Pagamento\n"
    "Cláusula 3ª - Dos Prazos\n"
    "Cláusula 4ª - Das Obrigações\n"
    "Cláusula 5ª - Das Disposições Gerais\n"
)


@api_view(['POST'])
@permission_classes([IsAuthenticated, page_permission('orders', 'production')])
def contract_from_order(request):
    """Create a draft contract for an order"""
    order_id = request.data.get('order')
    try:
        order_id = int(order_id)
    except (TypeError, ValueError):
        return Response({'error': 'A valid order id is required'}, status=status.HTTP_400_BAD_REQUEST)
    order = get_object_or_404(Order, pk=order_id)

    client = order.client
    if client is None:
        client = Client.objects.filter(name=order.client_name).first()

    with transaction.atomic():
        # Numbering is per year; serialize concurrent creations on the order row
        Order.objects.select_for_update().filter(pk=order.pk).first()
        contract = Contract.objects.create(
            order=order,
            quote=order.quote,
            client=client,
            document_number=Contract.next_document_number(),
            content_template=CONTRACT_TEMPLATE,
            variables={
                'client_name': order.client_name,
                'order_code': order.code,
                'order_total': str(order.total),
                'delivery_address': order.delivery_address,
                'quote_code': order.quote.code if order.quote else None,
                'client_cpf_cnpj': client.cpf_cnpj if client else '',
            },
            created_by=request.user,
        )
    logger.info(f"Contract {contract.document_number} created for order {order.code}")
    create_activity_log(
        request, 'create', 'Contract', contract.id, object_name=contract.document_number, new_status='draft'
    )
    return Response(ContractSerializer(contract).data, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated, page_permission('orders', 'production')])
def contract_detail(request, pk):
    contract = get_object_or_404(Contract.objects.select_related('order'), pk=pk)
    return Response(ContractSerializer(contract).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated, page_permission('orders', 'production')])
def order_contracts(request, pk):
    order = get_object_or_404(Order, pk=pk)
    contracts = order.contracts.select_related('order').order_by('-created_at')
    return Response(ContractSerializer(contracts, many=True).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated, page_permission('orders', 'production')])
def contract_sign(request, pk):
    """
    Sign a contract with a drawn signature.

    The signature arrives as a data URL; its image is stored through Django
    storage and the contract moves to signed.
    """
    contract = get_object_or_404(Contract, pk=pk)
    if contract.status == 'signed':
        return Response({'error': 'Contract is already signed'}, status=status.HTTP_400_BAD_REQUEST)

    serializer = ContractSignSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data
    try:
        image = base64.b64decode(data['signature_data_url'].split(',', 1)[1], validate=True)
    except (binascii.Error, ValueError):
        return Response({'signature_data_url': ['Invalid signature.']}, status=status.HTTP_400_BAD_REQUEST)

    previous_status = contract.status
    now = timezone.now()
    path = default_storage.save(
        f"signatures/signature_{contract.id}_{int(now.timestamp() * 1000)}.png", ContentFile(image)
    )
    contract.signatory_name = data['name']
    contract.signatory_document = data['document_number']
    contract.digital_signature_url = default_storage.url(path)
    contract.signed_at = now
    contract.status = 'signed'
    contract.save()

    logger.info(f"Contract {contract.document_number} signed")
    create_activity_log(
        request, 'contract_signed', 'Contract', contract.id, object_name=contract.document_number,
        previous_status=previous_status, new_status='signed'
    )
    return Response(ContractSerializer(contract).data)


# Order addendum views
# Service orders in these statuses take the addendum changes automatically
ADDENDUM_AUTO_UPDATE_STATUSES = ('pending_production', 'scheduled')


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, page_permission('orders')])
def order_addendums(request, pk):
    """List the addendums of an order or add a new one"""
    order = get_object_or_404(Order, pk=pk)

    if request.method == 'GET':
        addendums = order.addendums.select_related('order', 'created_by', 'approved_by').order_by('addendum_number')
        return Response(OrderAddendumSerializer(addendums, many=True).data)

    serializer = OrderAddendumSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    with transaction.atomic():
        Order.objects.select_for_update().filter(pk=order.pk).first()
        number = order.addendums.count() + 1
        addendum = serializer.save(order=order, addendum_number=number, created_by=request.user)
    logger.info(f"Addendum #{number} created for order {order.code}")
    create_activity_log(
        request, 'create', 'OrderAddendum', addendum.id, object_name=str(addendum), new_status='pending',
        description=addendum.reason
    )
    return Response(OrderAddendumSerializer(addendum).data, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated, page_permission('orders')])
def pending_addendums(request):
    addendums = OrderAddendum.objects.filter(status='pending').select_related('order', 'created_by')
    return Response(OrderAddendumSerializer(addendums.order_by('-created_at'), many=True).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated, page_permission('orders')])
def addendum_detail(request, pk):
    addendum = get_object_or_404(OrderAddendum.objects.select_related('order', 'created_by', 'approved_by'), pk=pk)
    return Response(OrderAddendumSerializer(addendum).data)


def _apply_addendum(request, addendum):
    """
    Push an approved addendum into the service orders of its order.
    Returns (updated codes, service orders that need manual review).
    """
    touched = addendum.touched_item_ids()
    updated, manual = [], []
    service_orders = addendum.order.service_orders.select_for_update().exclude(status='cancelled')
    for service_order in service_orders:
        if not touched.intersection(service_order.item_ids()):
            continue
        if service_order.status not in ADDENDUM_AUTO_UPDATE_STATUSES:
            manual.append({
                'code': service_order.code,
                'status': service_order.status,
                'items': [
                    {'id': item.get('id'), 'description': item.get('description'), 'total_price': item.get('total_price')}
                    for item in service_order.items
                ],
            })
            continue
        service_order.items = addendum.apply_to_items(service_order.items)
        service_order.total = items_subtotal(service_order.items)
        service_order.save(update_fields=['items', 'total', 'updated_at'])
        updated.append(service_order.code)
        create_activity_log(
            request, 'addendum_applied', 'ServiceOrder', service_order.id, object_name=service_order.code,
            description=f'Addendum #{addendum.addendum_number} applied'
        )

    if manual:
        logger.warning(
            f"Addendum {addendum} needs manual review on {len(manual)} service order(s): "
            f"{', '.join(entry['code'] for entry in manual)}"
        )
    return updated, manual


@api_view(['PATCH'])
@permission_classes([IsAuthenticated, page_permission('orders')])
def addendum_status(request, pk):
    """Approve or reject a pending addendum"""
    serializer = AddendumStatusSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    new_status = serializer.validated_data['status']

    with transaction.atomic():
        addendum = get_object_or_404(OrderAddendum.objects.select_for_update().select_related('order'), pk=pk)
        if addendum.status != 'pending':
            return Response(
                {'error': f'Addendum was already processed. Current status: {addendum.status}'},
                status=status.HTTP_400_BAD_REQUEST
            )

        impact = None
        if new_status == 'approved':
            updated, manual = _apply_addendum(request, addendum)
            impact = {'updated_service_orders': updated, 'requires_manual_intervention': manual}
            addendum.approved_by = request.user
            addendum.approved_at = timezone.now()
        addendum.status = new_status
        addendum.save()

    logger.info(f"Addendum {addendum} {new_status} by {request.user.email}")
    create_activity_log(
        request, f'addendum_{new_status}', 'OrderAddendum', addendum.id, object_name=str(addendum),
        previous_status='pending', new_status=new_status
    )
    data = OrderAddendumSerializer(addendum).data
    if impact is not None:
        data['impact'] = impact
    return Response(data)
