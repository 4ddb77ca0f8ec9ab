from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.db.models import Q
from django.shortcuts import get_object_or_404
from backend.core.permissions import page_permission, is_admin_user
from backend.core.utils import create_activity_log, paginate_queryset
from .models import Client, ClientNote, Supplier
from .serializers import ClientSerializer, ClientNoteSerializer, SupplierSerializer


# Client views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, page_permission('crm', 'quotes', 'orders')])
def client_list_create(request):
    """List all clients or create a new client"""
    if request.method == 'GET':
        queryset = Client.objects.all()

        search = request.query_params.get('search', None)
        if search:
            queryset = queryset.filter(
                Q(name__icontains=search) |
                Q(email__icontains=search) |
                Q(phone__icontains=search) |
                Q(cpf_cnpj__icontains=search)
            )
        client_type = request.query_params.get('type', None)
        if client_type:
            queryset = queryset.filter(type=client_type)

        return Response(paginate_queryset(request, queryset.order_by('name'), ClientSerializer, default_limit=50))
    else:
        serializer = ClientSerializer(data=request.data)
        if serializer.is_valid():
            client = serializer.save()
            create_activity_log(request, 'create', 'Client', client.id, object_name=client.name)
            return Response(serializer.data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, page_permission('crm', 'quotes', 'orders')])
def client_detail(request, pk):
    """Retrieve, update or delete a client"""
    client = get_object_or_404(Client, pk=pk)

    if request.method == 'GET':
        serializer = ClientSerializer(client)
        return Response(serializer.data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = ClientSerializer(client, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            create_activity_log(request, 'update', 'Client', client.id, object_name=client.name,
                                changes=dict(request.data))
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        create_activity_log(request, 'delete', 'Client', client.id, object_name=client.name)
        client.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, page_permission('crm')])
def client_note_list_create(request, client_id):
    """List or add notes for a client"""
    client = get_object_or_404(Client, pk=client_id)

    if request.method == 'GET':
        notes = client.notes.select_related('created_by')
        serializer = ClientNoteSerializer(notes, many=True)
        return Response(serializer.data)
    else:
        serializer = ClientNoteSerializer(data=request.data)
        if serializer.is_valid():
            serializer.save(client=client, created_by=request.user)
            return Response(serializer.data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, page_permission('crm')])
def client_note_detail(request, client_id, pk):
    """Update or delete a client note. Only the author or an admin may change it."""
    note = get_object_or_404(ClientNote, pk=pk, client_id=client_id)

    if note.created_by_id != request.user.id and not is_admin_user(request.user):
        return Response({'error': 'Only the author can change this note'}, status=status.HTTP_403_FORBIDDEN)

    if request.method in ('PUT', 'PATCH'):
        serializer = ClientNoteSerializer(note, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        note.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


# Supplier views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, page_permission('suppliers', 'stock', 'catalog')])
def supplier_list_create(request):
    """List all suppliers or create a new supplier"""
    if request.method == 'GET':
        queryset = Supplier.objects.all()
        search = request.query_params.get('search', None)
        if search:
            queryset = queryset.filter(
                Q(name__icontains=search) |
                Q(contact_person__icontains=search) |
                Q(cpf_cnpj__icontains=search)
            )
        serializer = SupplierSerializer(queryset.order_by('name'), many=True)
        return Response(serializer.data)
    else:
        serializer = SupplierSerializer(data=request.data)
        if serializer.is_valid():
            supplier = serializer.save()
            create_activity_log(request, 'create', 'Supplier', supplier.id, object_name=supplier.name)
            return Response(serializer.data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, page_permission('suppliers')])
def supplier_detail(request, pk):
    """Retrieve, update or delete a supplier"""
    supplier = get_object_or_404(Supplier, pk=pk)

    if request.method == 'GET':
        serializer = SupplierSerializer(supplier)
        return Response(serializer.data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = SupplierSerializer(supplier, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        create_activity_log(request, 'delete', 'Supplier', supplier.id, object_name=supplier.name)
        supplier.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)
