import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated, AllowAny
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer, TokenRefreshSerializer
from rest_framework_simplejwt.exceptions import InvalidToken, TokenError, AuthenticationFailed
from django.contrib.auth import get_user_model
from django.core.exceptions import ObjectDoesNotExist
from django.shortcuts import get_object_or_404
from django.db.models import Q
from .models import ActivityLog
from .permissions import IsAdminRole, get_user_pages, is_admin_user
from .serializers import (
    UserSerializer, UserCreateSerializer, UserPermissionsSerializer, ActivityLogSerializer
)
from .utils import create_activity_log, paginate_queryset

User = get_user_model()

logger = logging.getLogger(__name__)


class CustomTokenObtainPairSerializer(TokenObtainPairSerializer):
    def validate(self, attrs):
        attrs[self.username_field] = (attrs.get(self.username_field) or '').lower()
        data = super().validate(attrs)
        if not self.user.is_active:
            raise AuthenticationFailed('User account is disabled.')
        data['user'] = UserSerializer(self.user).data
        return data

    @classmethod
    def get_token(cls, user):
        token = super().get_token(user)
        token['email'] = user.email
        token['name'] = user.name
        token['role'] = user.role
        token['permissions'] = get_user_pages(user)
        return token


class CustomTokenObtainPairView(TokenObtainPairView):
    serializer_class = CustomTokenObtainPairSerializer


class CustomTokenRefreshSerializer(TokenRefreshSerializer):
    """Token refresh serializer that handles deleted users gracefully"""
    def validate(self, attrs):
        try:
            return super().validate(attrs)
        except (InvalidToken, TokenError):
            raise InvalidToken('Token is invalid or expired.')
        except (ObjectDoesNotExist, User.DoesNotExist):
            raise InvalidToken('Token is invalid. User no longer exists.')


class CustomTokenRefreshView(TokenRefreshView):
    serializer_class = CustomTokenRefreshSerializer


@api_view(['POST'])
@permission_classes([AllowAny])
def register(request):
    """User registration endpoint"""
    data = request.data.copy()
    # Self registration never grants elevated roles
    data['role'] = User.ROLE_VENDEDOR
    data['custom_permissions'] = []
    serializer = UserCreateSerializer(data=data)
    if serializer.is_valid():
        user = serializer.save()
        token = CustomTokenObtainPairSerializer.get_token(user)
        logger.info(f"User registered: {user.email}")
        return Response({
            'user': UserSerializer(user).data,
            'access': str(token.access_token),
            'refresh': str(token),
        }, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def user_me(request):
    """Get current user with role and effective pages"""
    user_data = UserSerializer(request.user).data
    user_data['is_admin'] = is_admin_user(request.user)
    return Response(user_data)


# User views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsAdminRole])
def user_list_create(request):
    """List all users or create a new user"""
    if request.method == 'GET':
        users = User.objects.all()
        role = request.query_params.get('role')
        if role:
            users = users.filter(role=role)
        is_active = request.query_params.get('is_active')
        if is_active is not None:
            users = users.filter(is_active=is_active.lower() == 'true')
        serializer = UserSerializer(users, many=True)
        return Response(serializer.data)
    else:
        serializer = UserCreateSerializer(data=request.data)
        if serializer.is_valid():
            user = serializer.save()
            create_activity_log(request, 'create', 'User', user.id, object_name=user.email)
            return Response(UserSerializer(user).data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsAdminRole])
def user_detail(request, pk):
    """Retrieve, update or delete a user"""
    user = get_object_or_404(User, pk=pk)

    if request.method == 'GET':
        serializer = UserSerializer(user)
        return Response(serializer.data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = UserSerializer(user, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            password = request.data.get('password')
            if password:
                user.set_password(password)
                user.save(update_fields=['password'])
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        if user.pk == request.user.pk:
            return Response({'error': 'You cannot delete your own account'}, status=status.HTTP_400_BAD_REQUEST)
        create_activity_log(request, 'delete', 'User', user.id, object_name=user.email)
        user.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['PATCH'])
@permission_classes([IsAuthenticated, IsAdminRole])
def user_toggle_status(request, pk):
    """Activate or deactivate a user"""
    user = get_object_or_404(User, pk=pk)
    if user.pk == request.user.pk:
        return Response({'error': 'You cannot deactivate your own account'}, status=status.HTTP_400_BAD_REQUEST)
    user.is_active = not user.is_active
    user.save(update_fields=['is_active', 'updated_at'])
    create_activity_log(
        request, 'update', 'User', user.id, object_name=user.email,
        changes={'is_active': user.is_active},
        description='User activated' if user.is_active else 'User deactivated'
    )
    return Response(UserSerializer(user).data)


@api_view(['PUT'])
@permission_classes([IsAuthenticated, IsAdminRole])
def user_permissions(request, pk):
    """Replace the custom page permissions of a user"""
    user = get_object_or_404(User, pk=pk)
    serializer = UserPermissionsSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    previous = user.custom_permissions
    user.custom_permissions = serializer.validated_data['custom_permissions']
    user.save(update_fields=['custom_permissions', 'updated_at'])
    create_activity_log(
        request, 'update', 'User', user.id, object_name=user.email,
        changes={'custom_permissions': {'old': previous, 'new': user.custom_permissions}}
    )
    return Response(UserSerializer(user).data)


# ActivityLog views (read-only)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def activity_log_list(request):
    """List activity logs with filtering"""
    queryset = ActivityLog.objects.select_related('user')

    if not is_admin_user(request.user):
        queryset = queryset.filter(user=request.user)

    action_filter = request.query_params.get('action', None)
    if action_filter:
        queryset = queryset.filter(action=action_filter)

    model_filter = request.query_params.get('model', None)
    if model_filter:
        queryset = queryset.filter(model_name=model_filter)

    object_id = request.query_params.get('object_id', None)
    if object_id:
        queryset = queryset.filter(object_id=object_id)

    date_from = request.query_params.get('date_from', None)
    date_to = request.query_params.get('date_to', None)
    if date_from:
        queryset = queryset.filter(created_at__date__gte=date_from)
    if date_to:
        queryset = queryset.filter(created_at__date__lte=date_to)

    queryset = queryset.order_by('-created_at')
    return Response(paginate_queryset(request, queryset, ActivityLogSerializer, default_limit=50))


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def activity_log_detail(request, pk):
    """Retrieve an activity log"""
    activity_log = get_object_or_404(ActivityLog, pk=pk)

    if not is_admin_user(request.user) and activity_log.user != request.user:
        return Response({'error': 'Permission denied'}, status=status.HTTP_403_FORBIDDEN)

    serializer = ActivityLogSerializer(activity_log)
    return Response(serializer.data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def global_search(request):
    """Global search across the main entities"""
    query = request.query_params.get('q', '').strip()

    empty = {
        'clients': [],
        'suppliers': [],
        'quotes': [],
        'orders': [],
        'service_orders': [],
        'vehicles': [],
        'materials': [],
    }
    if not query:
        return Response(empty)

    from backend.parties.models import Client, Supplier
    from backend.sales.models import Quote, Order
    from backend.production.models import ServiceOrder
    from backend.logistics.models import Vehicle
    from backend.inventory.models import Material
    from backend.parties.serializers import ClientSerializer, SupplierSerializer
    from backend.sales.serializers import QuoteSerializer, OrderSerializer
    from backend.production.serializers import ServiceOrderSerializer
    from backend.logistics.serializers import VehicleSerializer
    from backend.inventory.serializers import MaterialSerializer

    results = {}

    clients = Client.objects.filter(
        Q(name__icontains=query) |
        Q(email__icontains=query) |
        Q(phone__icontains=query) |
        Q(cpf_cnpj__icontains=query)
    )[:20]
    results['clients'] = ClientSerializer(clients, many=True).data

    suppliers = Supplier.objects.filter(
        Q(name__icontains=query) |
        Q(contact_person__icontains=query) |
        Q(cpf_cnpj__icontains=query)
    )[:20]
    results['suppliers'] = SupplierSerializer(suppliers, many=True).data

    quotes = Quote.objects.filter(
        Q(code__icontains=query) | Q(client_name__icontains=query)
    )[:20]
    results['quotes'] = QuoteSerializer(quotes, many=True).data

    orders = Order.objects.filter(
        Q(code__icontains=query) | Q(client_name__icontains=query)
    )[:20]
    results['orders'] = OrderSerializer(orders, many=True).data

    service_orders = ServiceOrder.objects.filter(
        Q(code__icontains=query) | Q(client_name__icontains=query)
    ).select_related('order')[:20]
    results['service_orders'] = ServiceOrderSerializer(service_orders, many=True).data

    vehicles = Vehicle.objects.filter(
        Q(name__icontains=query) | Q(license_plate__icontains=query)
    )[:20]
    results['vehicles'] = VehicleSerializer(vehicles, many=True).data

    materials = Material.objects.filter(
        Q(name__icontains=query) | Q(sku__icontains=query)
    )[:20]
    results['materials'] = MaterialSerializer(materials, many=True).data

    return Response(results)
