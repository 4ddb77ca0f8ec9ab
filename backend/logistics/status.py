"""
Logistics status of a service order, derived from its delivery routes.
"""
import logging

from django.db import transaction

logger = logging.getLogger('backend.logistics')

# Logistics statuses that only exist because of routes; they fall back to
# awaiting_scheduling once the order has no routes left.
ROUTE_DRIVEN_STATUSES = ('scheduled', 'in_transit', 'completed')

# Unified service order status mirrored from the derived logistics status
UNIFIED_STATUS_FOR = {
    'awaiting_scheduling': 'ready_for_logistics',
    'scheduled': 'scheduled',
    'in_transit': 'in_transit',
    'completed': 'completed',
}

# Unified statuses that follow the routes; any other status is left alone.
MIRRORED_UNIFIED_STATUSES = (
    'ready_for_logistics', 'scheduled', 'in_transit', 'delivered', 'awaiting_installation', 'completed',
)


def calculate_derived_status(route_statuses):
    """
    Resolve a logistics status from route statuses.

    Precedence:
        no routes                    -> None
        every route completed        -> completed
        any route in_progress        -> in_transit
        any route scheduled          -> scheduled
        every route cancelled        -> awaiting_scheduling
        anything else                -> None
    """
    statuses = [getattr(route, 'status', route) for route in route_statuses]
    if not statuses:
        return None

    if all(route_status == 'completed' for route_status in statuses):
        return 'completed'
    if 'in_progress' in statuses:
        return 'in_transit'
    if 'scheduled' in statuses:
        return 'scheduled'
    if all(route_status == 'cancelled' for route_status in statuses):
        return 'awaiting_scheduling'
    return None


def derive_service_order_status(service_order):
    statuses = list(service_order.delivery_routes.values_list('status', flat=True))
    return calculate_derived_status(statuses)


def apply_derived_status(service_order, user=None):
    """
    Recompute and persist the logistics status of a service order.

    An order left without routes falls back to awaiting_scheduling when its
    status came from routes. A mix the table cannot resolve (completed and
    cancelled routes) leaves the order untouched.

    Returns the logistics status after the update.
    """
    from backend.production.models import ServiceOrder

    with transaction.atomic():
        service_order = ServiceOrder.objects.select_for_update().get(pk=service_order.pk)
        derived = derive_service_order_status(service_order)

        if derived is None:
            has_routes = service_order.delivery_routes.exists()
            if has_routes or service_order.logistics_status not in ROUTE_DRIVEN_STATUSES:
                return service_order.logistics_status
            derived = 'awaiting_scheduling'

        update_fields = []
        if service_order.logistics_status != derived:
            logger.info(f"{service_order.code}: logistics status {service_order.logistics_status} -> {derived}")
            service_order.logistics_status = derived
            update_fields.append('logistics_status')

        unified = UNIFIED_STATUS_FOR.get(derived)
        if unified and service_order.status in MIRRORED_UNIFIED_STATUSES:
            if service_order.set_status(unified, user=user, note='Updated from delivery routes'):
                update_fields += ['status', 'production_status', 'history']

        if derived == 'completed' and not service_order.is_finalized:
            service_order.is_finalized = True
            update_fields.append('is_finalized')

        if update_fields:
            service_order.save(update_fields=list(dict.fromkeys(update_fields)) + ['updated_at'])
        return derived
