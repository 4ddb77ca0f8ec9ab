"""Utility functions for activity logging"""
import logging

from .models import ActivityLog

logger = logging.getLogger(__name__)


def get_client_ip(request):
    """Extract client IP address from request"""
    if not request or not hasattr(request, 'META'):
        return None
    x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
    if x_forwarded_for:
        ip = x_forwarded_for.split(',')[0].strip()
    else:
        ip = request.META.get('REMOTE_ADDR')
    return ip or None


def create_activity_log(request=None, action=None, model_name=None, object_id=None,
                        changes=None, user=None, object_name=None, description='',
                        previous_status=None, new_status=None,
                        previous_location=None, new_location=None):
    """
    Create an activity log entry

    Args:
        request: Django request object (for user and IP) - optional if user is provided
        action: Action type (create, update, status_change, status_update, etc.)
        model_name: Name of the model being acted upon
        object_id: ID of the object (as string)
        changes: Dictionary of changes made
        user: Optional user override (defaults to request.user if request provided)
        object_name: Human-readable name of the object (e.g., service order code)
        description: Free text shown in the activity feed
        previous_status/new_status: Status transition, when the action changes one
        previous_location/new_location: Location transition for stock items
    """
    try:
        log_user = None
        if user:
            log_user = user
        elif request and hasattr(request, 'user'):
            log_user = request.user

        ip_address = get_client_ip(request) if request else None

        if not action or not model_name or not object_id:
            logger.warning(f"Activity log creation skipped: missing required fields (action={action}, model_name={model_name}, object_id={object_id})")
            return None

        return ActivityLog.objects.create(
            user=log_user if log_user and log_user.is_authenticated else None,
            action=action,
            model_name=model_name,
            object_id=str(object_id),
            object_name=object_name,
            description=description or '',
            previous_status=previous_status,
            new_status=new_status,
            previous_location=previous_location,
            new_location=new_location,
            changes=changes or {},
            ip_address=ip_address
        )
    except Exception as e:
        # Don't fail the main operation if activity logging fails
        logger.error(f"Failed to create activity log: {str(e)}")
        return None


def paginate_queryset(request, queryset, serializer_class, default_limit=15, context=None):
    """Build the paginated response body used by list endpoints"""
    from django.core.paginator import Paginator

    try:
        page = int(request.query_params.get('page', 1))
        limit = int(request.query_params.get('limit', default_limit))
    except (TypeError, ValueError):
        page, limit = 1, default_limit
    limit = max(1, min(limit, 200))

    paginator = Paginator(queryset, limit)
    page_obj = paginator.get_page(page)

    serializer = serializer_class(page_obj, many=True, context=context or {'request': request})
    return {
        'results': serializer.data,
        'count': paginator.count,
        'next': page_obj.next_page_number() if page_obj.has_next() else None,
        'previous': page_obj.previous_page_number() if page_obj.has_previous() else None,
        'page': page_obj.number,
        'page_size': limit,
        'total_pages': paginator.num_pages,
    }


def generate_code(prefix, model, field='code', max_retries=10):
    """
    Generate a unique document code: PREFIX-YYYYMMDD-HHMMSS-NNN.
    The random suffix is retried. After max_retries the code becomes
    PREFIX-YYYYMMDD-HHMMSSmmm-NNNN (milliseconds plus a four digit suffix).
    """
    import random
    from django.utils import timezone

    now = timezone.localtime()
    stamp = now.strftime('%Y%m%d-%H%M%S')
    for _ in range(max_retries + 1):
        code = f"{prefix}-{stamp}-{random.randint(0, 999):03d}"
        if not model.objects.filter(**{field: code}).exists():
            return code
    logger.warning(f"Could not generate a random {prefix} code after {max_retries} retries, using milliseconds")
    return f"{prefix}-{stamp}{now.microsecond // 1000:03d}-{random.randint(0, 9999):04d}"
