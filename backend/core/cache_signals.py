"""
Cache invalidation signals
Automatically invalidate dashboard and report caches when data changes
"""
from django.db.models.signals import post_save, post_delete
from django.dispatch import receiver
import logging

from .cache_utils import invalidate_dashboard_cache

logger = logging.getLogger(__name__)

# Models feeding the dashboard and the reports
DASHBOARD_MODELS = {
    'Quote',
    'Order',
    'ServiceOrder',
    'DeliveryRoute',
    'ProductionEmployee',
    'Invoice',
    'FinancialTransaction',
    'StockItem',
    'Material',
}


@receiver([post_save, post_delete])
def invalidate_dashboard_on_change(sender, instance, **kwargs):
    """Invalidate dashboard cache when a model it aggregates changes"""
    if sender.__name__ not in DASHBOARD_MODELS:
        return
    try:
        invalidate_dashboard_cache()
    except Exception as e:
        logger.warning(f"Error in invalidate_dashboard_on_change signal: {e}")
