"""
Cache invalidation signals
Automatically invalidate cached finance reports when orders or payroll change
"""
from django.db import transaction
from django.db.models.signals import post_save, post_delete
from django.dispatch import receiver
import logging

from .cache_utils import invalidate_finance_cache

logger = logging.getLogger(__name__)

FINANCE_SOURCE_MODELS = ['Order', 'OrderItem', 'Employee', 'SalaryRecord']


@receiver([post_save, post_delete])
def invalidate_finance_reports(sender, instance, **kwargs):
    """Invalidate finance cache when orders, employees or salary records change"""
    if sender.__name__ not in FINANCE_SOURCE_MODELS:
        return

    try:
        # Use transaction.on_commit to ensure cache is invalidated AFTER DB commit
        transaction.on_commit(invalidate_finance_cache)
    except Exception as e:
        logger.warning(f"Error in invalidate_finance_reports signal: {e}")
