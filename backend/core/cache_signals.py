"""
Cache invalidation signals
Automatically invalidate tenant report caches when QMS records change
"""
from django.db.models.signals import post_save, post_delete
from django.dispatch import receiver

from .model_cache import invalidate_tenant_reports

# Models whose changes affect dashboard/compliance figures
REPORTED_MODELS = {
    'Document', 'ChangeControl', 'Deviation', 'CAPA', 'Audit',
    'Training', 'TrainingAssignment', 'Certificate',
}


@receiver([post_save, post_delete])
def invalidate_report_cache(sender, instance, **kwargs):
    """Invalidate a tenant's report cache when one of its QMS records changes"""
    if sender.__name__ not in REPORTED_MODELS:
        return
    invalidate_tenant_reports(getattr(instance, 'tenant_id', None))
