from django.db import transaction
from django.db.models.signals import m2m_changed, post_delete, post_save
from django.dispatch import receiver

from core.models import Service, Staff
from core.utils.cache import invalidate_public_catalog


def _schedule_invalidation(business_id):
    transaction.on_commit(lambda: invalidate_public_catalog(business_id))


@receiver(post_save, sender=Service, dispatch_uid="catalog_cache_on_service_save")
@receiver(post_delete, sender=Service, dispatch_uid="catalog_cache_on_service_delete")
def catalog_cache_on_service_change(sender, instance, **kwargs):
    _schedule_invalidation(instance.business_id)


@receiver(post_save, sender=Staff, dispatch_uid="catalog_cache_on_staff_save")
@receiver(post_delete, sender=Staff, dispatch_uid="catalog_cache_on_staff_delete")
def catalog_cache_on_staff_change(sender, instance, **kwargs):
    _schedule_invalidation(instance.business_id)


@receiver(
    m2m_changed, sender=Service.staff.through, dispatch_uid="catalog_cache_on_assign"
)
def catalog_cache_on_staff_assignment(sender, instance, action, **kwargs):
    if action in ("post_add", "post_remove", "post_clear"):
        _schedule_invalidation(instance.business_id)
