import logging

from django.conf import settings
from django.core.cache import cache

logger = logging.getLogger("core")


def public_catalog_key(business_id: int) -> str:
    return f"core:public-catalog:{business_id}"


def get_public_catalog(business_id: int):
    return cache.get(public_catalog_key(business_id))


def set_public_catalog(business_id: int, payload) -> None:
    ttl = getattr(settings, "PUBLIC_CATALOG_CACHE_TTL", 60)
    cache.set(public_catalog_key(business_id), payload, timeout=ttl)


def invalidate_public_catalog(business_id: int) -> None:
    cache.delete(public_catalog_key(business_id))
    logger.debug("public_catalog_invalidated", extra={"business_pk": business_id})
