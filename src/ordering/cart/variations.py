"""Variation → parent product resolution.

Clients on the price-list UI send a variation's own id as both product id
and variation id. Merge keys are built on the parent product, so the parent
is looked up upstream and memoised in the injected cache.
"""

import structlog

from shared.cache import TTLCache
from shared.errors import UpstreamError
from upstream.port import CommercePort

logger = structlog.get_logger(__name__)


class ParentResolver:
    def __init__(self, commerce: CommercePort, cache: TTLCache) -> None:
        self._commerce = commerce
        self._cache = cache

    async def parent_of(self, variation_id: int) -> int | None:
        """Parent product id of ``variation_id``; ``None`` when it has none or the lookup fails."""
        key = ("parent", variation_id)
        cached = self._cache.get(key)
        if cached is not None:
            return cached or None

        try:
            product = await self._commerce.get_product(variation_id)
        except UpstreamError as exc:
            logger.warning(
                "Variation lookup failed, keeping client product id",
                variation_id=variation_id,
                upstream_status=exc.upstream_status,
            )
            return None

        parent_id = int(product.get("parent_id") or 0)
        self._cache.set(key, parent_id)
        return parent_id or None

    async def resolve(self, product_id: int, variation_id: int | None) -> int:
        """Product id to key the cart entry on."""
        if not variation_id or product_id != variation_id:
            return product_id
        parent_id = await self.parent_of(variation_id)
        if parent_id is None:
            return product_id
        logger.debug("Resolved variation parent", variation_id=variation_id, product_id=parent_id)
        return parent_id
