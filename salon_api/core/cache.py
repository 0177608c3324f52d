"""
Tag-based response cache.

Read endpoints store their serialized responses here under a key built from
the resource name, the owner id and the query parameters. Every entry carries
a set of tags; mutations drop all entries carrying the resource tag of the
affected owner so the next read goes to the datastore again.

Tags:
  - "<resource>"              every owner's entries for a resource
  - "<resource>:<owner_id>"   one owner's entries for a resource
  - "user:<owner_id>"         everything cached for one owner
"""

from __future__ import annotations

import logging
import time
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Iterable, List, Optional, Sequence, Set, Union
from uuid import UUID

from salon_api.core.settings import get_app_settings

logger = logging.getLogger(__name__)

OwnerKey = Union[str, UUID, None]

# Freshness tiers in seconds
CACHE_TTL = {
    "static": 3600,
    "semi_static": 300,
    "dynamic": 60,
    "realtime": 0,
}

RESOURCE_CACHE_TTL = {
    "products": CACHE_TTL["semi_static"],
    "customers": CACHE_TTL["dynamic"],
    "staff": CACHE_TTL["semi_static"],
    "appointments": CACHE_TTL["realtime"],
    "transactions": CACHE_TTL["dynamic"],
    "expenses": CACHE_TTL["dynamic"],
    "settings": CACHE_TTL["static"],
}


# PUBLIC_INTERFACE
def create_cache_tag(resource: str, owner_id: OwnerKey = None) -> str:
    """Return "resource:owner" when an owner is given, else the bare resource name."""
    return f"{resource}:{owner_id}" if owner_id else resource


# PUBLIC_INTERFACE
def create_cache_tags(resource: str, owner_id: OwnerKey = None) -> List[str]:
    """Return the full tag set for a cached resource read."""
    tags = [resource]
    if owner_id:
        tags.append(create_cache_tag(resource, owner_id))
        tags.append(f"user:{owner_id}")
    return tags


@dataclass
class _Entry:
    value: Any
    expires_at: float
    tags: Set[str] = field(default_factory=set)


class ResponseCache:
    """
    In-process cache keyed by joined key parts with tag-based invalidation.

    Entries are kept in least-recently-used order. Every store first drops
    expired entries, then evicts from the cold end while more than
    max_entries remain (CACHE_MAX_ENTRIES when not given).
    """

    def __init__(self, max_entries: Optional[int] = None) -> None:
        self._entries: "OrderedDict[str, _Entry]" = OrderedDict()
        self.max_entries = max_entries

    @staticmethod
    def build_key(keys: Sequence[Any]) -> str:
        return ":".join("" if k is None else str(k) for k in keys)

    # PUBLIC_INTERFACE
    async def get_or_set(
        self,
        fetcher: Callable[[], Awaitable[Any]],
        keys: Sequence[Any],
        ttl: int = CACHE_TTL["dynamic"],
        tags: Optional[Iterable[str]] = None,
    ) -> Any:
        """
        Return the cached value for keys while fresh; otherwise await fetcher and store it.

        Parameters:
            fetcher: coroutine factory producing a JSON-compatible value
            keys: key parts, joined with ':'
            ttl: seconds until the entry goes stale; 0 disables caching
            tags: invalidation tags (defaults to the key parts)
        """
        settings = get_app_settings()
        if ttl <= 0 or not settings.CACHE_ENABLED:
            return await fetcher()

        key = self.build_key(keys)
        entry = self._entries.get(key)
        if entry is not None and entry.expires_at > time.monotonic():
            self._entries.move_to_end(key)
            return entry.value

        value = await fetcher()
        tag_set = set(tags) if tags is not None else {str(k) for k in keys if k is not None}
        now = time.monotonic()
        self.purge_expired(now)
        self._entries[key] = _Entry(value=value, expires_at=now + ttl, tags=tag_set)
        self._entries.move_to_end(key)
        limit = max(1, self.max_entries or settings.CACHE_MAX_ENTRIES)
        while len(self._entries) > limit:
            self._entries.popitem(last=False)
        return value

    def purge_expired(self, now: Optional[float] = None) -> int:
        """Drop entries whose ttl has elapsed. Returns the number removed."""
        now = time.monotonic() if now is None else now
        expired = [k for k, e in self._entries.items() if e.expires_at <= now]
        for k in expired:
            del self._entries[k]
        return len(expired)

    # PUBLIC_INTERFACE
    async def revalidate(self, tags: Iterable[str]) -> int:
        """Drop every entry carrying any of the tags. Returns the number removed."""
        wanted = set(tags)
        stale = [k for k, e in self._entries.items() if e.tags & wanted]
        for k in stale:
            del self._entries[k]
        if stale:
            logger.debug("Revalidated %d cache entries for tags %s", len(stale), sorted(wanted))
        return len(stale)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


response_cache = ResponseCache()


# PUBLIC_INTERFACE
async def cached(
    resource: str,
    owner_id: OwnerKey,
    fetcher: Callable[[], Awaitable[Any]],
    *params: Any,
) -> Any:
    """Read-through helper used by routes: keyed by resource, owner and query params."""
    ttl = RESOURCE_CACHE_TTL.get(resource, CACHE_TTL["dynamic"])
    return await response_cache.get_or_set(
        fetcher,
        [resource, owner_id, *params],
        ttl=ttl,
        tags=create_cache_tags(resource, owner_id),
    )


# PUBLIC_INTERFACE
async def revalidate_cache(tags: Iterable[str]) -> int:
    """Invalidate all cached entries carrying any of the given tags."""
    return await response_cache.revalidate(tags)


# PUBLIC_INTERFACE
async def revalidate_user_cache(owner_id: OwnerKey, resources: Optional[Iterable[str]] = None) -> int:
    """Invalidate one owner's cache, either entirely or for the listed resources."""
    if resources:
        return await revalidate_cache(create_cache_tag(r, owner_id) for r in resources)
    return await revalidate_cache([f"user:{owner_id}"])


# PUBLIC_INTERFACE
async def revalidate_resource_cache(resource: str, owner_id: OwnerKey = None) -> int:
    """Invalidate a resource for one owner, or for everyone when owner_id is None."""
    return await revalidate_cache([create_cache_tag(resource, owner_id)])


# Cached resources holding ON DELETE SET NULL references to another resource.
DEPENDENT_RESOURCES = {
    "customers": ("transactions",),
    "appointments": ("transactions",),
}


# PUBLIC_INTERFACE
async def revalidate_after_delete(resource: str, owner_id: OwnerKey) -> int:
    """Invalidate a resource and every cached resource whose rows referenced the deleted ones."""
    resources = (resource, *DEPENDENT_RESOURCES.get(resource, ()))
    return await revalidate_cache(create_cache_tag(r, owner_id) for r in resources)
