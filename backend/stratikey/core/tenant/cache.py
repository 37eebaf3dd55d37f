"""
Tenant-Scoped Read Cache
========================

In-process cache for reads derived from a caller's active organization.

Every entry is stamped with the caller's generation ("epoch") and the
organization it was read under. Switching organization bumps the epoch
and drops all of the caller's entries, so nothing fetched under the
previous tenant can be served afterwards, whatever key it was stored
under. Writes that finished under an outdated epoch are discarded.
"""

import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Tuple

from stratikey.core.config import settings
from stratikey.core.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class _Entry:
    value: Any
    epoch: int
    organization_id: str
    expires_at: float


class TenantCache:
    """
    Generation-stamped cache keyed by (user id, resource key).

    Usage:
        epoch = cache.epoch_for(user_id)
        value = cache.get(user_id, org_id, "tasks", epoch)
        if value is None:
            value = load()
            cache.set(user_id, org_id, "tasks", value, epoch)
    """

    def __init__(
        self,
        ttl_seconds: int = 120,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._epochs: Dict[str, int] = {}
        self._entries: Dict[Tuple[str, str], _Entry] = {}

    def epoch_for(self, user_id: str) -> int:
        """Get the caller's current generation."""
        with self._lock:
            return self._epochs.get(str(user_id), 0)

    def get(
        self,
        user_id: str,
        organization_id: str,
        key: str,
        epoch: Optional[int] = None,
    ) -> Optional[Any]:
        """
        Read a cached value.

        Returns None unless the entry was stored under the caller's current
        epoch, under the given organization, and has not expired. When
        `epoch` is given it must also equal the current epoch.
        """
        user_key = str(user_id)
        with self._lock:
            current = self._epochs.get(user_key, 0)
            if epoch is not None and epoch != current:
                return None
            entry = self._entries.get((user_key, key))
            if entry is None:
                return None
            if (
                entry.epoch != current
                or entry.organization_id != str(organization_id)
                or entry.expires_at <= self._clock()
            ):
                del self._entries[(user_key, key)]
                return None
            return entry.value

    def set(
        self,
        user_id: str,
        organization_id: str,
        key: str,
        value: Any,
        epoch: int,
    ) -> bool:
        """
        Store a value read under `epoch`.

        Returns:
            False if the caller switched organization since `epoch` was
            taken; the value is then dropped.
        """
        user_key = str(user_id)
        with self._lock:
            if self._epochs.get(user_key, 0) != epoch:
                return False
            self._entries[(user_key, key)] = _Entry(
                value=value,
                epoch=epoch,
                organization_id=str(organization_id),
                expires_at=self._clock() + self.ttl_seconds,
            )
            return True

    def get_or_load(
        self,
        user_id: str,
        organization_id: str,
        key: str,
        epoch: int,
        loader: Callable[[], Any],
    ) -> Any:
        cached = self.get(user_id, organization_id, key, epoch)
        if cached is not None:
            return cached
        value = loader()
        self.set(user_id, organization_id, key, value, epoch)
        return value

    def invalidate_caller(self, user_id: str) -> int:
        """
        Drop every entry of a caller and start a new generation.

        Returns:
            The new epoch
        """
        user_key = str(user_id)
        with self._lock:
            new_epoch = self._epochs.get(user_key, 0) + 1
            self._epochs[user_key] = new_epoch
            stale = [k for k in self._entries if k[0] == user_key]
            for k in stale:
                del self._entries[k]
        logger.debug("tenant_cache_invalidated", user_id=user_key, epoch=new_epoch, dropped=len(stale))
        return new_epoch

    def invalidate_organization(self, organization_id: str) -> int:
        """Drop every entry read under an organization, for all callers."""
        org_key = str(organization_id)
        with self._lock:
            stale = [k for k, e in self._entries.items() if e.organization_id == org_key]
            for k in stale:
                del self._entries[k]
        return len(stale)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._epochs.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


tenant_cache = TenantCache(ttl_seconds=settings.TENANT_CACHE_TTL_SECONDS)


def get_tenant_cache() -> TenantCache:
    """FastAPI dependency returning the process-wide tenant cache."""
    return tenant_cache
