"""
============================================================
TARJETA CRC — darksphere/infrastructure/cache.py
============================================================
Module: Entity caches (TTL + capacity) and background sweep

Responsibilities:
  - Memoizar lecturas calientes (usuarios, posts, anuncios) con TTL por entrada.
  - Eviction por orden de inserción cuando está lleno (no LRU): primero se
    purgan expirados, después se descarta la entrada más vieja.
  - Estadísticas simples (hits/misses/hit_rate/memoria aproximada).
  - Sweep periódico de expirados independiente del patrón de acceso.

Collaborators:
  - infrastructure.repositories.cached: decoradores cache-aside.
  - api.main (lifespan): arranca/cancela run_cache_sweeper.
  - threading.Lock (FastAPI ejecuta endpoints sync en un threadpool).

Policy / Design Notes:
  - El cache nunca es fuente de verdad: un miss siempre cae al store.
  - Una entrada jamás se devuelve con now > expires_at.
  - Instancias separadas por tipo de entidad: una ráfaga de lecturas de posts
    no desaloja usuarios.
  - Cache local al proceso: entre instancias se acepta staleness de hasta un TTL.
============================================================
"""

from __future__ import annotations

import asyncio
import json
import time
from collections import OrderedDict
from dataclasses import dataclass
from threading import Lock
from typing import Any, Callable, Dict, Iterable, Optional
from uuid import UUID

from ..crosscutting.logger import logger

_ENTRY_OVERHEAD_BYTES = 64


@dataclass(slots=True)
class CacheEntry:
    """
    Entrada con timestamps absolutos (epoch seconds) y contador de hits.

    Invariante:
      - expires_at >= created_at
    """

    value: Any
    created_at: float
    expires_at: float
    hits: int = 0

    def is_expired(self, now: float) -> bool:
        return now > self.expires_at


class TTLCache:
    """
    Caché en memoria con TTL por entrada, capacidad máxima y eviction FIFO.

    Thread-safe: cada operación toma el lock por un tiempo acotado.
    """

    def __init__(
        self,
        name: str,
        *,
        max_size: int = 1000,
        default_ttl_seconds: float = 300,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if max_size <= 0:
            raise ValueError("max_size must be > 0")
        if default_ttl_seconds <= 0:
            raise ValueError("default_ttl_seconds must be > 0")

        self.name = name
        self._max_size = int(max_size)
        self._default_ttl = float(default_ttl_seconds)
        self._clock = clock

        # OrderedDict mantiene orden de inserción (re-set mueve al final).
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._lock = Lock()

        self._hits = 0
        self._misses = 0
        self._evictions = 0

    @property
    def max_size(self) -> int:
        return self._max_size

    def set(self, key: str, value: Any, ttl_seconds: float | None = None) -> None:
        ttl = float(ttl_seconds) if ttl_seconds and ttl_seconds > 0 else self._default_ttl
        now = self._clock()

        with self._lock:
            if key in self._entries:
                del self._entries[key]
            elif len(self._entries) >= self._max_size:
                self._purge_expired_locked(now)
                if len(self._entries) >= self._max_size:
                    self._entries.popitem(last=False)
                    self._evictions += 1

            self._entries[key] = CacheEntry(
                value=value, created_at=now, expires_at=now + ttl
            )

    def get(self, key: str) -> Optional[Any]:
        now = self._clock()

        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return None

            if entry.is_expired(now):
                del self._entries[key]
                self._misses += 1
                return None

            entry.hits += 1
            self._hits += 1
            return entry.value

    def has(self, key: str) -> bool:
        """Chequeo de existencia/expiración sin tocar contadores."""
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            return entry is not None and not entry.is_expired(now)

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def delete_many(self, keys: Iterable[str]) -> int:
        with self._lock:
            return sum(1 for k in keys if self._entries.pop(k, None) is not None)

    def delete_prefix(self, prefix: str) -> int:
        with self._lock:
            doomed = [k for k in self._entries if k.startswith(prefix)]
            for k in doomed:
                del self._entries[k]
            return len(doomed)

    def clear(self) -> None:
        """Vacía el cache y reinicia estadísticas."""
        with self._lock:
            self._entries.clear()
            self._hits = 0
            self._misses = 0
            self._evictions = 0

    def cleanup(self) -> int:
        """
        Elimina entradas expiradas.

        No retiene el lock durante todo el barrido: toma un snapshot y luego
        borra entrada por entrada re-chequeando expiración (una entrada pudo
        ser re-seteada entre medio).
        """
        now = self._clock()
        with self._lock:
            candidates = [k for k, e in self._entries.items() if e.is_expired(now)]

        removed = 0
        for key in candidates:
            with self._lock:
                entry = self._entries.get(key)
                if entry is not None and entry.is_expired(now):
                    del self._entries[key]
                    removed += 1
        return removed

    def get_stats(self) -> Dict[str, Any]:
        with self._lock:
            total = self._hits + self._misses
            return {
                "name": self.name,
                "count": len(self._entries),
                "max_size": self._max_size,
                "default_ttl_seconds": self._default_ttl,
                "hits": self._hits,
                "misses": self._misses,
                "evictions": self._evictions,
                "hit_rate": (self._hits / total) if total > 0 else 0.0,
                "approx_memory_bytes": sum(
                    _estimate_entry_bytes(k, e.value) for k, e in self._entries.items()
                ),
            }

    def entry_hits(self, key: str) -> int:
        with self._lock:
            entry = self._entries.get(key)
            return entry.hits if entry else 0

    def _purge_expired_locked(self, now: float) -> None:
        expired = [k for k, e in self._entries.items() if e.is_expired(now)]
        for k in expired:
            del self._entries[k]


def _estimate_entry_bytes(key: str, value: Any) -> int:
    """Estimación gruesa: 2 bytes por char de key y de JSON del valor + overhead."""
    try:
        serialized = json.dumps(value, default=_json_default)
    except (TypeError, ValueError):
        serialized = str(value)
    return len(key) * 2 + len(serialized) * 2 + _ENTRY_OVERHEAD_BYTES


def _json_default(value: Any) -> Any:
    if hasattr(value, "__dataclass_fields__"):
        return {f: getattr(value, f) for f in value.__dataclass_fields__}
    return str(value)


# ============================================================
# Cache keys
# ============================================================
class CacheKeys:
    """Formatos de claves compartidos por lecturas e invalidaciones."""

    USERS_ALL = "users:all"
    POSTS_PREFIX = "posts:"
    ANNOUNCEMENTS_ALL = "announcements:all"

    @staticmethod
    def user_by_id(user_id: UUID) -> str:
        return f"user:id:{user_id}"

    @staticmethod
    def user_by_username(username: str) -> str:
        return f"user:username:{username.strip().lower()}"

    @staticmethod
    def user_by_email(email: str) -> str:
        return f"user:email:{email.strip().lower()}"

    @staticmethod
    def post_by_id(post_id: UUID) -> str:
        return f"post:id:{post_id}"

    @staticmethod
    def posts_page(limit: int, offset: int) -> str:
        return f"posts:all:{limit}:{offset}"

    @staticmethod
    def posts_by_author(author_id: UUID) -> str:
        return f"posts:author:{author_id}"


# ============================================================
# Entity caches + background sweep
# ============================================================
@dataclass(frozen=True, slots=True)
class EntityCaches:
    users: TTLCache
    posts: TTLCache
    announcements: TTLCache
    post_list_ttl_seconds: float = 180

    def all(self) -> tuple[TTLCache, ...]:
        return (self.users, self.posts, self.announcements)

    def stats(self) -> list[dict[str, Any]]:
        return [cache.get_stats() for cache in self.all()]


def build_entity_caches(settings) -> EntityCaches:
    return EntityCaches(
        users=TTLCache(
            "users",
            max_size=settings.cache_user_max_size,
            default_ttl_seconds=settings.cache_user_ttl_seconds,
        ),
        posts=TTLCache(
            "posts",
            max_size=settings.cache_post_max_size,
            default_ttl_seconds=settings.cache_post_ttl_seconds,
        ),
        announcements=TTLCache(
            "announcements",
            max_size=settings.cache_announcement_max_size,
            default_ttl_seconds=settings.cache_announcement_ttl_seconds,
        ),
        post_list_ttl_seconds=settings.cache_post_list_ttl_seconds,
    )


def sweep_caches(caches: Iterable[TTLCache]) -> int:
    from ..crosscutting.metrics import record_cache_swept

    total = 0
    for cache in caches:
        removed = cache.cleanup()
        record_cache_swept(cache.name, removed)
        total += removed
    if total:
        logger.debug("cache sweep removed expired entries", extra={"removed": total})
    return total


async def run_cache_sweeper(caches: EntityCaches, interval_seconds: float) -> None:
    """Loop infinito; se cancela desde el lifespan al apagar la app."""
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            sweep_caches(caches.all())
        except Exception:
            logger.exception("cache sweep failed")
