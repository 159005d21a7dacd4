"""dapr-batch-cache: Cache read-through em lote para Dapr State Store.

Fica na frente de uma fonte cara que aceita lotes (banco, serviço remoto),
com deduplicação de buscas concorrentes e cache negativo com TTL próprio.

Uso básico:
    ```python
    from dapr_batch_cache import BatchCache, CacheConfig, DaprStateBackend

    cache = BatchCache(DaprStateBackend("cache"), CacheConfig(key_prefix="app"))

    async def load_users(ids: list[int]) -> dict[int, dict | None]:
        return await db.users_by_id(ids)

    users = await cache.batch_get("users", load_users, [1, 2, 3], ttl_seconds=300)

    # TTL negativo por chamada (formato legado ou BatchOptions)
    await cache.batch_get("users", load_users, [4], 300, 5)
    await cache.batch_get("users", load_users, [4], 300, BatchOptions(negative_ttl_seconds=5))

    # Invalidação
    await cache.clear("users", [1, 2])
    ```
"""

__version__ = "0.1.0"

# Backends
from .backend import DaprStateBackend

# Cache em lote
from .batch_cache import CACHE_FN_KEY, BatchCache, build_dedup_token

# Configuração
from .config import BatchOptions, CacheConfig, resolve_options

# Deduplicação (uso avançado)
from .deduplication import DeduplicationManager

# Exceções
from .exceptions import (
    CacheConnectionError,
    CacheError,
    CacheKeyError,
    CacheSerializationError,
    StoreReadError,
    StoreWriteError,
)

# Geração de chaves
from .key_builder import DefaultKeyBuilder, build_cache_key
from .memory_backend import InMemoryStateBackend

# Métricas
from .metrics import GroupStats, InMemoryMetrics, NoOpMetrics, OpenTelemetryMetrics

# Protocols (para extensibilidade)
from .protocols import CacheMetrics, KeyBuilder, StateStore
from .protocols import Serializer as SerializerProtocol

# Serialização
from .serializer import JsonSerializer, MsgPackSerializer
from .stats import BatchStats, StatsCounter

__all__ = [
    # Cache em lote
    "BatchCache",
    "CACHE_FN_KEY",
    "build_dedup_token",
    # Configuração
    "BatchOptions",
    "CacheConfig",
    "resolve_options",
    # Backends
    "DaprStateBackend",
    "InMemoryStateBackend",
    # Serialização
    "JsonSerializer",
    "MsgPackSerializer",
    # Geração de chaves
    "DefaultKeyBuilder",
    "build_cache_key",
    # Estatísticas e métricas
    "BatchStats",
    "StatsCounter",
    "GroupStats",
    "NoOpMetrics",
    "InMemoryMetrics",
    "OpenTelemetryMetrics",
    # Exceções
    "CacheError",
    "CacheConnectionError",
    "CacheSerializationError",
    "CacheKeyError",
    "StoreReadError",
    "StoreWriteError",
    # Deduplicação
    "DeduplicationManager",
    # Protocols
    "CacheMetrics",
    "KeyBuilder",
    "SerializerProtocol",
    "StateStore",
]
