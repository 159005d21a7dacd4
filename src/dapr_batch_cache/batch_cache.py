"""Cache read-through em lote com deduplicação e cache negativo."""

import inspect
import logging
from collections.abc import Awaitable, Callable, Hashable, Iterable, Mapping, Sequence
from types import MappingProxyType
from typing import Any, TypeVar

from .config import BatchOptions, CacheConfig, effective_negative_ttl, resolve_options
from .deduplication import DeduplicationManager
from .exceptions import StoreReadError
from .key_builder import DefaultKeyBuilder
from .metrics import NoOpMetrics
from .protocols import CacheMetrics, KeyBuilder, Serializer, StateStore, StoreEntry
from .serializer import MsgPackSerializer
from .stats import BatchStats, StatsCounter
from .utils import to_list_without_none, to_map

logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")

# Fontes podem ser funções async ou síncronas
BatchSource = Callable[[list[K]], Awaitable[Mapping[K, V | None]] | Mapping[K, V | None]]
ArraySource = Callable[[list[K]], Awaitable[Iterable[V]] | Iterable[V]]
SingleSource = Callable[[K], Awaitable[V | None] | V | None]
ValueSource = Callable[[], Awaitable[V | None] | V | None]

Options = int | BatchOptions | None

CACHE_FN_KEY = "__cache_func_hack_key__"
"""Chave lógica reservada usada por ``cache_fn``."""

TOKEN_SEPARATOR = "-"


async def _call_source(source: Callable[..., Any], *args: Any) -> Any:
    """Chama a fonte aguardando o resultado se for awaitable."""
    result = source(*args)
    if inspect.isawaitable(result):
        result = await result
    return result


def build_dedup_token(group: str, keys: Iterable[Any]) -> str:
    """Token de deduplicação: grupo + chaves ordenadas.

    A ordem das chaves não altera o token.
    """
    return TOKEN_SEPARATOR.join([group, *(str(key) for key in sorted(keys))])


def _validate_ttl(ttl_seconds: int) -> None:
    if isinstance(ttl_seconds, bool) or not isinstance(ttl_seconds, int) or ttl_seconds <= 0:
        raise ValueError(f"ttl_seconds deve ser um inteiro > 0, recebido {ttl_seconds!r}")


class BatchCache:
    """Cache read-through em lote na frente de uma fonte cara.

    Para cada chamada:
    1. Busca todas as chaves no store com um único ``get_many``
    2. Separa hits, hits negativos (marcador) e misses
    3. Busca os misses na fonte, deduplicando chamadas concorrentes
       com o mesmo conjunto de misses
    4. Grava positivos e negativos com TTLs independentes

    Falhas de leitura no store são tratadas como miss total. Falhas de
    escrita, de deserialização e da fonte são propagadas.

    Example:
        ```python
        store = DaprStateBackend("cache")
        cache = BatchCache(store, CacheConfig(key_prefix="app"))

        async def load_users(ids: list[int]) -> dict[int, dict | None]:
            rows = await db.fetch_users(ids)
            return {id: rows.get(id) for id in ids}

        users = await cache.batch_get("users", load_users, [1, 2, 3], ttl_seconds=300)
        ```

    Attributes:
        stats: Snapshot dos contadores hit/missing/non_exists
    """

    def __init__(
        self,
        store: StateStore,
        config: CacheConfig | None = None,
        *,
        serializer: Serializer | None = None,
        key_builder: KeyBuilder | None = None,
        deduplication: DeduplicationManager | None = None,
        metrics: CacheMetrics | None = None,
    ) -> None:
        """Inicializa o cache.

        Args:
            store: Store chave-valor compartilhado
            config: Configuração (default: CacheConfig())
            serializer: Serializer de valores (default: MsgPackSerializer)
            key_builder: Construtor de chaves (default: DefaultKeyBuilder com key_prefix)
            deduplication: Coordenador single-flight (default: um por instância)
            metrics: Observer de métricas (default: NoOpMetrics)
        """
        self._store = store
        self._config = config or CacheConfig()
        self._serializer = serializer or MsgPackSerializer()
        self._key_builder = key_builder or DefaultKeyBuilder(prefix=self._config.key_prefix)
        self._deduplication = deduplication or DeduplicationManager()
        self._metrics = metrics or NoOpMetrics()
        self._stats = StatsCounter()
        self._negative_payload = self._config.negative_payload

    @property
    def config(self) -> CacheConfig:
        return self._config

    @property
    def stats(self) -> BatchStats:
        """Contadores acumulados desde a criação da instância."""
        return self._stats.snapshot()

    async def batch_get(
        self,
        group: str,
        source: BatchSource,
        keys: Sequence[K],
        ttl_seconds: int,
        options: Options = None,
    ) -> dict[K, V | None]:
        """Busca várias chaves com cache.

        Args:
            group: Grupo (namespace) do cache
            source: Fonte que recebe as chaves em miss e retorna um mapa;
                None confirma inexistência, chaves omitidas não são cacheadas
            keys: Chaves lógicas
            ttl_seconds: TTL das entradas positivas (> 0)
            options: TTL negativo legado (int) ou BatchOptions

        Returns:
            Mapa chave -> valor (None para inexistentes), na ordem de ``keys``,
            sem as chaves que a fonte não retornou

        Raises:
            ValueError: Se ttl_seconds for inválido
            CacheSerializationError: Se uma entrada do store estiver corrompida
            StoreWriteError: Se a gravação no store falhar
            Exception: Exceções da fonte, sem alteração
        """
        _validate_ttl(ttl_seconds)
        negative_ttl = effective_negative_ttl(self._config, resolve_options(options))
        keys = list(keys)
        if not keys:
            return {}

        payloads = await self._read_payloads(group, keys)

        hits: dict[K, V | None] = {}
        miss_keys: list[K] = []
        hit = missing = non_exists = 0
        for key, payload in zip(keys, payloads):
            if payload is None:
                missing += 1
                miss_keys.append(key)
            elif payload == self._negative_payload:
                logger.debug(f"Chave inexistente em cache: {group}/{key}")
                hit += 1
                non_exists += 1
                hits[key] = None
            else:
                hit += 1
                hits[key] = self._serializer.deserialize(payload)

        fetched: dict[K, V | None] = {}
        if miss_keys:
            unique_miss_keys = list(dict.fromkeys(miss_keys))
            token = build_dedup_token(group, unique_miss_keys)
            logger.debug(f"Chaves em miss: {unique_miss_keys}, token: {token}")

            async def loader() -> Mapping[K, V | None]:
                return await self._load(group, source, unique_miss_keys, ttl_seconds, negative_ttl)

            # O token é texto e pode colidir ("a-b" vs ["a", "b"]); o escopo
            # garante que só conjuntos de misses idênticos compartilhem a busca
            snapshot = await self._deduplication.execute(
                token, loader, scope=frozenset(unique_miss_keys)
            )
            # O snapshot pode vir de outra chamada com o mesmo conjunto
            fetched = {key: snapshot[key] for key in unique_miss_keys if key in snapshot}
            non_exists += sum(1 for value in fetched.values() if value is None)

        result: dict[K, V | None] = {}
        for key in keys:
            if key in result:
                continue
            if key in hits:
                result[key] = hits[key]
            elif key in fetched:
                result[key] = fetched[key]

        logger.debug(f"Stats {group}: hit={hit}, missing={missing}, non_exists={non_exists}")
        self._stats.add(hit=hit, missing=missing, non_exists=non_exists)
        self._metrics.record_request(group, len(keys))
        self._metrics.record_hit(group, hit)
        self._metrics.record_miss(group, missing)
        self._metrics.record_negative(group, non_exists)

        return result

    async def _read_payloads(self, group: str, keys: list[K]) -> list[bytes | None]:
        """Lê os payloads; qualquer falha do store vira miss total."""
        physical_keys = [self._key_builder.build_key(group, key) for key in keys]
        logger.debug(f"Store get_many: {physical_keys}")
        try:
            payloads = await self._store.get_many(physical_keys)
            if len(payloads) != len(physical_keys):
                raise StoreReadError(
                    f"get_many retornou {len(payloads)} valores para {len(physical_keys)} chaves"
                )
            return list(payloads)
        except Exception as e:
            logger.warning(f"Erro ao buscar cache do grupo {group}, consultando a fonte: {e}")
            self._metrics.record_error(group, e)
            return [None] * len(keys)

    async def _load(
        self,
        group: str,
        source: BatchSource,
        keys: list[K],
        ttl_seconds: int,
        negative_ttl: int,
    ) -> Mapping[K, V | None]:
        """Busca os misses na fonte e grava o resultado no store.

        Returns:
            Snapshot somente leitura com as chaves que a fonte retornou
        """
        logger.debug(f"Chamando fonte do grupo {group} com chaves: {keys}")
        returned = await _call_source(source, keys)
        if not isinstance(returned, Mapping):
            raise TypeError(f"A fonte deve retornar um Mapping, retornou {type(returned).__name__}")

        loaded: dict[K, V | None] = {}
        positive: list[StoreEntry] = []
        negative: list[StoreEntry] = []
        for key in keys:
            if key not in returned:
                continue
            value = returned[key]
            loaded[key] = value
            physical_key = self._key_builder.build_key(group, key)
            if value is None:
                negative.append((physical_key, self._negative_payload, negative_ttl))
            else:
                positive.append((physical_key, self._serializer.serialize(value), ttl_seconds))

        if positive:
            logger.debug(f"Gravando {len(positive)} chaves, TTL: {ttl_seconds}s")
            await self._write(group, positive)
        if negative and negative_ttl > 0:
            logger.debug(f"Gravando {len(negative)} chaves inexistentes, TTL: {negative_ttl}s")
            await self._write(group, negative)

        return MappingProxyType(loaded)

    async def _write(self, group: str, entries: list[StoreEntry]) -> None:
        try:
            await self._store.set_many(entries)
        except Exception as e:
            logger.error(f"Erro ao gravar cache do grupo {group}: {e}")
            self._metrics.record_error(group, e)
            raise
        self._metrics.record_write(group, len(entries))

    async def batch_get_array(
        self,
        group: str,
        source: ArraySource,
        keys: Sequence[K],
        key_field: str,
        ttl_seconds: int,
        options: Options = None,
    ) -> list[V]:
        """Busca em lote com fonte que retorna lista.

        Cada item é associado à chave solicitada pelo campo ``key_field``.
        Chaves sem item são cacheadas como inexistentes.

        Returns:
            Valores encontrados na ordem das chaves, sem inexistentes
        """

        async def map_source(miss_keys: list[K]) -> dict[K, V | None]:
            items = await _call_source(source, miss_keys)
            return to_map(items or [], key_field, miss_keys)

        result = await self.batch_get(group, map_source, keys, ttl_seconds, options)
        return to_list_without_none(result)

    async def get_one(
        self,
        group: str,
        source: SingleSource,
        key: K,
        ttl_seconds: int,
        options: Options = None,
    ) -> V | None:
        """Busca uma única chave com cache."""

        async def single_source(miss_keys: list[K]) -> dict[K, V | None]:
            return {miss_keys[0]: await _call_source(source, miss_keys[0])}

        result = await self.batch_get(group, single_source, [key], ttl_seconds, options)
        return result.get(key)

    async def cache_fn(
        self,
        group: str,
        source: ValueSource,
        ttl_seconds: int,
        options: Options = None,
    ) -> V | None:
        """Cacheia o resultado de uma função sem parâmetros.

        A chave lógica é fixa, então ``group`` deve ser único por função.
        """

        async def value_source(_: list[str]) -> dict[str, V | None]:
            return {CACHE_FN_KEY: await _call_source(source)}

        result = await self.batch_get(group, value_source, [CACHE_FN_KEY], ttl_seconds, options)
        return result.get(CACHE_FN_KEY)

    async def clear(self, group: str, keys: Iterable[K]) -> int:
        """Remove as entradas das chaves informadas.

        Returns:
            Número de chaves removidas segundo o store
        """
        physical_keys = [self._key_builder.build_key(group, key) for key in keys]
        if not physical_keys:
            return 0
        logger.debug(f"Store delete: {physical_keys}")
        count = await self._store.delete(physical_keys)
        self._metrics.record_delete(group, count)
        return count
