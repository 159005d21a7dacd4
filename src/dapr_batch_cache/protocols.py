"""Protocols para extensibilidade da biblioteca.

Define interfaces que permitem implementações customizadas de:
- StateStore: Armazenamento chave-valor com TTL
- KeyBuilder: Geração de chaves físicas
- Serializer: Serialização/deserialização de dados
- CacheMetrics: Coleta de métricas
"""

from collections.abc import Sequence
from typing import Any, Protocol

StoreEntry = tuple[str, bytes, int]
"""Entrada de escrita: (chave física, payload, TTL em segundos)."""


class StateStore(Protocol):
    """Protocol para o store chave-valor compartilhado.

    O TTL é aplicado pelo próprio store; o BatchCache não guarda
    estado de cache em memória.

    Example:
        ```python
        class RedisStore:
            async def get_many(self, keys):
                return await self._redis.mget(*keys)

            async def set_many(self, entries):
                async with self._redis.pipeline(transaction=True) as pipe:
                    for key, payload, ttl in entries:
                        pipe.set(key, payload, ex=ttl)
                    await pipe.execute()

            async def delete(self, keys):
                return await self._redis.delete(*keys)
        ```
    """

    async def get_many(self, keys: Sequence[str]) -> list[bytes | None]:
        """Busca várias chaves de uma vez.

        Args:
            keys: Chaves físicas

        Returns:
            Payloads na mesma ordem e tamanho de ``keys``; None para ausentes
        """
        ...

    async def set_many(self, entries: Sequence[StoreEntry]) -> None:
        """Grava um lote de entradas de forma atômica.

        Args:
            entries: Lista de (chave, payload, ttl_seconds)

        Raises:
            StoreWriteError: Se a gravação falhar
        """
        ...

    async def delete(self, keys: Sequence[str]) -> int:
        """Remove chaves.

        Returns:
            Número de chaves removidas
        """
        ...


class KeyBuilder(Protocol):
    """Protocol para construtores de chaves físicas."""

    def build_key(self, group: str, key: Any) -> str:
        """Constrói chave física a partir do grupo e da chave lógica."""
        ...


class Serializer(Protocol):
    """Protocol para serialização de dados.

    A saída de ``serialize`` nunca deve coincidir com o marcador
    negativo configurado no BatchCache.
    """

    def serialize(self, data: Any) -> bytes:
        """Serializa dados Python para bytes."""
        ...

    def deserialize(self, data: bytes) -> Any:
        """Deserializa bytes para dados Python."""
        ...


class CacheMetrics(Protocol):
    """Protocol para coleta de métricas do BatchCache.

    Canal lateral puro: nenhuma implementação deve alterar o
    resultado de uma chamada.
    """

    def record_request(self, group: str, count: int) -> None:
        """Registra chaves solicitadas."""
        ...

    def record_hit(self, group: str, count: int) -> None:
        """Registra chaves servidas pelo store."""
        ...

    def record_miss(self, group: str, count: int) -> None:
        """Registra chaves encaminhadas para a fonte."""
        ...

    def record_negative(self, group: str, count: int) -> None:
        """Registra chaves resolvidas como inexistentes."""
        ...

    def record_write(self, group: str, count: int) -> None:
        """Registra entradas gravadas no store."""
        ...

    def record_delete(self, group: str, count: int) -> None:
        """Registra chaves removidas."""
        ...

    def record_error(self, group: str, error: Exception) -> None:
        """Registra erro de store."""
        ...
