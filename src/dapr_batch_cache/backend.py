"""Backend para Dapr State Store via API HTTP do sidecar."""

import asyncio
import base64
import logging
import os
from collections.abc import Sequence
from typing import Any

import httpx

from .exceptions import CacheConnectionError, CacheKeyError, StoreReadError, StoreWriteError
from .protocols import StoreEntry

logger = logging.getLogger(__name__)

# Configuração do sidecar Dapr
DEFAULT_DAPR_HTTP_PORT = 3500
DEFAULT_TIMEOUT_SECONDS = 5.0
MIN_TTL_SECONDS = 1

_SUCCESS_STATUSES = (200, 201, 204)


def _get_dapr_url() -> str:
    """Obtém a URL base do sidecar Dapr."""
    host = os.getenv("DAPR_HTTP_HOST", "127.0.0.1")
    port = os.getenv("DAPR_HTTP_PORT", str(DEFAULT_DAPR_HTTP_PORT))
    return f"http://{host}:{port}"


class DaprStateBackend:
    """Backend para Dapr State Store usando API HTTP direta.

    Implementa o protocol StateStore com operações em lote:
    - POST /v1.0/state/{storename}/bulk - buscar várias chaves
    - POST /v1.0/state/{storename}/transaction - gravar/remover de forma atômica

    O TTL é aplicado pelo próprio state store via metadata ``ttlInSeconds``.

    Attributes:
        store_name: Nome do state store configurado no Dapr
        timeout: Timeout para operações HTTP em segundos
    """

    def __init__(
        self,
        store_name: str,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        dapr_url: str | None = None,
    ) -> None:
        """Inicializa o backend.

        Args:
            store_name: Nome do state store Dapr
            timeout: Timeout para operações HTTP
            dapr_url: URL do sidecar (usa env vars se não fornecido)

        Raises:
            CacheKeyError: Se store_name for vazio
        """
        if not store_name:
            raise CacheKeyError("store_name não pode ser vazio")

        self._store_name = store_name
        self._timeout = timeout
        self._base_url = dapr_url or _get_dapr_url()

        self._client: httpx.AsyncClient | None = None
        # asyncio.Lock é criado lazy para evitar "no current event loop"
        # quando a classe é instanciada antes de um event loop existir
        self._client_lock: asyncio.Lock | None = None

    @property
    def store_name(self) -> str:
        """Nome do state store."""
        return self._store_name

    def _get_client_lock(self) -> asyncio.Lock:
        if self._client_lock is None:
            self._client_lock = asyncio.Lock()
        return self._client_lock

    async def _get_client(self) -> httpx.AsyncClient:
        """Obtém ou cria cliente HTTP assíncrono (double-checked locking)."""
        if self._client is None:
            async with self._get_client_lock():
                if self._client is None:
                    self._client = httpx.AsyncClient(
                        base_url=self._base_url,
                        timeout=self._timeout,
                    )
        return self._client

    def _bulk_url(self) -> str:
        return f"/v1.0/state/{self._store_name}/bulk"

    def _transaction_url(self) -> str:
        return f"/v1.0/state/{self._store_name}/transaction"

    def _encode_value(self, value: bytes) -> str:
        """Codifica valor em base64 para envio via JSON."""
        return base64.b64encode(value).decode("ascii")

    def _decode_value(self, data: Any) -> bytes | None:
        """Decodifica valor recebido do Dapr."""
        if data is None:
            return None
        if isinstance(data, bytes):
            return data
        if isinstance(data, str):
            try:
                return base64.b64decode(data, validate=True)
            except ValueError:
                logger.warning(f"Valor do Dapr não está em base64, usando UTF-8: {data[:32]!r}")
                return data.encode("utf-8")
        logger.warning(f"Tipo de valor inesperado do Dapr ({type(data).__name__}), tratado como miss")
        return None

    def _validate_keys(self, keys: Sequence[str]) -> None:
        for key in keys:
            if not key:
                raise CacheKeyError("Chave não pode ser vazia", key=key)

    async def _bulk_get(self, keys: Sequence[str]) -> dict[str, bytes | None]:
        client = await self._get_client()
        response = await client.post(self._bulk_url(), json={"keys": list(keys)})

        if response.status_code != 200:
            raise StoreReadError(f"Resposta inesperada do Dapr no bulk get: {response.status_code}")

        found: dict[str, bytes | None] = {}
        for item in response.json():
            if item.get("error"):
                logger.warning(f"Erro do Dapr para chave {item.get('key')}: {item['error']}")
                continue
            found[item["key"]] = self._decode_value(item.get("data"))
        return found

    async def _transaction(self, operations: list[dict[str, Any]]) -> None:
        client = await self._get_client()
        response = await client.post(self._transaction_url(), json={"operations": operations})

        if response.status_code not in _SUCCESS_STATUSES:
            raise StoreWriteError(f"Falha na transação do Dapr: {response.status_code}")

    async def get_many(self, keys: Sequence[str]) -> list[bytes | None]:
        """Busca várias chaves em uma única chamada ao sidecar.

        Args:
            keys: Chaves físicas

        Returns:
            Payloads na mesma ordem de ``keys``; None para ausentes

        Raises:
            StoreReadError: Se o sidecar falhar ou estiver inacessível
        """
        if not keys:
            return []
        self._validate_keys(keys)

        try:
            found = await self._bulk_get(keys)
        except httpx.HTTPError as e:
            raise StoreReadError(f"Falha ao buscar chaves no Dapr: {e}") from e

        logger.debug(f"Bulk get: {len(keys)} chaves, {sum(1 for v in found.values() if v)} encontradas")
        return [found.get(key) or None for key in keys]

    async def set_many(self, entries: Sequence[StoreEntry]) -> None:
        """Grava um lote de entradas em uma transação.

        Args:
            entries: Lista de (chave, payload, ttl_seconds)

        Raises:
            CacheConnectionError: Se não conseguir conectar ao sidecar
            StoreWriteError: Se a transação falhar
        """
        if not entries:
            return

        operations = []
        for key, value, ttl_seconds in entries:
            if not key:
                raise CacheKeyError("Chave não pode ser vazia", key=key)
            if ttl_seconds < MIN_TTL_SECONDS:
                raise StoreWriteError(f"TTL deve ser >= {MIN_TTL_SECONDS} segundo", key=key)
            operations.append(
                {
                    "operation": "upsert",
                    "request": {
                        "key": key,
                        "value": self._encode_value(value),
                        "metadata": {"ttlInSeconds": str(ttl_seconds)},
                    },
                }
            )

        try:
            await self._transaction(operations)
        except httpx.ConnectError as e:
            raise CacheConnectionError(f"Não foi possível conectar ao sidecar Dapr: {e}") from e
        except httpx.HTTPError as e:
            raise StoreWriteError(f"Falha ao gravar no Dapr: {e}") from e

        logger.debug(f"Transação gravada: {len(operations)} chaves")

    async def delete(self, keys: Sequence[str]) -> int:
        """Remove chaves em uma transação.

        Returns:
            Número de chaves que existiam antes da remoção

        Raises:
            CacheConnectionError: Se não conseguir conectar ao sidecar
            StoreWriteError: Se a transação falhar
        """
        keys = [key for key in keys if key]
        if not keys:
            return 0

        try:
            existing = await self._bulk_get(keys)
            operations = [{"operation": "delete", "request": {"key": key}} for key in keys]
            await self._transaction(operations)
        except httpx.ConnectError as e:
            raise CacheConnectionError(f"Não foi possível conectar ao sidecar Dapr: {e}") from e
        except httpx.HTTPError as e:
            raise StoreWriteError(f"Falha ao remover chaves do Dapr: {e}") from e

        count = sum(1 for key in set(keys) if existing.get(key))
        logger.debug(f"Cache delete: {count} de {len(keys)} chaves")
        return count

    async def aclose(self) -> None:
        """Fecha o cliente HTTP."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "DaprStateBackend":
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()
