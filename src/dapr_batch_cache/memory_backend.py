"""Backend em memória com TTL, para testes e desenvolvimento local."""

import asyncio
import logging
import time
from collections.abc import Callable, Sequence

from .exceptions import CacheKeyError, StoreWriteError
from .protocols import StoreEntry

logger = logging.getLogger(__name__)


class InMemoryStateBackend:
    """Implementação do protocol StateStore em memória.

    Cada entrada guarda o instante de expiração; entradas vencidas são
    descartadas na leitura. Não é compartilhado entre processos.

    Attributes:
        clock: Função que retorna o tempo atual em segundos
            (default: time.monotonic). Testes podem injetar um relógio
            controlado para simular a expiração.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._data: dict[str, tuple[bytes, float]] = {}
        self._lock: asyncio.Lock | None = None

    def _get_lock(self) -> asyncio.Lock:
        if self._lock is None:
            self._lock = asyncio.Lock()
        return self._lock

    def _read(self, key: str, now: float) -> bytes | None:
        entry = self._data.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if expires_at <= now:
            del self._data[key]
            return None
        return value

    async def get_many(self, keys: Sequence[str]) -> list[bytes | None]:
        async with self._get_lock():
            now = self._clock()
            return [self._read(key, now) for key in keys]

    async def set_many(self, entries: Sequence[StoreEntry]) -> None:
        """Grava o lote inteiro ou nada (valida antes de gravar)."""
        for key, value, ttl_seconds in entries:
            if not key:
                raise CacheKeyError("Chave não pode ser vazia", key=key)
            if ttl_seconds <= 0:
                raise StoreWriteError(f"TTL inválido: {ttl_seconds}", key=key)
            if not isinstance(value, bytes):
                raise StoreWriteError("Valor deve ser bytes", key=key)

        async with self._get_lock():
            now = self._clock()
            for key, value, ttl_seconds in entries:
                self._data[key] = (value, now + ttl_seconds)
        logger.debug(f"Memória: {len(entries)} chaves gravadas")

    async def delete(self, keys: Sequence[str]) -> int:
        async with self._get_lock():
            now = self._clock()
            count = 0
            for key in set(keys):
                if self._read(key, now) is not None:
                    del self._data[key]
                    count += 1
            return count

    async def ttl(self, key: str) -> float | None:
        """Segundos restantes até a expiração, ou None se ausente."""
        async with self._get_lock():
            now = self._clock()
            if self._read(key, now) is None:
                return None
            return self._data[key][1] - now

    async def size(self) -> int:
        async with self._get_lock():
            now = self._clock()
            return sum(1 for key in list(self._data) if self._read(key, now) is not None)
