"""Testes para o backend em memória."""

import time

import pytest

from dapr_batch_cache.exceptions import CacheKeyError, StoreWriteError
from dapr_batch_cache.memory_backend import InMemoryStateBackend


class TestInMemoryStateBackend:
    """Testes para InMemoryStateBackend."""

    @pytest.mark.asyncio
    async def test_get_many_preserves_order_and_length(self, store) -> None:
        """Deve retornar na ordem das chaves com None para ausentes."""
        await store.set_many([("a", b"1", 10), ("c", b"3", 10)])

        assert await store.get_many(["c", "b", "a"]) == [b"3", None, b"1"]

    @pytest.mark.asyncio
    async def test_entries_expire(self, store, clock) -> None:
        """Entradas devem expirar após o TTL."""
        await store.set_many([("a", b"1", 5)])

        clock.advance(4.9)
        assert await store.get_many(["a"]) == [b"1"]

        clock.advance(0.2)
        assert await store.get_many(["a"]) == [None]

    @pytest.mark.asyncio
    async def test_set_many_is_all_or_nothing(self, store) -> None:
        """Lote com entrada inválida não deve gravar nada."""
        with pytest.raises(StoreWriteError):
            await store.set_many([("a", b"1", 10), ("b", b"2", 0)])

        assert await store.get_many(["a", "b"]) == [None, None]

    @pytest.mark.asyncio
    async def test_set_many_rejects_empty_key(self, store) -> None:
        """Chave vazia deve ser rejeitada."""
        with pytest.raises(CacheKeyError):
            await store.set_many([("", b"1", 10)])

    @pytest.mark.asyncio
    async def test_set_many_rejects_non_bytes(self, store) -> None:
        """Valor não bytes deve ser rejeitado."""
        with pytest.raises(StoreWriteError):
            await store.set_many([("a", "1", 10)])

    @pytest.mark.asyncio
    async def test_delete_counts_existing(self, store, clock) -> None:
        """delete deve contar apenas chaves existentes e não expiradas."""
        await store.set_many([("a", b"1", 10), ("b", b"2", 1)])
        clock.advance(2)

        assert await store.delete(["a", "b", "c", "a"]) == 1
        assert await store.get_many(["a"]) == [None]

    @pytest.mark.asyncio
    async def test_ttl_and_size(self, store, clock) -> None:
        """ttl e size devem refletir as entradas vivas."""
        await store.set_many([("a", b"1", 10), ("b", b"2", 3)])
        clock.advance(1)

        assert await store.ttl("a") == pytest.approx(9)
        assert await store.ttl("missing") is None
        assert await store.size() == 2

        clock.advance(5)
        assert await store.size() == 1

    def test_default_clock(self) -> None:
        """Sem relógio injetado deve usar time.monotonic."""
        assert InMemoryStateBackend()._clock is time.monotonic
