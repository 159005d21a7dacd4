"""Testes para o coordenador de deduplicação."""

import asyncio

import pytest

from dapr_batch_cache.deduplication import DeduplicationManager


class TestDeduplicationManager:
    """Testes para DeduplicationManager."""

    @pytest.mark.asyncio
    async def test_single_execution(self) -> None:
        """Deve executar o loader uma vez."""
        manager = DeduplicationManager()
        call_count = 0

        async def load() -> str:
            nonlocal call_count
            call_count += 1
            return "result"

        result = await manager.execute("token1", load)

        assert result == "result"
        assert call_count == 1

    @pytest.mark.asyncio
    async def test_concurrent_calls_deduplicated(self) -> None:
        """Deve deduplicar chamadas concorrentes com o mesmo token."""
        manager = DeduplicationManager()
        call_count = 0

        async def load() -> dict:
            nonlocal call_count
            call_count += 1
            await asyncio.sleep(0.1)
            return {"a": 1}

        results = await asyncio.gather(*[manager.execute("same", load) for _ in range(5)])

        assert all(r == {"a": 1} for r in results)
        assert call_count == 1

    @pytest.mark.asyncio
    async def test_waiters_receive_same_object(self) -> None:
        """Waiters devem receber o mesmo resultado da execução única."""
        manager = DeduplicationManager()

        async def load() -> object:
            await asyncio.sleep(0.05)
            return object()

        first, second = await asyncio.gather(manager.execute("t", load), manager.execute("t", load))

        assert first is second

    @pytest.mark.asyncio
    async def test_different_tokens_not_deduplicated(self) -> None:
        """Tokens diferentes não devem ser deduplicados."""
        manager = DeduplicationManager()
        call_count = 0

        async def load() -> str:
            nonlocal call_count
            call_count += 1
            current = call_count
            await asyncio.sleep(0.01)
            return f"result_{current}"

        results = await asyncio.gather(
            manager.execute("t1", load),
            manager.execute("t2", load),
            manager.execute("t3", load),
        )

        assert len(set(results)) == 3
        assert call_count == 3

    @pytest.mark.asyncio
    async def test_error_propagated_to_all_waiters(self) -> None:
        """Erros devem ser propagados para todos os waiters."""
        manager = DeduplicationManager()
        call_count = 0

        async def load() -> str:
            nonlocal call_count
            call_count += 1
            await asyncio.sleep(0.05)
            raise ValueError("load failed")

        results = await asyncio.gather(
            *[manager.execute("error", load) for _ in range(3)],
            return_exceptions=True,
        )

        assert call_count == 1
        assert all(isinstance(r, ValueError) for r in results)

    @pytest.mark.asyncio
    async def test_error_without_waiters(self) -> None:
        """Erro sem waiters deve ser propagado e liberar o token."""
        manager = DeduplicationManager()

        async def load() -> str:
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError, match="boom"):
            await manager.execute("t", load)

        assert not await manager.is_pending("t")

    @pytest.mark.asyncio
    async def test_is_pending(self) -> None:
        """Deve reportar se há execução pendente."""
        manager = DeduplicationManager()

        async def load() -> str:
            await asyncio.sleep(0.1)
            return "result"

        task = asyncio.create_task(manager.execute("t1", load))
        await asyncio.sleep(0.01)

        assert await manager.is_pending("t1")
        assert not await manager.is_pending("t2")

        await task

        assert not await manager.is_pending("t1")

    @pytest.mark.asyncio
    async def test_pending_count(self) -> None:
        """Deve contar execuções pendentes."""
        manager = DeduplicationManager()

        async def load() -> str:
            await asyncio.sleep(0.1)
            return "result"

        tasks = [asyncio.create_task(manager.execute(f"t{i}", load)) for i in range(3)]
        await asyncio.sleep(0.01)

        assert await manager.pending_count() == 3

        await asyncio.gather(*tasks)
        assert await manager.pending_count() == 0

    @pytest.mark.asyncio
    async def test_sequential_calls_not_deduplicated(self) -> None:
        """Chamadas sequenciais devem iniciar nova execução."""
        manager = DeduplicationManager()
        call_count = 0

        async def load() -> int:
            nonlocal call_count
            call_count += 1
            return call_count

        assert await manager.execute("t", load) == 1
        assert await manager.execute("t", load) == 2

    @pytest.mark.asyncio
    async def test_same_token_different_scope_not_deduplicated(self) -> None:
        """Mesmo token com escopos diferentes deve executar loaders próprios."""
        manager = DeduplicationManager()
        calls: list[str] = []

        def make_load(name: str):
            async def load() -> str:
                calls.append(name)
                await asyncio.sleep(0.01)
                return name

            return load

        first, second = await asyncio.gather(
            manager.execute("g-a-b", make_load("pair"), scope=frozenset(["a", "b"])),
            manager.execute("g-a-b", make_load("single"), scope=frozenset(["a-b"])),
        )

        assert (first, second) == ("pair", "single")
        assert sorted(calls) == ["pair", "single"]
        assert await manager.pending_count() == 0

    @pytest.mark.asyncio
    async def test_same_scope_deduplicated(self) -> None:
        """Mesmo token e mesmo escopo devem compartilhar a execução."""
        manager = DeduplicationManager()
        call_count = 0

        async def load() -> str:
            nonlocal call_count
            call_count += 1
            await asyncio.sleep(0.01)
            return "ok"

        results = await asyncio.gather(
            manager.execute("t", load, scope=frozenset(["a", "b"])),
            manager.execute("t", load, scope=frozenset(["b", "a"])),
        )

        assert results == ["ok", "ok"]
        assert call_count == 1

    @pytest.mark.asyncio
    async def test_owner_cancelled_releases_waiters(self) -> None:
        """Cancelar o dono deve liberar os waiters com CancelledError."""
        manager = DeduplicationManager()
        started = asyncio.Event()

        async def load() -> str:
            started.set()
            await asyncio.sleep(10)
            return "never"

        owner = asyncio.create_task(manager.execute("t", load))
        await started.wait()
        waiter = asyncio.create_task(manager.execute("t", load))
        await asyncio.sleep(0.01)

        owner.cancel()
        done, _ = await asyncio.wait({waiter}, timeout=1.0)

        assert waiter in done
        assert waiter.cancelled()
        assert owner.cancelled()
        assert not await manager.is_pending("t")

    @pytest.mark.asyncio
    async def test_new_call_after_cancel_runs_loader(self) -> None:
        """Após cancelamento o token deve aceitar nova execução."""
        manager = DeduplicationManager()

        async def slow() -> str:
            await asyncio.sleep(10)
            return "slow"

        async def fast() -> str:
            return "fast"

        task = asyncio.create_task(manager.execute("t", slow))
        await asyncio.sleep(0.01)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert await manager.execute("t", fast) == "fast"

    def test_instantiation_without_event_loop(self) -> None:
        """Deve poder ser criado fora de um event loop."""
        manager = DeduplicationManager()
        assert manager._lock is None
