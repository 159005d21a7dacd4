"""Configuração de fixtures para testes."""

from collections.abc import Sequence

import pytest

from dapr_batch_cache import BatchCache, CacheConfig, InMemoryStateBackend


class FakeClock:
    """Relógio controlado para simular expiração de TTL."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingSource:
    """Fonte em lote que registra as chamadas.

    Retorna ``{"k": key, "value": f"{key}-res"}`` para cada chave, exceto
    as listadas em ``missing`` (None) e ``omitted`` (ausentes do mapa).
    """

    def __init__(self, missing: Sequence[str] = (), omitted: Sequence[str] = ()) -> None:
        self.missing = set(missing)
        self.omitted = set(omitted)
        self.calls: list[list[str]] = []

    async def __call__(self, keys: list[str]) -> dict[str, dict | None]:
        self.calls.append(list(keys))
        result: dict[str, dict | None] = {}
        for key in keys:
            if key in self.omitted:
                continue
            result[key] = None if key in self.missing else mock_res_by_key(key)
        return result


def mock_res_by_key(key: str) -> dict:
    """Valor de exemplo para uma chave."""
    return {"k": key, "value": f"{key}-res"}


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock: FakeClock) -> InMemoryStateBackend:
    """Store em memória com relógio controlado."""
    return InMemoryStateBackend(clock=clock)


@pytest.fixture
def cache(store: InMemoryStateBackend) -> BatchCache:
    """BatchCache sobre store em memória, TTL negativo padrão de 5s."""
    return BatchCache(store, CacheConfig(default_negative_ttl_seconds=5))


@pytest.fixture
def sample_data() -> dict:
    """Dados de exemplo para testes."""
    return {"user_id": 123, "name": "Test User", "active": True}


@pytest.fixture
def make_source() -> type[RecordingSource]:
    """Fábrica de fontes que registram chamadas."""
    return RecordingSource
