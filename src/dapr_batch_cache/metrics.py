"""Métricas do BatchCache (observer injetável)."""

import logging
from collections import defaultdict
from dataclasses import dataclass
from threading import Lock

from opentelemetry import metrics as otel_metrics

from .protocols import CacheMetrics

logger = logging.getLogger(__name__)

__all__ = [
    "CacheMetrics",
    "GroupStats",
    "InMemoryMetrics",
    "NoOpMetrics",
    "OpenTelemetryMetrics",
]


class NoOpMetrics:
    """Coletor de métricas que não faz nada (default)."""

    def record_request(self, group: str, count: int) -> None:
        pass

    def record_hit(self, group: str, count: int) -> None:
        pass

    def record_miss(self, group: str, count: int) -> None:
        pass

    def record_negative(self, group: str, count: int) -> None:
        pass

    def record_write(self, group: str, count: int) -> None:
        pass

    def record_delete(self, group: str, count: int) -> None:
        pass

    def record_error(self, group: str, error: Exception) -> None:
        pass


@dataclass
class GroupStats:
    """Estatísticas de um grupo de cache."""

    requests: int = 0
    hits: int = 0
    misses: int = 0
    negatives: int = 0
    writes: int = 0
    deletes: int = 0
    errors: int = 0

    @property
    def hit_ratio(self) -> float:
        return self.hits / self.requests if self.requests > 0 else 0.0


class OpenTelemetryMetrics:
    """Coletor de métricas usando OpenTelemetry.

    Métricas exportadas (todas counters, atributo ``group``):
    - batch_cache.requests: Chaves solicitadas
    - batch_cache.hits: Chaves servidas pelo store
    - batch_cache.misses: Chaves encaminhadas para a fonte
    - batch_cache.negatives: Chaves resolvidas como inexistentes
    - batch_cache.writes: Entradas gravadas
    - batch_cache.deletes: Chaves removidas
    - batch_cache.errors: Erros de store (atributo ``error_type``)

    Example:
        ```python
        from opentelemetry import metrics
        from opentelemetry.sdk.metrics import MeterProvider

        metrics.set_meter_provider(MeterProvider())

        cache = BatchCache(store, metrics=OpenTelemetryMetrics())
        ```
    """

    def __init__(self, meter_name: str = "dapr_batch_cache") -> None:
        meter = otel_metrics.get_meter(meter_name)

        self._requests_counter = meter.create_counter(
            "batch_cache.requests", description="Chaves solicitadas", unit="1"
        )
        self._hits_counter = meter.create_counter(
            "batch_cache.hits", description="Chaves servidas pelo store", unit="1"
        )
        self._misses_counter = meter.create_counter(
            "batch_cache.misses", description="Chaves encaminhadas para a fonte", unit="1"
        )
        self._negatives_counter = meter.create_counter(
            "batch_cache.negatives", description="Chaves resolvidas como inexistentes", unit="1"
        )
        self._writes_counter = meter.create_counter(
            "batch_cache.writes", description="Entradas gravadas no store", unit="1"
        )
        self._deletes_counter = meter.create_counter(
            "batch_cache.deletes", description="Chaves removidas do store", unit="1"
        )
        self._errors_counter = meter.create_counter(
            "batch_cache.errors", description="Erros de store", unit="1"
        )

    def record_request(self, group: str, count: int) -> None:
        self._requests_counter.add(count, {"group": group})

    def record_hit(self, group: str, count: int) -> None:
        self._hits_counter.add(count, {"group": group})

    def record_miss(self, group: str, count: int) -> None:
        self._misses_counter.add(count, {"group": group})

    def record_negative(self, group: str, count: int) -> None:
        self._negatives_counter.add(count, {"group": group})

    def record_write(self, group: str, count: int) -> None:
        self._writes_counter.add(count, {"group": group})

    def record_delete(self, group: str, count: int) -> None:
        self._deletes_counter.add(count, {"group": group})

    def record_error(self, group: str, error: Exception) -> None:
        self._errors_counter.add(1, {"group": group, "error_type": type(error).__name__})


class InMemoryMetrics:
    """Coletor de métricas em memória com estatísticas por grupo.

    Útil para desenvolvimento e testes. Thread-safe.
    """

    def __init__(self) -> None:
        self._lock = Lock()
        self._overall = GroupStats()
        self._by_group: dict[str, GroupStats] = defaultdict(GroupStats)

    def _add(self, group: str, field_name: str, count: int) -> None:
        with self._lock:
            setattr(self._overall, field_name, getattr(self._overall, field_name) + count)
            stats = self._by_group[group]
            setattr(stats, field_name, getattr(stats, field_name) + count)

    def record_request(self, group: str, count: int) -> None:
        self._add(group, "requests", count)

    def record_hit(self, group: str, count: int) -> None:
        self._add(group, "hits", count)

    def record_miss(self, group: str, count: int) -> None:
        self._add(group, "misses", count)

    def record_negative(self, group: str, count: int) -> None:
        self._add(group, "negatives", count)

    def record_write(self, group: str, count: int) -> None:
        self._add(group, "writes", count)

    def record_delete(self, group: str, count: int) -> None:
        self._add(group, "deletes", count)

    def record_error(self, group: str, error: Exception) -> None:
        logger.debug(f"Erro registrado para grupo {group}: {type(error).__name__}")
        self._add(group, "errors", 1)

    def get_stats(self) -> GroupStats:
        """Retorna estatísticas agregadas."""
        with self._lock:
            return GroupStats(**vars(self._overall))

    def get_group_stats(self, group: str) -> GroupStats | None:
        """Retorna estatísticas de um grupo específico."""
        with self._lock:
            if group not in self._by_group:
                return None
            return GroupStats(**vars(self._by_group[group]))

    def reset(self) -> None:
        """Reseta todas as estatísticas."""
        with self._lock:
            self._overall = GroupStats()
            self._by_group.clear()
