"""Contadores de hit/missing/non_exists do BatchCache."""

from dataclasses import dataclass
from threading import Lock


@dataclass(frozen=True)
class BatchStats:
    """Snapshot dos contadores.

    Attributes:
        hit: Chaves servidas pelo store (positivas ou negativas)
        missing: Chaves encaminhadas para a fonte
        non_exists: Chaves resolvidas como inexistentes
    """

    hit: int = 0
    missing: int = 0
    non_exists: int = 0

    @property
    def total(self) -> int:
        return self.hit + self.missing

    @property
    def hit_ratio(self) -> float:
        total = self.total
        return self.hit / total if total > 0 else 0.0


class StatsCounter:
    """Contadores acumulados durante a vida de um BatchCache.

    Thread-safe: os incrementos passam por um ``threading.Lock``,
    então podem ser usados por event loops em threads diferentes.
    Não há reset; uma nova instância começa zerada.
    """

    def __init__(self) -> None:
        self._lock = Lock()
        self._hit = 0
        self._missing = 0
        self._non_exists = 0

    def add(self, hit: int = 0, missing: int = 0, non_exists: int = 0) -> None:
        """Soma os deltas de uma chamada."""
        with self._lock:
            self._hit += hit
            self._missing += missing
            self._non_exists += non_exists

    def snapshot(self) -> BatchStats:
        """Retorna cópia imutável dos contadores."""
        with self._lock:
            return BatchStats(hit=self._hit, missing=self._missing, non_exists=self._non_exists)
