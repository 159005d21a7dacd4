"""Configuração do BatchCache e opções por chamada."""

import os
from dataclasses import dataclass

DEFAULT_NEGATIVE_TTL_SECONDS = 10
DEFAULT_NEGATIVE_MARKER = "@@-1"

ENV_KEY_PREFIX = "BATCH_CACHE_KEY_PREFIX"
ENV_NEGATIVE_TTL_SECONDS = "BATCH_CACHE_NEGATIVE_TTL_SECONDS"
ENV_NEGATIVE_MARKER = "BATCH_CACHE_NEGATIVE_MARKER"


@dataclass(frozen=True)
class CacheConfig:
    """Configuração de uma instância de BatchCache.

    Attributes:
        key_prefix: Prefixo de todas as chaves físicas ("" omite o segmento)
        default_negative_ttl_seconds: TTL padrão das entradas negativas
            (0 desabilita a gravação de negativos)
        negative_marker: Payload que indica "confirmadamente inexistente"
    """

    key_prefix: str = ""
    default_negative_ttl_seconds: int = DEFAULT_NEGATIVE_TTL_SECONDS
    negative_marker: str = DEFAULT_NEGATIVE_MARKER

    def __post_init__(self) -> None:
        if self.default_negative_ttl_seconds < 0:
            raise ValueError("default_negative_ttl_seconds não pode ser negativo")
        if not self.negative_marker:
            raise ValueError("negative_marker não pode ser vazio")

    @property
    def negative_payload(self) -> bytes:
        """Marcador negativo como gravado no store."""
        return self.negative_marker.encode("utf-8")

    @classmethod
    def from_env(cls) -> "CacheConfig":
        """Carrega configuração das variáveis de ambiente.

        Variáveis ausentes usam os valores padrão.
        """
        return cls(
            key_prefix=os.getenv(ENV_KEY_PREFIX, ""),
            default_negative_ttl_seconds=int(
                os.getenv(ENV_NEGATIVE_TTL_SECONDS, str(DEFAULT_NEGATIVE_TTL_SECONDS))
            ),
            negative_marker=os.getenv(ENV_NEGATIVE_MARKER, DEFAULT_NEGATIVE_MARKER),
        )


@dataclass(frozen=True)
class BatchOptions:
    """Opções por chamada.

    Attributes:
        negative_ttl_seconds: Sobrescreve o TTL negativo padrão
            (None usa o da configuração, 0 desabilita a gravação)
    """

    negative_ttl_seconds: int | None = None

    def __post_init__(self) -> None:
        if self.negative_ttl_seconds is not None and self.negative_ttl_seconds < 0:
            raise ValueError("negative_ttl_seconds não pode ser negativo")


def resolve_options(options: "int | BatchOptions | None") -> BatchOptions:
    """Normaliza as opções por chamada.

    Aceita o formato legado (TTL negativo como número) ou BatchOptions;
    ambos resultam no mesmo TTL efetivo.
    """
    if options is None:
        return BatchOptions()
    if isinstance(options, BatchOptions):
        return options
    if isinstance(options, bool) or not isinstance(options, int):
        raise TypeError(f"options deve ser int ou BatchOptions, recebido {type(options).__name__}")
    return BatchOptions(negative_ttl_seconds=options)


def effective_negative_ttl(config: CacheConfig, options: BatchOptions) -> int:
    """TTL negativo efetivo para uma chamada."""
    if options.negative_ttl_seconds is not None:
        return options.negative_ttl_seconds
    return config.default_negative_ttl_seconds
