"""Construtor de chaves de cache determinísticas."""

from typing import Any

KEY_SEPARATOR = ":"


def build_cache_key(*segments: str) -> str:
    """Junta os segmentos não vazios com ``KEY_SEPARATOR``.

    Example:
        ```python
        build_cache_key("app", "users", "42")  # "app:users:42"
        build_cache_key("", "users", "42")     # "users:42"
        ```
    """
    return KEY_SEPARATOR.join(segment for segment in segments if segment)


class DefaultKeyBuilder:
    """Construtor de chaves padrão.

    Gera chaves no formato ``{prefix}:{group}:{key}``, omitindo o
    prefixo quando vazio.

    Attributes:
        prefix: Prefixo para todas as chaves geradas
    """

    def __init__(self, prefix: str = "") -> None:
        self._prefix = prefix

    @property
    def prefix(self) -> str:
        """Prefixo das chaves."""
        return self._prefix

    def build_key(self, group: str, key: Any) -> str:
        """Constrói a chave física para uma chave lógica.

        Args:
            group: Grupo (namespace) do cache
            key: Chave lógica informada pelo chamador

        Returns:
            Chave no formato prefix:group:key
        """
        return build_cache_key(self._prefix, group, str(key))
