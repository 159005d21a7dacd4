"""Conversões entre resultados em lista e em mapa."""

from collections.abc import Hashable, Iterable, Mapping
from typing import Any


def get_field(item: Any, field: str) -> Any:
    """Lê ``field`` de um mapping ou atributo de objeto."""
    if isinstance(item, Mapping):
        return item.get(field)
    return getattr(item, field, None)


def to_map(items: Iterable[Any], key_field: str, keys: Iterable[Hashable]) -> dict[Any, Any]:
    """Indexa ``items`` por ``key_field`` restrito às chaves solicitadas.

    Chaves sem item correspondente mapeiam para None. Itens cuja chave
    não foi solicitada são ignorados.
    """
    requested = list(keys)
    wanted = set(requested)
    indexed: dict[Any, Any] = {}
    for item in items:
        if item is None:
            continue
        key = get_field(item, key_field)
        if key in wanted:
            indexed[key] = item
    return {key: indexed.get(key) for key in requested}


def to_list_without_none(mapping: Mapping[Any, Any]) -> list[Any]:
    """Valores do mapa na ordem das chaves, sem os None."""
    return [value for value in mapping.values() if value is not None]
