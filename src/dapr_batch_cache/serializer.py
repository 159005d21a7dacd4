"""Serialização de valores de cache."""

import json
from typing import Any

import msgpack

from .exceptions import CacheSerializationError
from .protocols import Serializer

__all__ = ["JsonSerializer", "MsgPackSerializer", "Serializer"]


class MsgPackSerializer:
    """Serializer usando MessagePack (default).

    MsgPack é um formato binário eficiente, mais compacto que JSON.
    Cada payload contém exatamente um objeto, então o marcador
    negativo padrão (``@@-1``) nunca é uma saída válida.
    """

    def serialize(self, data: Any) -> bytes:
        """Serializa dados Python para bytes MsgPack.

        Raises:
            CacheSerializationError: Se falhar ao serializar
        """
        try:
            result = msgpack.packb(data, use_bin_type=True)
            if result is None:
                raise CacheSerializationError("msgpack.packb retornou None")
            return result
        except (TypeError, ValueError, OverflowError) as e:
            raise CacheSerializationError(f"Falha ao serializar dados: {e}") from e

    def deserialize(self, data: bytes) -> Any:
        """Deserializa bytes MsgPack para dados Python.

        Raises:
            CacheSerializationError: Se o payload estiver corrompido
        """
        try:
            return msgpack.unpackb(data, raw=False)
        except (msgpack.UnpackException, ValueError) as e:
            raise CacheSerializationError(f"Falha ao deserializar dados: {e}") from e


class JsonSerializer:
    """Serializer JSON.

    Útil quando outros clientes (não Python) leem ou escrevem as
    mesmas chaves no store.
    """

    def __init__(self, encoding: str = "utf-8") -> None:
        self._encoding = encoding

    def serialize(self, data: Any) -> bytes:
        try:
            return json.dumps(data, ensure_ascii=False, separators=(",", ":")).encode(self._encoding)
        except (TypeError, ValueError) as e:
            raise CacheSerializationError(f"Falha ao serializar dados: {e}") from e

    def deserialize(self, data: bytes) -> Any:
        try:
            return json.loads(data.decode(self._encoding))
        except (UnicodeDecodeError, ValueError) as e:
            raise CacheSerializationError(f"Falha ao deserializar dados: {e}") from e
