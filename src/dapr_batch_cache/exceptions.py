"""Exceções do dapr-batch-cache."""


class CacheError(Exception):
    """Erro base para operações de cache."""

    def __init__(self, message: str, key: str | None = None) -> None:
        self.key = key
        super().__init__(message)


class CacheSerializationError(CacheError):
    """Erro de serialização/deserialização de dados.

    Na leitura indica entrada corrompida no store e nunca é
    rebaixado para cache miss.
    """

    pass


class CacheKeyError(CacheError):
    """Erro relacionado à chave de cache (vazia, inválida, etc.)."""

    pass


class StoreReadError(CacheError):
    """Falha ao ler do store.

    O BatchCache trata como miss total e consulta a fonte.
    """

    pass


class StoreWriteError(CacheError):
    """Falha ao escrever no store.

    Fatal: falha a requisição em andamento e todos os waiters
    deduplicados no mesmo token.
    """

    pass


class CacheConnectionError(StoreWriteError):
    """Erro de conexão com o sidecar Dapr ao gravar ou remover."""

    pass
