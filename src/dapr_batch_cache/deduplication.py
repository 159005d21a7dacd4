"""Deduplicação de buscas na fonte (single-flight por token)."""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Hashable
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Entrada em voo: (token, escopo)
_Flight = tuple[str, Hashable]


class DeduplicationManager:
    """Coordenador single-flight por token.

    Enquanto um loader estiver em execução para um token, as chamadas
    concorrentes com o mesmo token aguardam e recebem o mesmo resultado
    (ou a mesma exceção). Tokens diferentes executam de forma independente.
    Ao terminar, o token é liberado: não há cache além da janela em voo.

    O ``scope`` opcional identifica exatamente o trabalho do loader. Dois
    chamadores só compartilham a busca se token e escopo forem iguais, o
    que evita que tokens textualmente iguais para conjuntos diferentes
    (``g-a-b`` para ``["a", "b"]`` e ``["a-b"]``) se misturem.

    Se o dono do token for cancelado, os waiters recebem ``CancelledError``
    em vez de ficarem presos no future.

    Exemplo:
        ```python
        manager = DeduplicationManager()

        async def load():
            await asyncio.sleep(1)
            return {"a": 1}

        # Apenas um load é executado, mesmo com 10 chamadas
        results = await asyncio.gather(*[
            manager.execute("users-a", load)
            for _ in range(10)
        ])
        ```
    """

    def __init__(self) -> None:
        self._in_flight: dict[_Flight, asyncio.Future[Any]] = {}
        # asyncio.Lock é criado lazy para evitar "no current event loop"
        # quando a instância é criada antes de existir um event loop
        self._lock: asyncio.Lock | None = None

    def _get_lock(self) -> asyncio.Lock:
        if self._lock is None:
            self._lock = asyncio.Lock()
        return self._lock

    async def execute(
        self,
        token: str,
        loader: Callable[[], Awaitable[T]],
        scope: Hashable = None,
    ) -> T:
        """Executa o loader com deduplicação por token.

        Args:
            token: Token de deduplicação
            loader: Função async que produz o resultado
            scope: Identidade exata do trabalho (ex.: frozenset das chaves)

        Returns:
            Resultado do loader (próprio ou compartilhado)

        Raises:
            Exception: Exceção do loader, propagada para todos os waiters
            asyncio.CancelledError: Se a execução dona do token for cancelada
        """
        flight: _Flight = (token, scope)

        async with self._get_lock():
            shared = self._in_flight.get(flight)
            if shared is None:
                owned: asyncio.Future[T] = asyncio.get_running_loop().create_future()
                self._in_flight[flight] = owned

        # Aguarda fora do lock: o dono precisa do lock para liberar o token
        if shared is not None:
            logger.debug(f"Aguardando busca em andamento para token: {token}")
            return await shared

        logger.debug(f"Iniciando busca para token: {token}")
        try:
            result = await loader()
        except Exception as e:
            owned.set_exception(e)
            # Sem waiters ninguém lê a exceção do future
            owned.exception()
            raise
        else:
            owned.set_result(result)
            return result
        finally:
            if not owned.done():
                logger.debug(f"Busca cancelada para token: {token}")
                owned.cancel()
            async with self._get_lock():
                if self._in_flight.get(flight) is owned:
                    del self._in_flight[flight]

    async def is_pending(self, token: str) -> bool:
        """Verifica se há busca em andamento para o token."""
        async with self._get_lock():
            return any(pending_token == token for pending_token, _ in self._in_flight)

    async def pending_count(self) -> int:
        """Retorna número de buscas em andamento."""
        async with self._get_lock():
            return len(self._in_flight)
