from __future__ import annotations

from typing import Any, List, Optional


class GestaoFretesError(Exception):
    """Base de todos os erros da aplicação."""


class StorageError(GestaoFretesError):
    """Falha de rede, permissão ou registro inexistente no Supabase (tabelas ou storage)."""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[str] = None,
        context: str = "",
    ) -> None:
        self.message = message
        self.code = code
        self.details = details
        self.context = context
        text = f"{context}: {message}" if context else message
        super().__init__(text)


class ValidationError(GestaoFretesError):
    """Dados de formulário inválidos; levantado antes de qualquer chamada de rede."""

    def __init__(self, errors: List[str]) -> None:
        self.errors = list(errors)
        super().__init__("; ".join(self.errors))


class LifecycleError(GestaoFretesError):
    """Uma transição da corrida não pôde ser concluída.

    `diverged` indica que a corrida foi gravada mas não pôde ser restaurada depois
    que a solicitação falhou: as duas linhas ficaram com status diferentes.
    """

    def __init__(self, message: str, corrida_id: Any = None, diverged: bool = False) -> None:
        self.corrida_id = corrida_id
        self.diverged = diverged
        super().__init__(message)


class InvalidTransitionError(LifecycleError):
    def __init__(self, corrida_id: Any, status: str, action: str) -> None:
        self.status = status
        self.action = action
        super().__init__(f"Não é possível {action} a corrida {corrida_id} com status '{status}'.", corrida_id)


class ConflictError(LifecycleError):
    """A corrida mudou de status entre a leitura e a escrita (outra pessoa agiu antes)."""


class DriverUnavailableError(LifecycleError):
    pass
