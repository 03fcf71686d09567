"""Taxonomia de erros do domínio; cada classe carrega o status HTTP correspondente."""
from __future__ import annotations

from typing import Any


class ServiceError(Exception):
    status_code = 500
    default_message = "Erro interno do servidor"

    def __init__(self, message: str | None = None, details: Any = None) -> None:
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"error": self.message}
        if self.details is not None:
            body["details"] = self.details
        return body


class ValidationError(ServiceError):
    status_code = 400
    default_message = "Dados inválidos"


class AuthenticationError(ServiceError):
    status_code = 401
    default_message = "Não autenticado"


class InvalidCredentials(AuthenticationError):
    default_message = "Credenciais inválidas"


class MissingToken(AuthenticationError):
    default_message = "Token de acesso necessário"


class InvalidToken(AuthenticationError):
    default_message = "Token inválido"


class ExpiredToken(AuthenticationError):
    default_message = "Token expirado"


class UserNotFound(AuthenticationError):
    default_message = "Usuário não encontrado"


class AccountDisabled(AuthenticationError):
    default_message = "Conta desativada"


class AuthorizationError(ServiceError):
    status_code = 403
    default_message = "Acesso negado"


class NotFoundError(ServiceError):
    status_code = 404
    default_message = "Registro não encontrado"


class ConflictError(ServiceError):
    status_code = 409
    default_message = "Dados já existem"


class SchedulingConflict(ConflictError):
    default_message = "Conflito de horário"


class InternalError(ServiceError):
    status_code = 500
