"""
Exceções de domínio.

Os serviços não conhecem HTTP; cada erro carrega o status que o
handler em server.py devolve ao cliente como {"detail": message}.
"""


class ServiceError(Exception):
    status_code = 400

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class InvalidInputError(ServiceError):
    status_code = 400


class PermissionDeniedError(ServiceError):
    status_code = 403


class NotFoundError(ServiceError):
    status_code = 404


class ConflictError(ServiceError):
    """Transição de estado inválida, limite atingido ou registo duplicado."""
    status_code = 409


class ExternalServiceError(ServiceError):
    """Falha em serviço externo (armazenamento, ViaCEP)."""
    status_code = 502
