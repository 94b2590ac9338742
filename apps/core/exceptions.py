# apps/core/exceptions.py

"""
Tipos de erro do Fluxo Board

Cada erro sabe o próprio código HTTP e se o cliente pode tentar de novo.
A camada HTTP e a do WebSocket só traduzem estes objetos para JSON.
"""


class FluxoError(Exception):
    """Erro base de domínio"""

    code = 'error'
    status_code = 500
    retryable = False
    default_message = 'Erro interno'

    def __init__(self, message=None, details=None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def to_dict(self):
        dados = {
            'success': False,
            'error': self.message,
            'code': self.code,
            'retryable': self.retryable,
        }
        if self.details:
            dados['details'] = self.details
        return dados


class NotFound(FluxoError):
    code = 'not_found'
    status_code = 404
    default_message = 'Recurso não encontrado'


class Forbidden(FluxoError):
    code = 'forbidden'
    status_code = 403
    default_message = 'Sem acesso ao board'


class ValidationError(FluxoError):
    code = 'validation_error'
    status_code = 400
    default_message = 'Dados inválidos'


class RetryableError(FluxoError):
    """Falha temporária - o estado anterior foi preservado"""

    retryable = True


class Conflict(RetryableError):
    code = 'conflict'
    status_code = 409
    default_message = 'A coluna foi alterada por outra operação'


class TransientStorageError(RetryableError):
    code = 'transient_storage_error'
    status_code = 503
    default_message = 'Falha temporária de armazenamento'
