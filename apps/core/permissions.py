# apps/core/permissions.py

from functools import wraps
from django.http import JsonResponse

from .exceptions import Forbidden, NotFound


class FluxoPermissions:
    """
    Guarda de acesso do Fluxo Board

    Regra única: dono, membro ou board público.
    Avaliada antes de toda leitura ou escrita de task.
    """

    @staticmethod
    def _usuario_id(user):
        """Aceita um usuário Django ou um id já autenticado"""
        if user is None:
            return None
        if isinstance(user, int):
            return user
        if not getattr(user, 'is_authenticated', False):
            return None
        return user.id

    @staticmethod
    def tem_acesso_board(user, board):
        """Verifica acesso a um board já carregado"""
        if board.is_public:
            return True
        return board.eh_membro(FluxoPermissions._usuario_id(user))

    @staticmethod
    def can_access(board_id, user):
        """
        Verifica acesso pelo id do board

        Nunca lança exceção: board inexistente retorna False.
        """
        from .models import Board

        try:
            board = Board.objects.get(id=board_id)
        except (Board.DoesNotExist, ValueError, TypeError):
            return False
        return FluxoPermissions.tem_acesso_board(user, board)

    @staticmethod
    def exigir_acesso_board(user, board_id):
        """
        Carrega o board e garante acesso

        Diferencia board inexistente (NotFound) de acesso negado (Forbidden).
        """
        from .models import Board

        try:
            board = Board.objects.get(id=board_id)
        except (Board.DoesNotExist, ValueError, TypeError):
            raise NotFound('Board não encontrado')

        if not FluxoPermissions.tem_acesso_board(user, board):
            raise Forbidden('Sem acesso ao board')

        return board


# Decoradores para views JSON

def api_login_required(view_func):
    """
    Decorador para a API JSON

    Retorna 401 em JSON ao invés de redirecionar para o login.
    """

    @wraps(view_func)
    def wrapped_view(request, *args, **kwargs):
        if not request.user.is_authenticated:
            return JsonResponse(
                {'success': False, 'error': 'Autenticação necessária', 'code': 'unauthenticated'},
                status=401
            )
        return view_func(request, *args, **kwargs)

    return wrapped_view
