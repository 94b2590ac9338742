# apps/board/views.py

import json
import logging
from functools import wraps

from django.db import transaction
from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_http_methods, require_POST

from apps.core.exceptions import FluxoError, ValidationError
from apps.core.permissions import api_login_required
from .services import TaskService

logger = logging.getLogger(__name__)

# Header com o channel_name do WebSocket de quem fez a requisição
ORIGIN_HEADER = 'X-Channel-Name'


def api_view(view_func):
    """
    Decorador das views JSON

    - 401 para anônimos
    - FluxoError vira JSON com o status correspondente
    - Sem ATOMIC_REQUESTS: o TaskStore controla as próprias transações
    """

    @wraps(view_func)
    def wrapped_view(request, *args, **kwargs):
        try:
            return view_func(request, *args, **kwargs)
        except FluxoError as e:
            if e.retryable:
                logger.warning(f"⚠️ {request.method} {request.path}: {e.message}")
            return JsonResponse(e.to_dict(), status=e.status_code)

    return csrf_exempt(api_login_required(transaction.non_atomic_requests(wrapped_view)))


def _ler_json(request):
    """Corpo da requisição como dict"""
    try:
        dados = json.loads(request.body or b'{}')
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise ValidationError('JSON inválido')

    if not isinstance(dados, dict):
        raise ValidationError('O corpo deve ser um objeto JSON')
    return dados


def _origem(request):
    return request.headers.get(ORIGIN_HEADER) or None


@api_view
@require_GET
def tasks_do_board(request, board_id):
    """
    Lista as tasks do board
    Filtros: ?status=&assignedTo=&search=
    """
    tasks = TaskService().listar_tasks(request.user, board_id, request.GET)
    return JsonResponse(tasks, safe=False)


@api_view
@require_GET
def minhas_tasks(request):
    """Tasks atribuídas ao usuário logado"""
    return JsonResponse(TaskService().minhas_tasks(request.user), safe=False)


@api_view
@require_POST
def criar_task(request):
    """Cria task no fim da coluna - broadcast task-created"""
    task = TaskService().criar_task(request.user, _ler_json(request), origem=_origem(request))
    return JsonResponse(task, status=201)


@api_view
@require_http_methods(["GET", "PUT", "PATCH", "DELETE"])
def task_detalhe(request, task_id):
    """
    GET: detalhes da task
    PUT/PATCH: atualização parcial - broadcast task-updated
    DELETE: remove e fecha o buraco - broadcast task-deleted
    """
    service = TaskService()

    if request.method == 'GET':
        return JsonResponse(service.obter_task(request.user, task_id))

    if request.method == 'DELETE':
        resultado = service.excluir_task(request.user, task_id, origem=_origem(request))
        return JsonResponse({'success': True, 'message': 'Task excluída', **resultado})

    task = service.atualizar_task(request.user, task_id, _ler_json(request), origem=_origem(request))
    return JsonResponse(task)


@api_view
@require_http_methods(["PUT", "PATCH", "POST"])
def mover_task(request, task_id):
    """
    Move task para status/posição - usado pelo drag-and-drop
    Broadcast task-updated
    """
    task = TaskService().mover_task(request.user, task_id, _ler_json(request), origem=_origem(request))
    return JsonResponse(task)
