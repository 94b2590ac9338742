# apps/board/services.py

"""
Serviço de Tasks - orquestra uma mutação do início ao fim

guarda de acesso -> validação -> TaskStore (transação por coluna)
-> ChangeBroadcaster (após o commit)

As views HTTP só traduzem request/response; toda regra fica aqui.
"""

import logging
from typing import Dict, List, Optional

from django.db.models import Q

from apps.core.exceptions import ValidationError
from apps.core.forms import TaskCreateForm, TaskFiltroForm, TaskMoveForm, TaskUpdateForm
from apps.core.models import Board, Usuario
from apps.core.permissions import FluxoPermissions
from .broadcast import ChangeBroadcaster
from .events import TaskCreated, TaskDeleted, TaskUpdated
from .store import TaskStore

logger = logging.getLogger(__name__)

# Nome no payload -> campo do model
CAMPOS_MODELO = {
    'title': 'title',
    'description': 'description',
    'priority': 'priority',
    'dueDate': 'due_date',
    'tags': 'tags',
}


class TaskService:
    """Operações de task expostas para HTTP e WebSocket"""

    def __init__(self, store: Optional[TaskStore] = None, broadcaster: Optional[ChangeBroadcaster] = None):
        self.store = store or TaskStore()
        self.broadcaster = broadcaster or ChangeBroadcaster()

    # =================== LEITURA ===================

    def listar_tasks(self, usuario, board_id, filtros: Optional[Dict] = None) -> List[Dict]:
        """Todas as tasks do board, ordenadas por coluna e posição"""
        FluxoPermissions.exigir_acesso_board(usuario, board_id)
        filtros = TaskFiltroForm(data=filtros or {}).dados_validos()

        tasks = self.store.tasks_do_board(
            board_id,
            status=filtros.get('status'),
            assigned_to=filtros.get('assignedTo'),
            search=filtros.get('search'),
        )
        return [task.to_dict() for task in tasks]

    def obter_task(self, usuario, task_id) -> Dict:
        task = self.store.obter(task_id)
        FluxoPermissions.exigir_acesso_board(usuario, task.board_id)
        return task.to_dict()

    def minhas_tasks(self, usuario) -> List[Dict]:
        """Tasks atribuídas ao usuário nos boards que ele ainda acessa"""
        boards = Board.objects.filter(
            Q(owner=usuario) | Q(members=usuario) | Q(is_public=True)
        ).values_list('id', flat=True).distinct()

        resultado = []
        for task in self.store.tasks_atribuidas(usuario.id, list(boards)):
            dados = task.to_dict()
            dados['boardTitle'] = task.board.title
            resultado.append(dados)
        return resultado

    # =================== ESCRITA ===================

    def criar_task(self, usuario, dados: Dict, origem: Optional[str] = None) -> Dict:
        """Cria task no fim da coluna e publica task-created"""
        formulario = TaskCreateForm(data=dados)

        board_id = dados.get('board')
        if board_id in (None, ''):
            formulario.dados_validos()

        # Acesso antes da validação: sem acesso é sempre Forbidden
        board = FluxoPermissions.exigir_acesso_board(usuario, board_id)
        validos = formulario.dados_validos()

        campos = self._campos_modelo(validos)
        campos['status'] = validos['status']
        campos['created_by'] = usuario
        if 'assignedTo' in validos:
            campos['assigned_to'] = self._resolver_responsavel(board, validos['assignedTo'])

        task = self.store.criar(board, campos)
        resultado = task.to_dict()

        self.broadcaster.publicar(TaskCreated(board.id, resultado), origem)
        logger.info(f"✅ Task {task.id} criada por {usuario.username} em {board.id}/{task.status}@{task.position}")
        return resultado

    def atualizar_task(self, usuario, task_id, dados: Dict, origem: Optional[str] = None) -> Dict:
        """
        Atualização parcial

        status sem position: vai para o fim da coluna nova.
        position sem status: movimentação na mesma coluna.
        """
        task, board = self._task_com_acesso(usuario, task_id)
        validos = TaskUpdateForm(data=dados).dados_validos()

        campos = self._campos_modelo(validos)
        if 'assignedTo' in validos:
            campos['assigned_to'] = self._resolver_responsavel(board, validos['assignedTo'])

        atualizada = self.store.atualizar(
            task.id,
            campos,
            status=validos.get('status'),
            position=validos.get('position'),
        )
        return self._publicar_atualizacao(usuario, atualizada, origem)

    def mover_task(self, usuario, task_id, dados: Dict, origem: Optional[str] = None) -> Dict:
        """Reordenação explícita (status e posição obrigatórios)"""
        task, _ = self._task_com_acesso(usuario, task_id)
        validos = TaskMoveForm(data=dados).dados_validos()

        movida = self.store.mover(task.id, validos['status'], validos['position'])
        return self._publicar_atualizacao(usuario, movida, origem)

    def excluir_task(self, usuario, task_id, origem: Optional[str] = None) -> Dict:
        """Remove a task, fecha o buraco e publica task-deleted"""
        task, _ = self._task_com_acesso(usuario, task_id)

        excluida_id, board_id = self.store.excluir(task.id)
        self.broadcaster.publicar(TaskDeleted(board_id, excluida_id), origem)

        logger.info(f"🗑️ Task {excluida_id} excluída por {usuario.username} do board {board_id}")
        return {'taskId': excluida_id, 'boardId': board_id}

    # =================== MÉTODOS PRIVADOS ===================

    def _task_com_acesso(self, usuario, task_id):
        """Carrega a task e confere o acesso pelo board dela"""
        task = self.store.obter(task_id)
        board = FluxoPermissions.exigir_acesso_board(usuario, task.board_id)
        return task, board

    def _publicar_atualizacao(self, usuario, task, origem):
        resultado = task.to_dict()
        self.broadcaster.publicar(TaskUpdated(task.board_id, resultado), origem)
        logger.info(f"🔀 Task {task.id} atualizada por {usuario.username}: {task.status}@{task.position}")
        return resultado

    @staticmethod
    def _campos_modelo(validos):
        return {
            CAMPOS_MODELO[campo]: valor
            for campo, valor in validos.items()
            if campo in CAMPOS_MODELO
        }

    @staticmethod
    def _resolver_responsavel(board, usuario_id):
        """Responsável precisa ser dono ou membro do board"""
        if usuario_id is None:
            return None

        try:
            responsavel = Usuario.objects.get(id=usuario_id)
        except Usuario.DoesNotExist:
            raise ValidationError(details={'assignedTo': ['Usuário não encontrado']})

        if not board.eh_membro(responsavel.id):
            raise ValidationError(details={'assignedTo': ['Responsável precisa ser membro do board']})

        return responsavel
