# apps/board/store.py

"""
Armazenamento de tasks

Único lugar que escreve status e position. Toda alteração de ordem
roda numa transação que primeiro "reivindica" as colunas afetadas
com compare-and-swap no contador de versão (TaskColumn.version).
Se outra operação mexeu na coluna no meio do caminho, a transação
é desfeita e refeita sobre o estado novo, até FLUXO_REORDER_MAX_RETRIES.
"""

import logging
from django.conf import settings
from django.db import DEFAULT_DB_ALIAS, OperationalError, connections, transaction
from django.db.models import F, Q

from apps.core.exceptions import Conflict, NotFound, TransientStorageError
from apps.core.models import Task, TaskColumn
from . import ordering

logger = logging.getLogger(__name__)


class TaskStore:
    """Registro durável das tasks e dono do espaço (board, status, position)"""

    def __init__(self, max_retries=None, timeout_ms=None, using=DEFAULT_DB_ALIAS):
        if max_retries is None:
            max_retries = getattr(settings, 'FLUXO_REORDER_MAX_RETRIES', 3)
        # Pelo menos uma tentativa, mesmo com a configuração zerada
        self.max_retries = max(1, int(max_retries))
        self.timeout_ms = timeout_ms if timeout_ms is not None else getattr(settings, 'FLUXO_REORDER_TIMEOUT_MS', 5000)
        self.using = using

    # === Leitura ===

    def _queryset(self):
        return Task.objects.using(self.using).select_related('assigned_to', 'created_by')

    def obter(self, task_id):
        try:
            return self._queryset().get(id=task_id)
        except (Task.DoesNotExist, ValueError, TypeError):
            raise NotFound('Task não encontrada')

    def tasks_do_board(self, board_id, status=None, assigned_to=None, search=None):
        """Tasks do board ordenadas por coluna e posição"""
        tasks = self._queryset().filter(board_id=board_id)

        if status:
            tasks = tasks.filter(status=status)

        if assigned_to:
            tasks = tasks.filter(assigned_to_id=assigned_to)

        if search:
            tasks = tasks.filter(
                Q(title__icontains=search) |
                Q(description__icontains=search) |
                Q(id__in=self._ids_com_tag(tasks, search))
            )

        return tasks.order_by('status', 'position', '-criado_em')

    @staticmethod
    def _ids_com_tag(tasks, search):
        """
        Tasks com alguma tag contendo o termo (sem diferenciar maiúsculas)

        Compara tag a tag; o texto JSON da lista nunca entra na busca.
        """
        termo = search.lower()
        return [
            task_id
            for task_id, tags in tasks.values_list('id', 'tags')
            if any(isinstance(tag, str) and termo in tag.lower() for tag in tags or ())
        ]

    def tasks_atribuidas(self, usuario_id, board_ids):
        return self._queryset().filter(
            assigned_to_id=usuario_id,
            board_id__in=board_ids
        ).select_related('board').order_by('-criado_em')

    def tamanho_coluna(self, board_id, status):
        return Task.objects.using(self.using).filter(board_id=board_id, status=status).count()

    # === Escrita ===

    def criar(self, board, campos):
        """Cria a task no fim da coluna"""
        status = campos.get('status', Task.STATUS_TODO)

        def operacao():
            self._reivindicar(board.id, [status])
            plano = ordering.plan_create(status, self.tamanho_coluna(board.id, status))
            task = Task(board=board, position=plano.position, **campos)
            task.save(using=self.using)
            return task

        task = self.executar(operacao, f'criar task no board {board.id}/{status}')
        return self.obter(task.id)

    def atualizar(self, task_id, campos, status=None, position=None):
        """
        Atualiza campos e, se pedido, reposiciona a task

        status sem position: entra no fim da coluna de destino.
        position sem status: movimentação dentro da mesma coluna.
        Nenhum dos dois: sem reordenação.
        """

        def operacao():
            task = self._carregar_reivindicado(task_id, status)
            novo_status = status or task.status
            plano = None

            if position is not None:
                plano = ordering.plan_move(
                    task.status, task.position, novo_status, position,
                    self.tamanho_coluna(task.board_id, novo_status)
                )
            elif novo_status != task.status:
                plano = ordering.plan_append(
                    task.status, task.position, novo_status,
                    self.tamanho_coluna(task.board_id, novo_status)
                )

            if plano is not None:
                self._aplicar(plano.shifts, task)
                task.status = plano.status
                task.position = plano.position

            for campo, valor in campos.items():
                setattr(task, campo, valor)

            task.save(using=self.using)
            return task

        task = self.executar(operacao, f'atualizar task {task_id}')
        return self.obter(task.id)

    def mover(self, task_id, status, position):
        """Reordenação explícita: sempre passa pelo plano completo"""
        return self.atualizar(task_id, {}, status=status, position=position)

    def excluir(self, task_id):
        """Remove a task e fecha o buraco na coluna. Retorna (task_id, board_id)."""

        def operacao():
            task = self._carregar_reivindicado(task_id, None)
            board_id = task.board_id
            pk = task.pk
            task.delete()
            self._aplicar(ordering.plan_delete(task.status, task.position), task, pk=pk)
            return pk, board_id

        return self.executar(operacao, f'excluir task {task_id}')

    def renumerar_coluna(self, board_id, status):
        """
        Reconstrói a numeração densa de uma coluna

        Mantém a ordem relativa atual (posição, depois criação).
        Retorna quantas tasks mudaram de posição.
        """

        def operacao():
            self._reivindicar(board_id, [status])
            tasks = list(
                Task.objects.using(self.using)
                .filter(board_id=board_id, status=status)
                .order_by('position', 'criado_em', 'id')
            )
            novas = ordering.renumber(task.id for task in tasks)
            alteradas = 0
            for task in tasks:
                if task.position != novas[task.id]:
                    Task.objects.using(self.using).filter(pk=task.pk).update(position=novas[task.id])
                    alteradas += 1
            return alteradas

        return self.executar(operacao, f'renumerar coluna {board_id}/{status}')

    # === Transação e concorrência ===

    def executar(self, operacao, descricao='operação'):
        """
        Executa a operação numa transação, com novas tentativas

        Conflict e OperationalError desfazem tudo e tentam de novo;
        esgotadas as tentativas, o erro sobe como retentável.
        """
        ultimo_erro = None

        for tentativa in range(1, self.max_retries + 1):
            try:
                with transaction.atomic(using=self.using):
                    self._aplicar_timeout()
                    return operacao()

            except Conflict as e:
                ultimo_erro = e
                logger.warning(f"⚠️ Conflito ao {descricao} (tentativa {tentativa}/{self.max_retries})")

            except OperationalError as e:
                ultimo_erro = TransientStorageError(details={'causa': str(e)})
                logger.warning(f"⚠️ Falha de armazenamento ao {descricao} (tentativa {tentativa}/{self.max_retries}): {e}")

        logger.error(f"❌ Desistindo de {descricao} após {self.max_retries} tentativas")
        raise type(ultimo_erro)(
            f'{ultimo_erro.message}. Tente novamente.',
            details=ultimo_erro.details
        )

    def _aplicar_timeout(self):
        """Limita o tempo da transação (PostgreSQL)"""
        conexao = connections[self.using]
        if not self.timeout_ms or conexao.vendor != 'postgresql':
            return

        with conexao.cursor() as cursor:
            cursor.execute('SET LOCAL statement_timeout = %s', [int(self.timeout_ms)])
            cursor.execute('SET LOCAL lock_timeout = %s', [int(self.timeout_ms)])

    def _reivindicar(self, board_id, statuses):
        """
        Compare-and-swap na versão de cada coluna afetada

        Ordem fixa por status para que duas operações cruzadas
        não travem uma esperando a outra.
        """
        for status in sorted(set(statuses)):
            coluna, _ = TaskColumn.objects.using(self.using).get_or_create(
                board_id=board_id,
                status=status
            )
            atualizadas = TaskColumn.objects.using(self.using).filter(
                pk=coluna.pk,
                version=coluna.version
            ).update(version=F('version') + 1)

            if not atualizadas:
                raise Conflict()

    def _carregar_reivindicado(self, task_id, novo_status):
        """Lê a task, reivindica as colunas envolvidas e confirma que nada mudou"""
        task = self.obter(task_id)
        self._reivindicar(task.board_id, {task.status, novo_status or task.status})

        atual = self.obter(task_id)
        if atual.status != task.status:
            raise Conflict()
        return atual

    def _aplicar(self, shifts, task, pk=None):
        """Aplica os deslocamentos do plano, sempre excluindo a própria task"""
        pk = pk if pk is not None else task.pk

        for shift in shifts:
            afetadas = Task.objects.using(self.using).filter(
                board_id=task.board_id,
                status=shift.status,
                position__gte=shift.start
            ).exclude(pk=pk)

            if shift.end is not None:
                afetadas = afetadas.filter(position__lte=shift.end)

            afetadas.update(position=F('position') + shift.delta)
