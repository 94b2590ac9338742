# apps/board/tests/test_services.py

from django.test import TestCase

from apps.board.broadcast import ChangeBroadcaster
from apps.board.events import TASK_CREATED, TASK_DELETED, TASK_UPDATED
from apps.board.services import TaskService
from apps.core.exceptions import Forbidden, NotFound, ValidationError
from apps.core.models import Task
from .helpers import FakeBroadcaster, FakeRegistry, coluna, criar_board, criar_usuario, snapshot


class TaskServiceTestCase(TestCase):

    def setUp(self):
        self.dono = criar_usuario('dono')
        self.membro = criar_usuario('membro')
        self.intruso = criar_usuario('intruso')
        self.board = criar_board(self.dono, members=[self.membro])
        self.broadcaster = FakeBroadcaster()
        self.service = TaskService(broadcaster=self.broadcaster)

    def criar(self, usuario=None, **dados):
        dados.setdefault('board', self.board.id)
        dados.setdefault('title', 'Nova task')
        return self.service.criar_task(usuario or self.dono, dados)


class CriacaoTests(TaskServiceTestCase):

    def test_cria_com_padroes(self):
        task = self.criar()

        self.assertEqual(task['status'], 'todo')
        self.assertEqual(task['priority'], 'medium')
        self.assertEqual(task['position'], 0)
        self.assertEqual(task['tags'], [])
        self.assertEqual(task['createdBy']['username'], 'dono')

    def test_membro_pode_criar(self):
        task = self.criar(self.membro, title='Do membro', status='done', tags=[' api ', '', 'infra'])

        self.assertEqual(task['status'], 'done')
        self.assertEqual(task['tags'], ['api', 'infra'])

    def test_publica_task_created(self):
        task = self.service.criar_task(self.dono, {'board': self.board.id, 'title': 'X'}, origem='canal.1')

        evento, origem = self.broadcaster.eventos[-1]
        self.assertEqual(evento.kind, TASK_CREATED)
        self.assertEqual(evento.board_id, self.board.id)
        self.assertEqual(evento.task['id'], task['id'])
        self.assertEqual(origem, 'canal.1')

    def test_titulo_obrigatorio(self):
        with self.assertRaises(ValidationError) as ctx:
            self.service.criar_task(self.dono, {'board': self.board.id})

        self.assertIn('title', ctx.exception.details)
        self.assertFalse(Task.objects.exists())
        self.assertEqual(self.broadcaster.eventos, [])

    def test_status_invalido(self):
        with self.assertRaises(ValidationError):
            self.criar(status='blocked')

    def test_titulo_longo_demais(self):
        with self.assertRaises(ValidationError):
            self.criar(title='x' * (Task.TITLE_MAX_LENGTH + 1))

    def test_board_obrigatorio(self):
        with self.assertRaises(ValidationError):
            self.service.criar_task(self.dono, {'title': 'Sem board'})

    def test_board_inexistente(self):
        with self.assertRaises(NotFound):
            self.criar(board=987654)

    def test_responsavel_precisa_ser_membro(self):
        with self.assertRaises(ValidationError) as ctx:
            self.criar(assignedTo=self.intruso.id)

        self.assertIn('assignedTo', ctx.exception.details)

    def test_responsavel_membro(self):
        task = self.criar(assignedTo=self.membro.id, dueDate='2026-12-01')

        self.assertEqual(task['assignedTo']['id'], self.membro.id)
        self.assertEqual(task['dueDate'], '2026-12-01')


class AcessoTests(TaskServiceTestCase):
    """Quem não é dono nem membro de um board privado nunca altera nada"""

    def setUp(self):
        super().setUp()
        self.task = self.criar(title='Privada')
        self.broadcaster.eventos.clear()

    def test_criar_sem_acesso(self):
        with self.assertRaises(Forbidden):
            self.criar(self.intruso)

    def test_criar_sem_acesso_com_dados_invalidos(self):
        with self.assertRaises(Forbidden):
            self.service.criar_task(self.intruso, {'board': self.board.id, 'title': '', 'status': 'x'})

    def test_atualizar_sem_acesso(self):
        with self.assertRaises(Forbidden):
            self.service.atualizar_task(self.intruso, self.task['id'], {'title': ''})

    def test_mover_sem_acesso(self):
        with self.assertRaises(Forbidden):
            self.service.mover_task(self.intruso, self.task['id'], {'status': 'done', 'position': -3})

    def test_excluir_sem_acesso(self):
        with self.assertRaises(Forbidden):
            self.service.excluir_task(self.intruso, self.task['id'])

    def test_ler_sem_acesso(self):
        with self.assertRaises(Forbidden):
            self.service.listar_tasks(self.intruso, self.board.id)
        with self.assertRaises(Forbidden):
            self.service.obter_task(self.intruso, self.task['id'])

    def test_nada_muda_e_nada_e_publicado(self):
        antes = snapshot(self.board)
        for operacao in (
            lambda: self.service.atualizar_task(self.intruso, self.task['id'], {'title': 'hack'}),
            lambda: self.service.mover_task(self.intruso, self.task['id'], {'status': 'done', 'position': 0}),
            lambda: self.service.excluir_task(self.intruso, self.task['id']),
        ):
            with self.assertRaises(Forbidden):
                operacao()

        self.assertEqual(snapshot(self.board), antes)
        self.assertEqual(Task.objects.get(id=self.task['id']).title, 'Privada')
        self.assertEqual(self.broadcaster.eventos, [])

    def test_board_publico_libera_acesso(self):
        self.board.is_public = True
        self.board.save()

        task = self.criar(self.intruso, title='Pública')
        self.assertEqual(task['position'], 1)

    def test_task_inexistente(self):
        with self.assertRaises(NotFound):
            self.service.mover_task(self.dono, 555555, {'status': 'done', 'position': 0})


class AtualizacaoTests(TaskServiceTestCase):

    def setUp(self):
        super().setUp()
        self.a = self.criar(title='A')
        self.b = self.criar(title='B')
        self.c = self.criar(title='C')
        self.broadcaster.eventos.clear()

    def test_atualizacao_parcial(self):
        task = self.service.atualizar_task(self.membro, self.b['id'], {'description': 'detalhes', 'priority': 'high'})

        self.assertEqual(task['title'], 'B')
        self.assertEqual(task['description'], 'detalhes')
        self.assertEqual(task['priority'], 'high')
        self.assertEqual(task['position'], 1)

        evento, _ = self.broadcaster.eventos[-1]
        self.assertEqual(evento.kind, TASK_UPDATED)

    def test_status_sem_posicao_vai_para_o_fim(self):
        self.criar(title='D', status='done')

        task = self.service.atualizar_task(self.dono, self.a['id'], {'status': 'done'})

        self.assertEqual((task['status'], task['position']), ('done', 1))
        self.assertEqual(coluna(self.board, 'todo'), ['B', 'C'])

    def test_posicao_sem_status_reordena_na_coluna(self):
        self.service.atualizar_task(self.dono, self.c['id'], {'position': 0})

        self.assertEqual(coluna(self.board, 'todo'), ['C', 'A', 'B'])

    def test_titulo_vazio_rejeitado(self):
        with self.assertRaises(ValidationError):
            self.service.atualizar_task(self.dono, self.a['id'], {'title': ''})

    def test_remover_responsavel(self):
        self.service.atualizar_task(self.dono, self.a['id'], {'assignedTo': self.membro.id})
        task = self.service.atualizar_task(self.dono, self.a['id'], {'assignedTo': None})

        self.assertIsNone(task['assignedTo'])

    def test_mover(self):
        task = self.service.mover_task(self.dono, self.a['id'], {'status': 'in-progress', 'position': 0})

        self.assertEqual((task['status'], task['position']), ('in-progress', 0))
        self.assertEqual(coluna(self.board, 'todo'), ['B', 'C'])

    def test_mover_exige_status_e_posicao(self):
        with self.assertRaises(ValidationError):
            self.service.mover_task(self.dono, self.a['id'], {'status': 'done'})
        with self.assertRaises(ValidationError):
            self.service.mover_task(self.dono, self.a['id'], {'status': 'done', 'position': -1})

    def test_excluir(self):
        resultado = self.service.excluir_task(self.membro, self.a['id'], origem='canal.9')

        self.assertEqual(resultado, {'taskId': self.a['id'], 'boardId': self.board.id})
        self.assertEqual(coluna(self.board, 'todo'), ['B', 'C'])

        evento, origem = self.broadcaster.eventos[-1]
        self.assertEqual(evento.kind, TASK_DELETED)
        self.assertEqual(evento.payload(), {'taskId': self.a['id'], 'boardId': self.board.id})
        self.assertEqual(origem, 'canal.9')


class LeituraTests(TaskServiceTestCase):

    def test_listar_em_ordem(self):
        self.criar(title='A')
        self.criar(title='Z', status='done')
        self.criar(title='B')

        tasks = self.service.listar_tasks(self.membro, self.board.id)

        self.assertEqual([(t['title'], t['status'], t['position']) for t in tasks], [
            ('Z', 'done', 0),
            ('A', 'todo', 0),
            ('B', 'todo', 1),
        ])

    def test_minhas_tasks(self):
        self.criar(title='Minha', assignedTo=self.membro.id)
        self.criar(title='Outra')

        tasks = self.service.minhas_tasks(self.membro)

        self.assertEqual([t['title'] for t in tasks], ['Minha'])
        self.assertEqual(tasks[0]['boardTitle'], self.board.title)


class BroadcastAposCommitTests(TestCase):
    """ChangeBroadcaster real: só publica quando a transação confirma"""

    def setUp(self):
        self.dono = criar_usuario('dono')
        self.board = criar_board(self.dono)
        self.registry = FakeRegistry()

    def test_publica_apos_commit_excluindo_origem(self):
        service = TaskService(broadcaster=ChangeBroadcaster(registry=self.registry, exclude_origin=True))

        with self.captureOnCommitCallbacks(execute=True) as callbacks:
            service.criar_task(self.dono, {'board': self.board.id, 'title': 'A'}, origem='canal.abc')
            self.assertEqual(self.registry.publicados, [])

        self.assertEqual(len(callbacks), 1)
        board_id, evento, excluir = self.registry.publicados[0]
        self.assertEqual(board_id, self.board.id)
        self.assertEqual(evento.kind, TASK_CREATED)
        self.assertEqual(excluir, 'canal.abc')

    def test_sem_exclusao_de_origem(self):
        service = TaskService(broadcaster=ChangeBroadcaster(registry=self.registry, exclude_origin=False))

        with self.captureOnCommitCallbacks(execute=True):
            service.criar_task(self.dono, {'board': self.board.id, 'title': 'A'}, origem='canal.abc')

        self.assertIsNone(self.registry.publicados[0][2])

    def test_falha_na_publicacao_nao_afeta_a_mutacao(self):
        class RegistryQuebrado:
            async def publish(self, board_id, event, exclude=None):
                raise ConnectionError('redis fora do ar')

        service = TaskService(broadcaster=ChangeBroadcaster(registry=RegistryQuebrado()))

        with self.assertLogs('apps.board.broadcast', level='ERROR'):
            with self.captureOnCommitCallbacks(execute=True):
                task = service.criar_task(self.dono, {'board': self.board.id, 'title': 'A'})

        self.assertTrue(Task.objects.filter(id=task['id']).exists())
