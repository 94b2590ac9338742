# apps/board/tests/test_consumers.py

from channels.db import database_sync_to_async
from channels.routing import URLRouter
from channels.testing import WebsocketCommunicator
from django.contrib.auth.models import AnonymousUser
from django.test import TransactionTestCase

from apps.board.registry import reset_registry
from apps.board.routing import websocket_urlpatterns
from apps.board.services import TaskService
from .helpers import criar_board, criar_usuario


def com_usuario(application, user):
    """Substitui o AuthMiddlewareStack nos testes"""

    async def app(scope, receive, send):
        return await application(dict(scope, user=user), receive, send)

    return app


class BoardConsumerTestCase(TransactionTestCase):

    def setUp(self):
        self.registry = reset_registry()
        self.dono = criar_usuario('dono')
        self.membro = criar_usuario('membro')
        self.intruso = criar_usuario('intruso')
        self.board = criar_board(self.dono, members=[self.membro])
        self.outro_board = criar_board(self.dono, title='Outro')
        self.abertas = []

    def tearDown(self):
        reset_registry()

    async def conectar(self, usuario, path='/ws/boards/'):
        communicator = WebsocketCommunicator(com_usuario(URLRouter(websocket_urlpatterns), usuario), path)
        conectado, _ = await communicator.connect()
        self.assertTrue(conectado)

        saudacao = await communicator.receive_json_from()
        self.assertEqual(saudacao['type'], 'connected')
        self.abertas.append(communicator)
        return communicator, saudacao['channel']

    async def entrar(self, communicator, board_id):
        await communicator.send_json_to({'type': 'join', 'board': board_id})
        resposta = await communicator.receive_json_from()
        self.assertEqual(resposta, {'type': 'joined', 'board': board_id})

    async def fechar_todas(self):
        for communicator in self.abertas:
            await communicator.disconnect()

    def criar_task(self, usuario, origem=None, **dados):
        dados.setdefault('board', self.board.id)
        dados.setdefault('title', 'Task via HTTP')
        return TaskService().criar_task(usuario, dados, origem=origem)


class ConexaoTests(BoardConsumerTestCase):

    async def test_anonimo_e_rejeitado(self):
        communicator = WebsocketCommunicator(
            com_usuario(URLRouter(websocket_urlpatterns), AnonymousUser()), '/ws/boards/'
        )
        conectado, _ = await communicator.connect()

        self.assertFalse(conectado)

    async def test_rota_do_board_ja_entra_inscrita(self):
        communicator, canal = await self.conectar(self.membro, f'/ws/board/{self.board.id}/')

        resposta = await communicator.receive_json_from()
        self.assertEqual(resposta['type'], 'joined')
        self.assertEqual(self.registry.subscriptions(canal), frozenset({str(self.board.id)}))

        await self.fechar_todas()

    async def test_rota_do_board_sem_acesso(self):
        communicator = WebsocketCommunicator(
            com_usuario(URLRouter(websocket_urlpatterns), self.intruso), f'/ws/board/{self.board.id}/'
        )
        conectado, _ = await communicator.connect()

        self.assertFalse(conectado)

    async def test_ping(self):
        communicator, _ = await self.conectar(self.dono)

        await communicator.send_json_to({'type': 'ping'})
        resposta = await communicator.receive_json_from()

        self.assertEqual(resposta['type'], 'pong')
        await self.fechar_todas()

    async def test_mensagens_invalidas(self):
        communicator, _ = await self.conectar(self.dono)

        await communicator.send_to(text_data='{nao e json')
        self.assertEqual((await communicator.receive_json_from())['code'], 'invalid_json')

        await communicator.send_json_to(['join'])
        self.assertEqual((await communicator.receive_json_from())['code'], 'invalid_message')

        await communicator.send_json_to({'type': 'dance'})
        self.assertEqual((await communicator.receive_json_from())['code'], 'unknown_type')

        await self.fechar_todas()

    async def test_desconectar_libera_inscricoes(self):
        communicator, canal = await self.conectar(self.dono)
        await self.entrar(communicator, self.board.id)
        await self.entrar(communicator, self.outro_board.id)

        await communicator.disconnect()

        self.assertEqual(self.registry.subscriptions(canal), frozenset())
        self.assertEqual(self.registry.subscribers(self.board.id), frozenset())


class InscricaoTests(BoardConsumerTestCase):

    async def test_join_sem_acesso(self):
        communicator, canal = await self.conectar(self.intruso)

        await communicator.send_json_to({'type': 'join', 'board': self.board.id})
        resposta = await communicator.receive_json_from()

        self.assertEqual(resposta['type'], 'error')
        self.assertEqual(resposta['code'], 'forbidden')
        self.assertEqual(self.registry.subscriptions(canal), frozenset())
        await self.fechar_todas()

    async def test_join_board_inexistente(self):
        communicator, _ = await self.conectar(self.dono)

        await communicator.send_json_to({'type': 'join', 'board': 999999})
        self.assertEqual((await communicator.receive_json_from())['code'], 'not_found')

        await self.fechar_todas()

    async def test_leave(self):
        communicator, canal = await self.conectar(self.membro)
        await self.entrar(communicator, self.board.id)

        await communicator.send_json_to({'type': 'leave', 'board': self.board.id})
        self.assertEqual(await communicator.receive_json_from(), {'type': 'left', 'board': self.board.id})

        await database_sync_to_async(self.criar_task)(self.dono)
        self.assertTrue(await communicator.receive_nothing())
        await self.fechar_todas()

    async def test_join_com_id_em_outro_formato_recebe_eventos(self):
        communicator, canal = await self.conectar(self.membro)

        await communicator.send_json_to({'type': 'join', 'board': f'0{self.board.id}'})
        self.assertEqual(await communicator.receive_json_from(), {'type': 'joined', 'board': self.board.id})
        self.assertEqual(self.registry.subscriptions(canal), frozenset({str(self.board.id)}))

        task = await database_sync_to_async(self.criar_task)(self.dono)

        frame = await communicator.receive_json_from()
        self.assertEqual(frame['type'], 'task-created')
        self.assertEqual(frame['data']['id'], task['id'])

        await communicator.send_json_to({'type': 'sync_board', 'board': str(self.board.id)})
        self.assertEqual((await communicator.receive_json_from())['type'], 'board_sync')

        await communicator.send_json_to({'type': 'leave', 'board': f'00{self.board.id}'})
        self.assertEqual(await communicator.receive_json_from(), {'type': 'left', 'board': self.board.id})
        self.assertEqual(self.registry.subscriptions(canal), frozenset())
        await self.fechar_todas()

    async def test_leave_sem_join(self):
        communicator, _ = await self.conectar(self.membro)

        await communicator.send_json_to({'type': 'leave', 'board': self.board.id})
        self.assertEqual((await communicator.receive_json_from())['code'], 'not_joined')

        await self.fechar_todas()

    async def test_sync_board(self):
        await database_sync_to_async(self.criar_task)(self.dono, title='Primeira')
        await database_sync_to_async(self.criar_task)(self.dono, title='Segunda')
        communicator, _ = await self.conectar(self.membro)
        await self.entrar(communicator, self.board.id)

        await communicator.send_json_to({'type': 'sync_board', 'board': self.board.id})
        resposta = await communicator.receive_json_from()

        self.assertEqual(resposta['type'], 'board_sync')
        self.assertEqual([t['title'] for t in resposta['tasks']], ['Primeira', 'Segunda'])
        await self.fechar_todas()

    async def test_sync_sem_join(self):
        communicator, _ = await self.conectar(self.membro)

        await communicator.send_json_to({'type': 'sync_board', 'board': self.board.id})
        self.assertEqual((await communicator.receive_json_from())['code'], 'not_joined')

        await self.fechar_todas()


class EntregaDeEventosTests(BoardConsumerTestCase):

    async def test_evento_chega_aos_outros_inscritos_do_board(self):
        origem, canal_origem = await self.conectar(self.dono)
        colega, _ = await self.conectar(self.membro)
        espectador, _ = await self.conectar(self.dono)
        await self.entrar(origem, self.board.id)
        await self.entrar(colega, self.board.id)
        await self.entrar(espectador, self.outro_board.id)

        task = await database_sync_to_async(self.criar_task)(self.dono, origem=canal_origem, title='Nova')

        frame = await colega.receive_json_from()
        self.assertEqual(frame['type'], 'task-created')
        self.assertEqual(frame['board'], self.board.id)
        self.assertEqual(frame['data']['id'], task['id'])
        self.assertEqual(frame['data']['position'], 0)

        self.assertTrue(await origem.receive_nothing())
        self.assertTrue(await espectador.receive_nothing())
        await self.fechar_todas()

    async def test_sem_origem_todos_recebem(self):
        a, _ = await self.conectar(self.dono)
        b, _ = await self.conectar(self.membro)
        await self.entrar(a, self.board.id)
        await self.entrar(b, self.board.id)

        await database_sync_to_async(self.criar_task)(self.membro)

        self.assertEqual((await a.receive_json_from())['type'], 'task-created')
        self.assertEqual((await b.receive_json_from())['type'], 'task-created')
        await self.fechar_todas()

    async def test_mover_e_excluir(self):
        task = await database_sync_to_async(self.criar_task)(self.dono)
        colega, _ = await self.conectar(self.membro)
        await self.entrar(colega, self.board.id)
        service = TaskService()

        await database_sync_to_async(service.mover_task)(
            self.dono, task['id'], {'status': 'done', 'position': 0}
        )
        frame = await colega.receive_json_from()
        self.assertEqual(frame['type'], 'task-updated')
        self.assertEqual((frame['data']['status'], frame['data']['position']), ('done', 0))

        await database_sync_to_async(service.excluir_task)(self.dono, task['id'])
        frame = await colega.receive_json_from()
        self.assertEqual(frame, {
            'type': 'task-deleted',
            'board': self.board.id,
            'data': {'taskId': task['id'], 'boardId': self.board.id},
        })
        await self.fechar_todas()
