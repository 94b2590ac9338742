# apps/board/consumers.py

import json
import logging
from channels.db import database_sync_to_async
from channels.generic.websocket import AsyncWebsocketConsumer
from django.conf import settings
from django.utils import timezone

from apps.core.exceptions import FluxoError
from apps.core.permissions import FluxoPermissions
from .events import to_client_frame
from .registry import get_registry

logger = logging.getLogger(__name__)


class BoardConsumer(AsyncWebsocketConsumer):
    """
    Consumer WebSocket para atualizações em tempo real dos boards

    Funcionalidades:
    - join/leave de boards a qualquer momento (uma conexão, vários boards)
    - Entrega de task-created, task-updated e task-deleted
    - Snapshot do board para ressincronizar após reconexão
    - Heartbeat ping/pong
    """

    async def connect(self):
        """
        Aceita a conexão de usuários autenticados

        Na rota ws/board/<id>/ o board da URL já entra inscrito.
        """
        self.user = self.scope['user']
        self.registry = get_registry()

        # Verificar se usuário está autenticado
        if not self.user.is_authenticated:
            logger.warning("❌ Conexão WebSocket rejeitada - usuário não autenticado")
            await self.close()
            return

        board_id = self.normalizar_board(self.scope.get('url_route', {}).get('kwargs', {}).get('board_id'))
        if board_id is not None and not await self.check_board_access(board_id):
            logger.warning(f"❌ Conexão WebSocket rejeitada - {self.user.username} sem acesso ao board {board_id}")
            await self.close()
            return

        await self.accept()

        # O cliente devolve este id no header X-Channel-Name das mutações HTTP
        await self.send_json({
            'type': 'connected',
            'channel': self.channel_name,
            'heartbeat': getattr(settings, 'FLUXO_WS_HEARTBEAT_INTERVAL', 30),
            'timestamp': self.get_timestamp()
        })

        if board_id is not None:
            await self.join_board(board_id)

        logger.info(f"✅ WebSocket conectado - {self.user.username} ({self.channel_name})")

    async def disconnect(self, close_code):
        """Libera todas as inscrições da conexão"""
        registry = getattr(self, 'registry', None)
        if registry is None:
            return

        boards = await registry.release(self.channel_name)
        if boards:
            logger.info(f"🔌 WebSocket desconectado - {self.user.username} saiu de {sorted(boards)}")

    async def receive(self, text_data=None, bytes_data=None):
        """
        Recebe mensagens do cliente WebSocket
        Processa diferentes tipos de eventos
        """
        try:
            data = json.loads(text_data or '')
        except json.JSONDecodeError:
            logger.error(f"❌ JSON inválido recebido via WebSocket de {self.user.username}")
            await self.send_error('invalid_json', 'JSON inválido')
            return

        if not isinstance(data, dict):
            await self.send_error('invalid_message', 'Mensagem deve ser um objeto')
            return

        message_type = data.get('type')

        # Heartbeat/Ping
        if message_type == 'ping':
            await self.send_json({'type': 'pong', 'timestamp': self.get_timestamp()})

        elif message_type == 'join':
            await self.handle_join(data.get('board'))

        elif message_type == 'leave':
            await self.handle_leave(data.get('board'))

        # Sincronização de estado do board
        elif message_type == 'sync_board':
            await self.handle_sync(data.get('board'))

        else:
            await self.send_error('unknown_type', f'Tipo de mensagem desconhecido: {message_type}')

    # === Comandos do cliente ===

    async def handle_join(self, board_id):
        if board_id in (None, ''):
            await self.send_error('validation_error', 'Informe o board')
            return

        try:
            board = await self.require_board_access(board_id)
        except FluxoError as e:
            await self.send_error(e.code, e.message, board=board_id)
            return

        await self.join_board(board.pk)

    async def handle_leave(self, board_id):
        if not self.inscrito(board_id):
            await self.send_error('not_joined', 'Conexão não está neste board', board=board_id)
            return

        board_id = self.normalizar_board(board_id)
        await self.registry.unsubscribe(self.channel_name, board_id)
        await self.send_json({'type': 'left', 'board': board_id})

    async def handle_sync(self, board_id):
        if not self.inscrito(board_id):
            await self.send_error('not_joined', 'Entre no board antes de sincronizar', board=board_id)
            return

        board_id = self.normalizar_board(board_id)
        try:
            tasks = await self.get_board_state(board_id)
        except FluxoError as e:
            await self.send_error(e.code, e.message, board=board_id)
            return

        await self.send_json({
            'type': 'board_sync',
            'board': board_id,
            'tasks': tasks,
            'timestamp': self.get_timestamp()
        })

    async def join_board(self, board_id):
        await self.registry.subscribe(self.channel_name, board_id)
        await self.send_json({'type': 'joined', 'board': board_id})
        logger.info(f"👥 {self.user.username} entrou no board {board_id}")

    # === Handlers do channel layer ===

    async def task_event(self, event):
        """
        Repassa task-created / task-updated / task-deleted

        A conexão que originou a mutação já recebeu a resposta HTTP.
        """
        if event.get('origin') and event['origin'] == self.channel_name:
            return

        await self.send_json(to_client_frame(event))

    # === Métodos auxiliares ===

    async def send_json(self, content):
        await self.send(text_data=json.dumps(content))

    async def send_error(self, code, message, **extra):
        await self.send_json({'type': 'error', 'code': code, 'error': message, **extra})

    @staticmethod
    def normalizar_board(board_id):
        """'07', '7' e 7 são o mesmo board; None quando não é um id"""
        try:
            return int(board_id)
        except (TypeError, ValueError):
            return None

    def inscrito(self, board_id):
        board_id = self.normalizar_board(board_id)
        return board_id is not None and str(board_id) in self.registry.subscriptions(self.channel_name)

    @database_sync_to_async
    def check_board_access(self, board_id):
        """
        Verifica se usuário tem acesso ao board
        """
        return FluxoPermissions.can_access(board_id, self.user)

    @database_sync_to_async
    def require_board_access(self, board_id):
        return FluxoPermissions.exigir_acesso_board(self.user, board_id)

    @database_sync_to_async
    def get_board_state(self, board_id):
        """
        Retorna estado atual do board para sincronização
        """
        from .services import TaskService

        return TaskService().listar_tasks(self.user, board_id)

    def get_timestamp(self):
        """
        Retorna timestamp atual em formato ISO
        """
        return timezone.now().isoformat()
