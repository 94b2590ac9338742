# apps/board/registry.py

"""
Registro de inscrições por board

Quem está assistindo qual board. Usa os grupos do channel layer
para a entrega e mantém um espelho local para liberar tudo quando
a conexão cai. Nada aqui é persistido: depois de um restart os
clientes se inscrevem de novo.
"""

import logging
import threading
from collections import defaultdict

from channels import DEFAULT_CHANNEL_LAYER
from channels.layers import get_channel_layer
from django.apps import apps

from .events import to_channel_message

logger = logging.getLogger(__name__)


def chave_board(board_id):
    """Forma canônica do id: 7, '7' e '07' caem no mesmo grupo"""
    return str(int(board_id))


def nome_grupo(board_id):
    return f'board_{chave_board(board_id)}'


class BoardChannelRegistry:
    """
    Inscrições (conexão, board)

    Não faz autorização: quem chama subscribe já passou pela guarda de acesso.
    """

    def __init__(self, channel_layer=None, alias=DEFAULT_CHANNEL_LAYER):
        self._channel_layer = channel_layer
        self.alias = alias
        self._lock = threading.Lock()
        self._boards_por_conexao = defaultdict(set)
        self._conexoes_por_board = defaultdict(set)

    @property
    def channel_layer(self):
        if self._channel_layer is None:
            self._channel_layer = get_channel_layer(self.alias)
        return self._channel_layer

    async def subscribe(self, channel_name, board_id):
        board_id = chave_board(board_id)
        await self.channel_layer.group_add(nome_grupo(board_id), channel_name)

        with self._lock:
            self._boards_por_conexao[channel_name].add(board_id)
            self._conexoes_por_board[board_id].add(channel_name)

        logger.debug(f"➕ {channel_name} inscrito no board {board_id}")

    async def unsubscribe(self, channel_name, board_id):
        board_id = chave_board(board_id)
        await self.channel_layer.group_discard(nome_grupo(board_id), channel_name)
        self._esquecer(channel_name, board_id)

        logger.debug(f"➖ {channel_name} saiu do board {board_id}")

    async def release(self, channel_name):
        """Libera todas as inscrições de uma conexão encerrada"""
        with self._lock:
            boards = set(self._boards_por_conexao.get(channel_name, ()))

        for board_id in boards:
            await self.unsubscribe(channel_name, board_id)

        return boards

    async def publish(self, board_id, event, exclude=None):
        """
        Entrega o evento a todos os inscritos do board

        exclude é o channel_name da conexão de origem; o consumer
        dessa conexão descarta a mensagem.
        """
        await self.channel_layer.group_send(
            nome_grupo(board_id),
            to_channel_message(event, origin=exclude)
        )

    def subscriptions(self, channel_name):
        with self._lock:
            return frozenset(self._boards_por_conexao.get(channel_name, ()))

    def subscribers(self, board_id):
        with self._lock:
            return frozenset(self._conexoes_por_board.get(chave_board(board_id), ()))

    def clear(self):
        """Esquece o espelho local (os grupos do layer expiram sozinhos)"""
        with self._lock:
            self._boards_por_conexao.clear()
            self._conexoes_por_board.clear()

    def _esquecer(self, channel_name, board_id):
        with self._lock:
            boards = self._boards_por_conexao.get(channel_name)
            if boards is not None:
                boards.discard(board_id)
                if not boards:
                    del self._boards_por_conexao[channel_name]

            conexoes = self._conexoes_por_board.get(board_id)
            if conexoes is not None:
                conexoes.discard(channel_name)
                if not conexoes:
                    del self._conexoes_por_board[board_id]


# === Ciclo de vida ===
# A instância vive no AppConfig do board (criada em ready()).

def get_registry():
    return apps.get_app_config('board').registry


def reset_registry(channel_layer=None):
    """Descarta o registro atual e cria outro (restart, testes)"""
    config = apps.get_app_config('board')
    antigo = getattr(config, 'registry', None)
    if antigo is not None:
        antigo.clear()

    config.registry = BoardChannelRegistry(channel_layer=channel_layer)
    return config.registry
