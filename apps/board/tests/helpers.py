# apps/board/tests/helpers.py

from apps.core.models import Board, Task, Usuario


def criar_usuario(username):
    return Usuario.objects.create_user(
        username=username,
        email=f'{username}@fluxo.dev',
        password='senha-de-teste-123'
    )


def criar_board(owner, members=(), is_public=False, title='Board de teste'):
    board = Board.objects.create(title=title, owner=owner, is_public=is_public)
    if members:
        board.members.add(*members)
    return board


def popular_coluna(store, board, autor, status, titulos):
    """Cria tasks em ordem; retorna dict titulo -> id"""
    ids = {}
    for titulo in titulos:
        task = store.criar(board, {'title': titulo, 'status': status, 'created_by': autor})
        ids[titulo] = task.id
    return ids


def coluna(board, status):
    """Títulos da coluna na ordem das posições"""
    return list(
        Task.objects.filter(board=board, status=status)
        .order_by('position')
        .values_list('title', flat=True)
    )


def posicoes(board, status):
    return sorted(
        Task.objects.filter(board=board, status=status).values_list('position', flat=True)
    )


def snapshot(board):
    """Estado completo do board: id -> (status, position)"""
    return {
        task_id: (status, position)
        for task_id, status, position in Task.objects.filter(board=board).values_list('id', 'status', 'position')
    }


class FakeRegistry:
    """Registro que só anota as publicações"""

    def __init__(self):
        self.publicados = []

    async def publish(self, board_id, event, exclude=None):
        self.publicados.append((board_id, event, exclude))

    def clear(self):
        self.publicados.clear()


class FakeBroadcaster:
    """Broadcaster síncrono que guarda os eventos"""

    def __init__(self):
        self.eventos = []

    def publicar(self, evento, origem=None):
        self.eventos.append((evento, origem))
