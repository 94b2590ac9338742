# apps/core/management/commands/seed.py

from django.core.management.base import BaseCommand
from django.db import transaction

from apps.board.store import TaskStore
from apps.core.models import Board, Task, Usuario

TASKS_DEMO = [
    ('Definir escopo do MVP', Task.STATUS_DONE, 'high', ['produto']),
    ('Modelar colunas do board', Task.STATUS_DONE, 'medium', ['backend']),
    ('API de movimentação', Task.STATUS_IN_PROGRESS, 'high', ['backend', 'api']),
    ('WebSocket de atualizações', Task.STATUS_IN_PROGRESS, 'medium', ['realtime']),
    ('Drag-and-drop no frontend', Task.STATUS_TODO, 'medium', ['frontend']),
    ('Testes de concorrência', Task.STATUS_TODO, 'high', ['qa']),
    ('Documentar a API', Task.STATUS_TODO, 'low', ['docs']),
]


class Command(BaseCommand):
    help = 'Popula o banco com usuários, um board e tasks de demonstração'

    def add_arguments(self, parser):
        parser.add_argument(
            '--senha',
            type=str,
            default='fluxo123',
            help='Senha dos usuários de demonstração'
        )

    def handle(self, *args, **options):
        if Board.objects.filter(title='Board Demo').exists():
            self.stdout.write(self.style.WARNING('⚠️  Board Demo já existe - nada a fazer'))
            return

        self.stdout.write('🌱 Criando dados de demonstração...')

        with transaction.atomic():
            dono = self._criar_usuario('ana', 'Ana', options['senha'])
            membro = self._criar_usuario('bruno', 'Bruno', options['senha'])

            board = Board.objects.create(
                title='Board Demo',
                description='Board criado pelo comando seed',
                owner=dono
            )
            board.members.add(membro)

        store = TaskStore()
        for indice, (titulo, status, prioridade, tags) in enumerate(TASKS_DEMO):
            store.criar(board, {
                'title': titulo,
                'status': status,
                'priority': prioridade,
                'tags': tags,
                'created_by': dono,
                'assigned_to': membro if indice % 2 else dono,
            })

        self.stdout.write(
            self.style.SUCCESS(
                f'✅ Board "{board.title}" criado com {len(TASKS_DEMO)} tasks\n'
                f'🔑 Acesse com: ana/{options["senha"]} ou bruno/{options["senha"]}'
            )
        )

    def _criar_usuario(self, username, nome, senha):
        usuario, criado = Usuario.objects.get_or_create(
            username=username,
            defaults={'first_name': nome, 'email': f'{username}@fluxo.dev'}
        )
        if criado:
            usuario.set_password(senha)
            usuario.save()
        return usuario
