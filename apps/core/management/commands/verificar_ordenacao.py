# apps/core/management/commands/verificar_ordenacao.py

from django.core.management.base import BaseCommand, CommandError

from apps.board.ordering import is_dense
from apps.board.store import TaskStore
from apps.core.models import Board, Task


class Command(BaseCommand):
    help = 'Verifica se todas as colunas estão densas (0..N-1) e opcionalmente renumera'

    def add_arguments(self, parser):
        parser.add_argument(
            '--board',
            type=int,
            help='Verificar apenas este board'
        )
        parser.add_argument(
            '--reparar',
            action='store_true',
            help='Renumera as colunas quebradas mantendo a ordem relativa'
        )

    def handle(self, *args, **options):
        boards = Board.objects.order_by('id')
        if options['board']:
            boards = boards.filter(id=options['board'])
            if not boards.exists():
                raise CommandError(f"Board {options['board']} não encontrado")

        self.stdout.write('🔍 Verificando ordenação das colunas...')

        quebradas = []
        for board in boards:
            for status, _ in Task.STATUS_CHOICES:
                posicoes = list(
                    Task.objects.filter(board=board, status=status).values_list('position', flat=True)
                )
                if not is_dense(posicoes):
                    quebradas.append((board, status))
                    self.stdout.write(
                        self.style.WARNING(f'  ⚠️  {board.title} [{board.id}] / {status}: {sorted(posicoes)}')
                    )

        if not quebradas:
            self.stdout.write(self.style.SUCCESS('✅ Todas as colunas estão densas'))
            return

        if not options['reparar']:
            self.stdout.write(
                self.style.ERROR(f'❌ {len(quebradas)} coluna(s) fora do invariante. Use --reparar para corrigir.')
            )
            return

        store = TaskStore()
        for board, status in quebradas:
            alteradas = store.renumerar_coluna(board.id, status)
            self.stdout.write(f'  🔧 {board.title} / {status}: {alteradas} task(s) renumerada(s)')

        self.stdout.write(self.style.SUCCESS(f'✅ {len(quebradas)} coluna(s) reparada(s)'))
