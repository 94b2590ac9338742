# apps/board/apps.py

import logging
from django.apps import AppConfig

logger = logging.getLogger(__name__)


class BoardConfig(AppConfig):
    """Configuração da app Board"""

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'apps.board'
    verbose_name = 'Board - Tarefas em tempo real'

    registry = None

    def ready(self):
        """
        Inicialização da app
        Cria o registro de inscrições WebSocket deste processo
        """
        from .registry import BoardChannelRegistry

        self.registry = BoardChannelRegistry()
        logger.info("🔌 Board App inicializada - WebSockets habilitados")
