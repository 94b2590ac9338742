# apps/board/broadcast.py

import logging
from functools import partial

from asgiref.sync import async_to_sync
from django.conf import settings
from django.db import transaction

from .registry import get_registry

logger = logging.getLogger(__name__)


class ChangeBroadcaster:
    """
    Publica as mutações de task para os inscritos do board

    A publicação só acontece depois do commit, e uma falha aqui
    nunca derruba a resposta de quem fez a alteração.
    """

    def __init__(self, registry=None, exclude_origin=None):
        self._registry = registry
        if exclude_origin is None:
            exclude_origin = getattr(settings, 'FLUXO_BROADCAST_EXCLUDE_ORIGIN', True)
        self.exclude_origin = exclude_origin

    @property
    def registry(self):
        return self._registry or get_registry()

    def publicar(self, evento, origem=None):
        """Agenda o envio para depois do commit da transação atual"""
        transaction.on_commit(partial(self._enviar, evento, origem))

    def _enviar(self, evento, origem):
        excluir = origem if self.exclude_origin else None
        try:
            async_to_sync(self.registry.publish)(evento.board_id, evento, exclude=excluir)
        except Exception:
            logger.exception(f"❌ Falha ao publicar {evento.kind} no board {evento.board_id}")
            return

        logger.info(f"📣 {evento.kind} publicado no board {evento.board_id}")
