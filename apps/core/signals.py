# apps/core/signals.py

import logging
from django.db.models.signals import m2m_changed, post_save
from django.dispatch import receiver

from .models import Board

logger = logging.getLogger(__name__)


@receiver(post_save, sender=Board)
def preparar_board(sender, instance, created, **kwargs):
    """
    Board novo: dono vira membro e as três colunas ganham contador de versão
    """
    if created:
        instance.members.add(instance.owner_id)
        instance.criar_colunas_padrao()
    elif not instance.members.filter(id=instance.owner_id).exists():
        # Troca de dono mantém o novo dono como membro
        instance.members.add(instance.owner_id)


@receiver(m2m_changed, sender=Board.members.through)
def manter_dono_membro(sender, instance, action, pk_set, **kwargs):
    """
    O dono é sempre membro implícito: remoções do dono são desfeitas
    """
    if action == 'post_remove' and isinstance(instance, Board) and instance.owner_id in (pk_set or ()):
        instance.members.add(instance.owner_id)
        logger.info(f"[AUTO] dono {instance.owner_id} mantido como membro do board {instance.id}")

    elif action == 'post_clear' and isinstance(instance, Board):
        instance.members.add(instance.owner_id)
