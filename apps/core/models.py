# apps/core/models.py

from django.contrib.auth.models import AbstractUser
from django.core.validators import MinValueValidator
from django.db import models


class Usuario(AbstractUser):
    """
    Modelo de usuário customizado

    Identidade e sessão são responsabilidade do auth do Django;
    aqui só guardamos o que o board precisa exibir.
    """

    # === METADADOS ===
    criado_em = models.DateTimeField(auto_now_add=True)
    atualizado_em = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'usuario'

    def __str__(self):
        return self.get_full_name() or self.username

    def resumo(self):
        """Representação curta usada nos payloads de task"""
        return {
            'id': self.id,
            'username': self.username,
            'email': self.email,
        }


class Board(models.Model):
    """
    Quadro Kanban

    Para o núcleo de ordenação o board é apenas (id, owner, members, is_public).
    O dono é sempre membro implícito.
    """

    title = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    owner = models.ForeignKey(
        Usuario,
        on_delete=models.PROTECT,
        related_name='boards_criados'
    )
    members = models.ManyToManyField(
        Usuario,
        related_name='boards_membro',
        blank=True
    )
    is_public = models.BooleanField(default=False)
    criado_em = models.DateTimeField(auto_now_add=True)
    atualizado_em = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'board'
        ordering = ['-criado_em']

    def __str__(self):
        return self.title

    def criar_colunas_padrao(self):
        """Cria os contadores de versão das três colunas fixas"""
        for status, _ in Task.STATUS_CHOICES:
            TaskColumn.objects.get_or_create(board=self, status=status)

    def eh_membro(self, usuario_id):
        """Dono ou membro explícito"""
        if usuario_id is None:
            return False
        if self.owner_id == usuario_id:
            return True
        return self.members.filter(id=usuario_id).exists()


class TaskColumn(models.Model):
    """
    Contador de versão de uma coluna (board, status)

    Toda operação que altera posições numa coluna incrementa a versão
    com compare-and-swap dentro da mesma transação.
    """

    board = models.ForeignKey(
        Board,
        on_delete=models.CASCADE,
        related_name='colunas'
    )
    status = models.CharField(max_length=20)
    version = models.PositiveBigIntegerField(default=0)

    class Meta:
        db_table = 'task_column'
        unique_together = ['board', 'status']

    def __str__(self):
        return f"{self.board_id}/{self.status} v{self.version}"


class Task(models.Model):
    """Unidade de trabalho do board"""

    STATUS_TODO = 'todo'
    STATUS_IN_PROGRESS = 'in-progress'
    STATUS_DONE = 'done'

    STATUS_CHOICES = [
        (STATUS_TODO, 'To do'),
        (STATUS_IN_PROGRESS, 'In progress'),
        (STATUS_DONE, 'Done'),
    ]

    PRIORIDADE_CHOICES = [
        ('low', 'Low'),
        ('medium', 'Medium'),
        ('high', 'High'),
    ]

    TITLE_MAX_LENGTH = 200
    DESCRIPTION_MAX_LENGTH = 1000

    title = models.CharField(max_length=TITLE_MAX_LENGTH)
    description = models.TextField(max_length=DESCRIPTION_MAX_LENGTH, blank=True)
    status = models.CharField(
        max_length=20,
        choices=STATUS_CHOICES,
        default=STATUS_TODO
    )
    board = models.ForeignKey(
        Board,
        on_delete=models.CASCADE,
        related_name='tasks'
    )
    assigned_to = models.ForeignKey(
        Usuario,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='tasks_atribuidas'
    )
    created_by = models.ForeignKey(
        Usuario,
        on_delete=models.PROTECT,
        related_name='tasks_criadas'
    )
    priority = models.CharField(
        max_length=10,
        choices=PRIORIDADE_CHOICES,
        default='medium'
    )
    due_date = models.DateField(null=True, blank=True)
    tags = models.JSONField(default=list, blank=True)
    position = models.IntegerField(default=0, validators=[MinValueValidator(0)])
    criado_em = models.DateTimeField(auto_now_add=True)
    atualizado_em = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'task'
        ordering = ['status', 'position']
        indexes = [
            models.Index(fields=['board', 'status', 'position'], name='task_coluna_posicao_idx'),
        ]

    def __str__(self):
        return f"{self.title} [{self.status}@{self.position}]"

    def to_dict(self):
        """
        Payload JSON da task

        Mesmo formato na resposta HTTP e nos eventos do WebSocket.
        """
        return {
            'id': self.id,
            'title': self.title,
            'description': self.description,
            'status': self.status,
            'board': self.board_id,
            'assignedTo': self.assigned_to.resumo() if self.assigned_to_id else None,
            'createdBy': self.created_by.resumo() if self.created_by_id else None,
            'priority': self.priority,
            'dueDate': self.due_date.isoformat() if self.due_date else None,
            'tags': list(self.tags or []),
            'position': self.position,
            'createdAt': self.criado_em.isoformat() if self.criado_em else None,
            'updatedAt': self.atualizado_em.isoformat() if self.atualizado_em else None,
        }
