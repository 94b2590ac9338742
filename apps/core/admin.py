# apps/core/admin.py

from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from django.db.models import Count
from django.utils.html import format_html

from .models import Board, Task, TaskColumn, Usuario


@admin.register(Usuario)
class UsuarioAdmin(BaseUserAdmin):
    """Admin customizado para o modelo Usuario"""

    list_display = ['username', 'email', 'get_full_name', 'is_active', 'date_joined']
    list_filter = ['is_staff', 'is_active', 'date_joined']
    search_fields = ['username', 'first_name', 'last_name', 'email']
    ordering = ['-date_joined']


class TaskInline(admin.TabularInline):
    model = Task
    fields = ['title', 'status', 'position', 'assigned_to', 'priority']
    readonly_fields = ['status', 'position']
    ordering = ['status', 'position']
    extra = 0
    can_delete = False
    show_change_link = True

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Board)
class BoardAdmin(admin.ModelAdmin):
    """Admin para gerenciamento de boards"""

    list_display = ['title', 'owner', 'membros_count', 'tasks_count', 'visibilidade', 'criado_em']
    list_filter = ['is_public', 'criado_em']
    search_fields = ['title', 'description', 'owner__username']
    filter_horizontal = ['members']
    readonly_fields = ['criado_em', 'atualizado_em']
    inlines = [TaskInline]

    def get_queryset(self, request):
        return super().get_queryset(request).annotate(
            _membros=Count('members', distinct=True),
            _tasks=Count('tasks', distinct=True)
        )

    def membros_count(self, obj):
        return obj._membros

    membros_count.short_description = 'Membros'

    def tasks_count(self, obj):
        return obj._tasks

    tasks_count.short_description = 'Tasks'

    def visibilidade(self, obj):
        cor = '#10B981' if obj.is_public else '#6B7280'
        texto = 'Público' if obj.is_public else 'Privado'
        return format_html(
            '<span style="background-color: {}; color: white; '
            'padding: 3px 8px; border-radius: 4px; font-size: 11px;">{}</span>',
            cor, texto
        )

    visibilidade.short_description = 'Visibilidade'


@admin.register(Task)
class TaskAdmin(admin.ModelAdmin):
    """
    Admin de tasks

    status e position são somente leitura: só o TaskStore reordena colunas.
    """

    list_display = ['title', 'board', 'status', 'position', 'priority', 'assigned_to', 'due_date']
    list_filter = ['status', 'priority', 'board']
    search_fields = ['title', 'description']
    ordering = ['board', 'status', 'position']
    readonly_fields = ['status', 'position', 'criado_em', 'atualizado_em']
    raw_id_fields = ['assigned_to', 'created_by', 'board']

    def has_add_permission(self, request):
        # Criação pela API, que calcula a posição
        return False

    def has_delete_permission(self, request, obj=None):
        # Exclusão pelo admin deixaria buraco na coluna
        return False


@admin.register(TaskColumn)
class TaskColumnAdmin(admin.ModelAdmin):
    list_display = ['board', 'status', 'version']
    list_filter = ['status']
    readonly_fields = ['board', 'status', 'version']
