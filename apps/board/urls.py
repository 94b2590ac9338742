# apps/board/urls.py

from django.urls import path
from . import views

app_name = 'board'

urlpatterns = [
    # Criação
    path('', views.criar_task, name='criar_task'),

    # Listagens
    path('board/<int:board_id>/', views.tasks_do_board, name='tasks_do_board'),
    path('my-tasks/', views.minhas_tasks, name='minhas_tasks'),

    # Detalhe, atualização e exclusão
    path('<int:task_id>/', views.task_detalhe, name='task_detalhe'),

    # Drag-and-drop
    path('<int:task_id>/move/', views.mover_task, name='mover_task'),
]
