# apps/board/routing.py

from django.urls import re_path
from . import consumers

# Rotas WebSocket para a aplicação board
websocket_urlpatterns = [
    # Uma conexão, vários boards - join/leave por mensagem
    re_path(r'ws/boards/$', consumers.BoardConsumer.as_asgi()),

    # Board específico - já conecta inscrito no board da URL
    re_path(r'ws/board/(?P<board_id>\d+)/$', consumers.BoardConsumer.as_asgi()),
]
