# apps/board/__init__.py

"""
Board - Ordenação de tasks e sincronização em tempo real

Funcionalidades:
- Reconciliação de posições (colunas sempre densas)
- Transação por coluna com versão otimista
- WebSockets para atualizações em tempo real
- API JSON de tasks
"""
