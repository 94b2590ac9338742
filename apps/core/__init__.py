# apps/core/__init__.py

"""
Core - Aplicação principal do Fluxo Board

Contém:
- Models (Usuario, Board, TaskColumn, Task)
- Guarda de acesso aos boards
- Tipos de erro e validação de tasks
- Comandos de manutenção (seed, verificar_ordenacao)
"""
