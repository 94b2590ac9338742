# apps/__init__.py

"""
Fluxo Board - Aplicações Django

Este pacote contém todas as aplicações do sistema:
- core: Models, guarda de acesso, erros e validação
- board: Ordenação de tasks, API JSON e WebSockets
"""

__version__ = '0.1.0'
__author__ = 'Equipe Fluxo'
