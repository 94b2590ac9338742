# apps/board/ordering.py

"""
Reconciliador de posições

Calcula, sem tocar no banco, quais faixas de posições precisam ser
deslocadas para que cada coluna continue densa (0..N-1, sem buracos
e sem duplicatas) depois de criar, mover ou remover uma task.

O resultado é um MovePlan: a posição final da task e uma lista de
Shift (faixa fechada de posições + delta) por coluna. Quem aplica o
plano é o TaskStore, dentro de uma transação.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple


@dataclass(frozen=True)
class Shift:
    """
    Deslocamento de uma faixa de posições numa coluna

    start e end são inclusivos; end=None significa "até o fim da coluna".
    """

    status: str
    start: int
    end: Optional[int]
    delta: int

    def applies_to(self, position: int) -> bool:
        if position < self.start:
            return False
        return self.end is None or position <= self.end

    def shifted(self, position: int) -> int:
        return position + self.delta if self.applies_to(position) else position


@dataclass(frozen=True)
class MovePlan:
    """Resultado de um reposicionamento"""

    status: str
    position: int
    shifts: Tuple[Shift, ...] = field(default_factory=tuple)

    @property
    def is_noop(self) -> bool:
        return not self.shifts

    def columns(self) -> List[str]:
        """Colunas tocadas pelo plano, em ordem estável"""
        return sorted({self.status} | {s.status for s in self.shifts})


def clamp_position(requested: int, column_length: int, same_column: bool) -> int:
    """
    Limita a posição pedida ao tamanho da coluna

    Mesma coluna: a task já ocupa um lugar, então o máximo é length - 1.
    Outra coluna: a task entra no fim, então o máximo é length.
    """
    if requested < 0:
        raise ValueError('position must be non-negative')

    limite = column_length - 1 if same_column else column_length
    return max(0, min(requested, limite))


def plan_create(status: str, column_length: int) -> MovePlan:
    """Nova task vai para o fim da coluna, sem deslocar ninguém"""
    return MovePlan(status=status, position=column_length)


def plan_move(old_status: str, old_position: int, new_status: str,
              requested_position: int, destination_length: int) -> MovePlan:
    """
    Planeja a movimentação de uma task

    destination_length é o número de tasks na coluna de destino como
    está agora (incluindo a própria task quando a coluna é a mesma).
    """
    same_column = old_status == new_status
    new_position = clamp_position(requested_position, destination_length, same_column)

    if same_column:
        if new_position == old_position:
            return MovePlan(status=new_status, position=old_position)

        if new_position < old_position:
            # Subindo: abre espaço empurrando [new, old) para a direita
            shift = Shift(new_status, new_position, old_position - 1, +1)
        else:
            # Descendo: fecha o buraco puxando (old, new] para a esquerda
            shift = Shift(new_status, old_position + 1, new_position, -1)

        return MovePlan(status=new_status, position=new_position, shifts=(shift,))

    return MovePlan(
        status=new_status,
        position=new_position,
        shifts=(
            close_gap(old_status, old_position),
            Shift(new_status, new_position, None, +1),
        )
    )


def plan_append(old_status: str, old_position: int, new_status: str,
                destination_length: int) -> MovePlan:
    """Troca de status sem posição explícita: entra no fim da coluna de destino"""
    return plan_move(old_status, old_position, new_status, destination_length, destination_length)


def close_gap(status: str, position: int) -> Shift:
    """Fecha o buraco deixado por uma task que saiu da coluna"""
    return Shift(status, position + 1, None, -1)


def plan_delete(status: str, position: int) -> Tuple[Shift, ...]:
    return (close_gap(status, position),)


# === Utilitários de verificação ===

def apply_plan(columns: Dict[str, List], task, old_status: Optional[str], plan: MovePlan) -> Dict[str, List]:
    """
    Aplica um plano sobre colunas em memória

    columns mapeia status -> lista de ids ordenada por posição.
    old_status=None significa criação. Usado por verificações e testes;
    o banco recebe o mesmo plano pelo TaskStore.
    """
    posicoes = {}
    for status, ids in columns.items():
        for posicao, task_id in enumerate(ids):
            if task_id != task:
                posicoes[task_id] = (status, posicao)

    for shift in plan.shifts:
        for task_id, (status, posicao) in list(posicoes.items()):
            if status == shift.status:
                posicoes[task_id] = (status, shift.shifted(posicao))

    posicoes[task] = (plan.status, plan.position)

    resultado = {status: [] for status in columns}
    resultado.setdefault(plan.status, [])
    for task_id, (status, posicao) in sorted(posicoes.items(), key=lambda item: item[1][1]):
        resultado.setdefault(status, []).append(task_id)
    return resultado


def is_dense(positions: Iterable[int]) -> bool:
    """Posições formam exatamente 0..N-1"""
    ordenadas = sorted(positions)
    return ordenadas == list(range(len(ordenadas)))


def renumber(ids_in_order: Iterable) -> Dict:
    """Nova numeração densa preservando a ordem relativa"""
    return {task_id: posicao for posicao, task_id in enumerate(ids_in_order)}
