# apps/board/events.py

"""
Eventos de tempo real do board

União tipada dos três tipos de evento. O mesmo payload vai para
o WebSocket de todos os inscritos no board.
"""

from dataclasses import dataclass
from typing import ClassVar, Union

TASK_CREATED = 'task-created'
TASK_UPDATED = 'task-updated'
TASK_DELETED = 'task-deleted'

EVENT_KINDS = (TASK_CREATED, TASK_UPDATED, TASK_DELETED)

# Handler do consumer que recebe os eventos via channel layer
CHANNEL_MESSAGE_TYPE = 'task.event'


@dataclass(frozen=True)
class TaskCreated:
    board_id: int
    task: dict

    kind: ClassVar[str] = TASK_CREATED

    def payload(self):
        return self.task


@dataclass(frozen=True)
class TaskUpdated:
    board_id: int
    task: dict

    kind: ClassVar[str] = TASK_UPDATED

    def payload(self):
        return self.task


@dataclass(frozen=True)
class TaskDeleted:
    board_id: int
    task_id: int

    kind: ClassVar[str] = TASK_DELETED

    def payload(self):
        return {'taskId': self.task_id, 'boardId': self.board_id}


TaskEvent = Union[TaskCreated, TaskUpdated, TaskDeleted]


def to_channel_message(event: TaskEvent, origin=None) -> dict:
    """Mensagem para o channel layer (precisa ser serializável em msgpack)"""
    return {
        'type': CHANNEL_MESSAGE_TYPE,
        'event': event.kind,
        'board': event.board_id,
        'data': event.payload(),
        'origin': origin,
    }


def to_client_frame(message: dict) -> dict:
    """Frame JSON enviado ao cliente do WebSocket"""
    return {
        'type': message['event'],
        'board': message['board'],
        'data': message['data'],
    }
