from .client_repository import ClientRepository
from .message_repository import MessageRepository
from .session_repository import SqlSessionRepository

__all__ = [
    "ClientRepository",
    "MessageRepository",
    "SqlSessionRepository",
]
