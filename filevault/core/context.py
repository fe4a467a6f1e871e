import threading
import time
from typing import Optional

from filevault.core.errors import OperationCancelled, OperationTimeout


class OperationContext:
    """
    Jeton d'annulation + échéance, partagé entre tâches concurrentes.

    Un contexte enfant hérite de l'annulation et de l'échéance de son parent.
    L'annulation est coopérative : les tâches appellent `raise_if_done()`
    avant chaque appel réseau, un appel déjà lancé n'est pas interrompu.
    """

    def __init__(self, parent: Optional["OperationContext"] = None, deadline: Optional[float] = None):
        self._parent = parent
        self._event = threading.Event()
        self._deadline = deadline

    @classmethod
    def background(cls) -> "OperationContext":
        return cls()

    def with_timeout(self, seconds: float) -> "OperationContext":
        deadline = time.monotonic() + seconds
        parent_deadline = self.deadline
        if parent_deadline is not None:
            deadline = min(deadline, parent_deadline)
        return OperationContext(parent=self, deadline=deadline)

    def with_cancel(self) -> "OperationContext":
        return OperationContext(parent=self, deadline=self.deadline)

    def cancel(self) -> None:
        self._event.set()

    @property
    def deadline(self) -> Optional[float]:
        if self._deadline is not None:
            return self._deadline
        return self._parent.deadline if self._parent else None

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        return self._parent.cancelled if self._parent else False

    @property
    def expired(self) -> bool:
        deadline = self.deadline
        return deadline is not None and time.monotonic() >= deadline

    def raise_if_done(self) -> None:
        if self.expired:
            raise OperationTimeout()
        if self.cancelled:
            raise OperationCancelled()
