"""Base classes for background tasks run by the TaskService."""

import threading
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Protocol

from pydantic import BaseModel
from sqlalchemy.orm import Session

if TYPE_CHECKING:
    from partswap.services.container import ServiceContainer


class ProgressHandle(Protocol):
    """Interface tasks use to report progress."""

    def send_progress_text(self, text: str) -> None:
        """Send a text progress update."""
        ...

    def send_progress_value(self, value: float) -> None:
        """Send a progress value update (0.0 to 1.0)."""
        ...

    def send_progress(self, text: str, value: float) -> None:
        """Send both text and progress value."""
        ...


class BaseTask(ABC):
    """A unit of background work with cooperative cancellation."""

    def __init__(self) -> None:
        self._cancelled = threading.Event()

    @abstractmethod
    def execute(self, progress_handle: ProgressHandle, **kwargs: Any) -> BaseModel | None:
        """Run the task and return its result model."""

    def cancel(self) -> None:
        """Request cancellation; the task checks is_cancelled between steps."""
        self._cancelled.set()

    @property
    def is_cancelled(self) -> bool:
        return self._cancelled.is_set()


class BaseSessionTask(BaseTask):
    """Task that runs inside its own database session.

    The session is committed when execute_session returns and rolled back
    when it raises.
    """

    def __init__(self, container: "ServiceContainer"):
        super().__init__()
        self.container = container

    def execute(self, progress_handle: ProgressHandle, **kwargs: Any) -> BaseModel | None:
        session = self.container.db_session()
        try:
            result = self.execute_session(session, progress_handle, **kwargs)
            session.commit()
            return result
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()
            self.container.db_session.reset()

    @abstractmethod
    def execute_session(self, session: Session, progress_handle: ProgressHandle, **kwargs: Any) -> BaseModel | None:
        pass
