import logging
from typing import Callable

logger = logging.getLogger(__name__)


class CompensationLog:
    """Undo actions recorded ahead of each side effect.

    Each forward step registers its reverse action before it runs. On a later
    failure ``rollback`` replays the recorded actions newest first; once the
    whole sequence has succeeded ``commit`` forgets them.
    """

    def __init__(self) -> None:
        self._actions: list[tuple[str, Callable[[], None]]] = []

    def record(self, description: str, action: Callable[[], None]) -> None:
        self._actions.append((description, action))

    def commit(self) -> None:
        self._actions.clear()

    def rollback(self) -> None:
        while self._actions:
            description, action = self._actions.pop()
            try:
                action()
                logger.info(f"Compensating action completed: {description}")
            except Exception as e:
                logger.error(f"Compensating action failed ({description}): {e}")
