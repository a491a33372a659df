"""
Alert Notifier — delivers blocking, user-visible notices to the consumer.
Used for failures the user must not miss (a job post that did not go live,
an employer-only action attempted while logged out).
"""

from typing import Callable

from tools.log import get_logger

log = get_logger(__name__)

AlertListener = Callable[[str], None]

# Messages shown to the user (the product's UI language is Portuguese)
LOGIN_REQUIRED = "Você precisa estar logado como empregador para publicar uma vaga."
JOB_POST_FAILED = "Não foi possível publicar a vaga. Tente novamente."


class AlertNotifier:
    """Fan-out of alert messages to registered listeners, with a short history."""

    def __init__(self, history_size: int = 20) -> None:
        self._listeners: list[AlertListener] = []
        self._history: list[str] = []
        self._history_size = history_size

    def subscribe(self, listener: AlertListener) -> Callable[[], None]:
        """Register a listener; returns a function that removes it (safe to call twice)."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def alert(self, message: str) -> None:
        log.warning("ALERT: %s", message)
        self._history.append(message)
        del self._history[:-self._history_size]
        for listener in list(self._listeners):
            try:
                listener(message)
            except Exception as e:
                log.error("Alert listener %r failed: %s", listener, e)

    @property
    def history(self) -> list[str]:
        return list(self._history)
