import logging
import threading
from typing import Any, Callable, Dict, Optional

import socketio

logger = logging.getLogger(__name__)

NAMESPACE = '/ws'


class TimerHandle:
    def __init__(self, timer: threading.Timer):
        self._timer = timer

    def cancel(self) -> None:
        self._timer.cancel()


class TimerScheduler:
    """Runs callbacks after a delay on daemon timer threads."""

    def call_later(self, delay: float, callback: Callable[[], Any]) -> TimerHandle:
        timer = threading.Timer(delay, callback)
        timer.daemon = True
        timer.start()
        return TimerHandle(timer)


class PendingPrediction:
    def __init__(self, channel: 'SocketChannel', on_result, on_error):
        self.channel = channel
        self.on_result = on_result
        self.on_error = on_error

    def cancel(self) -> None:
        self.channel._release(self)


class SocketChannel:
    """Real-time channel to the server's ``/ws`` namespace.

    Wraps a python-socketio client. At most one prediction request is pending;
    results and errors are routed to it until it is cancelled.
    """

    def __init__(self, client: Optional[socketio.Client] = None, namespace: str = NAMESPACE):
        self.client = client or socketio.Client(reconnection=True)
        self.namespace = namespace
        self._pending: Optional[PendingPrediction] = None
        self._lock = threading.Lock()
        self.client.on('prediction:result', self._handle_result, namespace=namespace)
        self.client.on('prediction:error', self._handle_error, namespace=namespace)

    @property
    def connected(self) -> bool:
        return bool(self.client.connected)

    def connect(self, url: str, timeout: float = 10) -> bool:
        try:
            self.client.connect(
                url,
                namespaces=[self.namespace],
                transports=['websocket', 'polling'],
                wait_timeout=timeout,
            )
        except socketio.exceptions.ConnectionError as exc:
            logger.warning(f"[channel] connection to {url} failed: {exc}")
            return False
        logger.info(f"[channel] connected to {url}")
        return True

    def disconnect(self) -> None:
        self.client.disconnect()

    def request_prediction(self, payload: Dict[str, Any], on_result, on_error) -> PendingPrediction:
        pending = PendingPrediction(self, on_result, on_error)
        with self._lock:
            self._pending = pending
        self.client.emit('prediction:request', payload, namespace=self.namespace)
        return pending

    def _release(self, pending: PendingPrediction) -> None:
        with self._lock:
            if self._pending is pending:
                self._pending = None

    def _take(self) -> Optional[PendingPrediction]:
        with self._lock:
            pending, self._pending = self._pending, None
        return pending

    def _handle_result(self, data):
        pending = self._take()
        if pending is None:
            logger.debug('[channel] dropping prediction:result with no pending request')
            return
        pending.on_result(data or {})

    def _handle_error(self, data):
        pending = self._take()
        if pending is None:
            return
        pending.on_error(data or {})
