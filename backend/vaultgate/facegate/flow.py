"""The face-gate: camera capture, face check and a decorative prediction.

The flow runs from ``acquiring-camera`` through ``continue``. Everything that
waits (prediction timeout, watchdog, skip grace, banners) goes through a
scheduler with ``call_later(delay, callback)``, so the flow is driven by the
camera, the channel and the clock rather than by blocking calls.
"""
import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Mapping, Optional
from urllib.parse import quote, urlencode

from .camera import CameraError, camera_error_message
from .channel import TimerScheduler
from .detection import FaceDetection, encode_data_url

logger = logging.getLogger(__name__)

DEFAULT_NAME = 'Agent'
NO_FACE_MESSAGE = 'No face detected! Please position your face in the center of the circle and try again.'
CAPTURE_FAILED_MESSAGE = 'Error capturing photo. Please try again.'


class GateState(str, Enum):
    ACQUIRING_CAMERA = 'acquiring-camera'
    CAMERA_UNAVAILABLE = 'camera-unavailable'
    READY = 'ready'
    CAPTURING = 'capturing'
    DETECTING = 'detecting'
    RETRY = 'retry'
    CAPTURED = 'captured'
    AWAITING_PREDICTION = 'awaiting-prediction'
    SHOWING_RESULT = 'showing-result'
    CONTINUE = 'continue'


class FaceGateError(Exception):
    """Raised for actions the gate does not allow in its current state."""


@dataclass
class GateTimings:
    prediction_timeout: float = 3.0
    watchdog: float = 5.0
    skip_grace: float = 5.0
    scan_animation: float = 2.0
    error_banner: float = 3.0
    error_fallback: float = 2.0
    disconnected_fallback: float = 0.5


@dataclass
class PlayerInfo:
    name: str = DEFAULT_NAME
    email: str = ''

    @classmethod
    def resolve(cls, params: Optional[Mapping[str, str]] = None, stored: Optional[Mapping[str, str]] = None) -> 'PlayerInfo':
        """Query parameters first, then previously stored values, then defaults."""
        params = params or {}
        stored = stored or {}
        name = params.get('name') or stored.get('playerName') or DEFAULT_NAME
        email = params.get('email') or stored.get('playerEmail') or ''
        return cls(name=name, email=email)


@dataclass
class SessionMarkers:
    """What the game page needs to know once the gate has been passed."""
    name: str
    email: str
    face_scan_complete: bool = True

    def as_storage(self) -> Dict[str, str]:
        return {
            'playerName': self.name,
            'playerEmail': self.email,
            'faceScanComplete': 'true' if self.face_scan_complete else 'false',
        }

    def redirect_url(self, page: str = 'index.html') -> str:
        query = urlencode({'name': self.name, 'email': self.email, 'scanned': 'true'}, quote_via=quote)
        return f"{page}?{query}"


def fallback_prediction(name: str) -> Dict[str, Any]:
    return {
        'goodThings': [
            'You have incredible focus and determination',
            'Your quick thinking will be your greatest asset',
        ],
        'fortune': 'The vaults sense great potential in you. Trust your instincts and the codes will reveal themselves.',
        'wish': f"May luck be on your side, Agent {name}!",
    }


def _with_defaults(data: Mapping[str, Any], name: str) -> Dict[str, Any]:
    good_things = list(data.get('goodThings') or [])
    good_things += [None] * (2 - len(good_things))
    return {
        'goodThings': [
            good_things[0] or 'You have incredible focus',
            good_things[1] or 'Your determination is unmatched',
        ],
        'fortune': data.get('fortune') or 'The vaults sense great potential in you.',
        'wish': data.get('wish') or f"Good luck, Agent {name}!",
    }


class FaceGate:
    """Single-shot face capture in front of the game.

    ``camera`` provides ``open()``, ``read()``, ``stop()`` and ``active``;
    ``channel`` is a SocketChannel (or anything with ``connected`` and
    ``request_prediction``) and may be None when offline.
    """

    def __init__(self, player: PlayerInfo, camera, detection: Optional[FaceDetection] = None,
                 channel=None, scheduler=None, timings: Optional[GateTimings] = None):
        self.player = player
        self.camera = camera
        self.detection = detection or FaceDetection()
        self.channel = channel
        self.scheduler = scheduler or TimerScheduler()
        self.timings = timings or GateTimings()
        self.state = GateState.ACQUIRING_CAMERA
        self.capture_enabled = False
        self.skip_available = False
        self.error_message: Optional[str] = None
        self.captured_image: Optional[str] = None
        self.prediction: Optional[Dict[str, Any]] = None
        self._prediction_shown = False
        self._pending = None
        self._lock = threading.RLock()

    # ---- camera ----

    def start(self) -> bool:
        """Acquire the camera. Returns False when capture has to stay disabled."""
        self.state = GateState.ACQUIRING_CAMERA
        self.scheduler.call_later(self.timings.skip_grace, self._enable_skip)
        try:
            self.camera.open()
        except CameraError as exc:
            logger.warning(f"[facegate] camera unavailable: {exc}")
            self.error_message = camera_error_message(exc)
            self.capture_enabled = False
            self.state = GateState.CAMERA_UNAVAILABLE
            return False
        self.capture_enabled = True
        self.state = GateState.READY
        return True

    def capture(self) -> bool:
        """Grab one frame and check it for a face.

        On success the stream is stopped and the prediction request is
        scheduled after the scan animation. On failure the stream stays live.
        """
        if self.state not in (GateState.READY, GateState.RETRY) or not self.capture_enabled:
            raise FaceGateError(f"cannot capture while {self.state.value}")
        self.state = GateState.CAPTURING
        try:
            frame = self.camera.read()
            self.state = GateState.DETECTING
            found = self.detection.has_face(frame)
        except CameraError as exc:
            logger.warning(f"[facegate] capture failed: {exc}")
            self.state = GateState.RETRY
            self._flash_error(camera_error_message(exc))
            return False
        except Exception:
            logger.exception('[facegate] face check failed')
            self.state = GateState.RETRY
            self._flash_error(CAPTURE_FAILED_MESSAGE)
            return False

        if not found:
            self.state = GateState.RETRY
            self._flash_error(NO_FACE_MESSAGE)
            return False

        self.error_message = None
        self.captured_image = encode_data_url(frame)
        self.camera.stop()
        self.capture_enabled = False
        self.state = GateState.CAPTURED
        self.scheduler.call_later(self.timings.scan_animation, self.request_prediction)
        return True

    # ---- prediction ----

    def request_prediction(self) -> None:
        with self._lock:
            if self.state is not GateState.CAPTURED:
                return
            self.state = GateState.AWAITING_PREDICTION

        if self.channel is not None and self.channel.connected:
            logger.info('[facegate] requesting prediction via socket')
            self._pending = self.channel.request_prediction(
                {'name': self.player.name, 'email': self.player.email, 'image': self.captured_image},
                on_result=self.show_prediction,
                on_error=self._on_prediction_error,
            )
            self.scheduler.call_later(self.timings.prediction_timeout, self._on_timeout)
        else:
            logger.info('[facegate] socket not connected, using fallback')
            self.scheduler.call_later(self.timings.disconnected_fallback, self.use_fallback)
        # Last resort in case neither the response nor the timeout ever lands
        self.scheduler.call_later(self.timings.watchdog, self.use_fallback)

    def show_prediction(self, data: Mapping[str, Any]) -> bool:
        """Display ``data`` unless a prediction is already on screen."""
        with self._lock:
            if self._prediction_shown or self.state is GateState.CONTINUE:
                return False
            self._prediction_shown = True
            self._cancel_pending()
            self.prediction = _with_defaults(data, self.player.name)
            self.skip_available = False
            self.state = GateState.SHOWING_RESULT
        logger.info('[facegate] prediction displayed')
        return True

    def use_fallback(self) -> bool:
        return self.show_prediction(fallback_prediction(self.player.name))

    def _on_timeout(self) -> None:
        if not self._prediction_shown:
            logger.info('[facegate] prediction timed out, using fallback')
        self.use_fallback()

    def _on_prediction_error(self, data: Mapping[str, Any]) -> None:
        logger.info(f"[facegate] prediction error: {data.get('message')}")
        with self._lock:
            if self._prediction_shown:
                return
            self.error_message = data.get('message')
        self.scheduler.call_later(self.timings.error_fallback, self._clear_error_and_fallback)

    def _clear_error_and_fallback(self) -> None:
        self.error_message = None
        self.use_fallback()

    def _cancel_pending(self) -> None:
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None

    # ---- leaving the gate ----

    def continue_to_game(self) -> SessionMarkers:
        if self.state is not GateState.SHOWING_RESULT:
            raise FaceGateError(f"cannot continue while {self.state.value}")
        self.state = GateState.CONTINUE
        return SessionMarkers(self.player.name, self.player.email)

    def skip(self) -> SessionMarkers:
        """Bypass the scan once the grace delay has passed."""
        if not self.skip_available:
            raise FaceGateError('skip is not available yet')
        if self.camera.active:
            self.camera.stop()
        self.capture_enabled = False
        self.state = GateState.CONTINUE
        return SessionMarkers(self.player.name, self.player.email)

    # ---- banners & timers ----

    def _enable_skip(self) -> None:
        with self._lock:
            if self.state not in (GateState.SHOWING_RESULT, GateState.CONTINUE):
                self.skip_available = True

    def _flash_error(self, message: str) -> None:
        self.error_message = message

        def _clear():
            if self.error_message == message:
                self.error_message = None

        self.scheduler.call_later(self.timings.error_banner, _clear)
