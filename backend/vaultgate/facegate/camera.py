import logging

import cv2
import numpy as np

logger = logging.getLogger(__name__)


class CameraError(Exception):
    """Camera could not be acquired or read."""


class CameraPermissionDenied(CameraError):
    pass


class CameraNotFound(CameraError):
    pass


class CameraInUse(CameraError):
    pass


DEFAULT_CAMERA_MESSAGE = 'Camera access denied. Please allow camera access and refresh the page.'

CAMERA_MESSAGES = {
    CameraPermissionDenied: 'Camera permission denied. Please allow camera access in your settings and try again.',
    CameraNotFound: 'No camera found on this device.',
    CameraInUse: 'Camera is in use by another app. Please close other apps and try again.',
}


def camera_error_message(exc: CameraError) -> str:
    for error_class, message in CAMERA_MESSAGES.items():
        if isinstance(exc, error_class):
            return message
    return DEFAULT_CAMERA_MESSAGE


class OpenCVCamera:
    """Front-facing video stream backed by ``cv2.VideoCapture``."""

    def __init__(self, index: int = 0, width: int = 640, height: int = 640):
        self.index = index
        self.width = width
        self.height = height
        self._capture = None

    @property
    def active(self) -> bool:
        return self._capture is not None

    def open(self) -> None:
        capture = cv2.VideoCapture(self.index)
        if not capture.isOpened():
            capture.release()
            raise CameraNotFound(f"no camera at index {self.index}")
        capture.set(cv2.CAP_PROP_FRAME_WIDTH, self.width)
        capture.set(cv2.CAP_PROP_FRAME_HEIGHT, self.height)
        self._capture = capture
        logger.info(f"[camera] opened index={self.index}")

    def read(self) -> np.ndarray:
        """Grab the current frame as RGB."""
        if self._capture is None:
            raise CameraError('camera is not open')
        ok, frame = self._capture.read()
        if not ok or frame is None:
            raise CameraInUse(f"camera {self.index} returned no frame")
        return cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)

    def stop(self) -> None:
        if self._capture is not None:
            self._capture.release()
            self._capture = None
            logger.info(f"[camera] released index={self.index}")
