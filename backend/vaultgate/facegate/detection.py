"""Face presence checks for captured frames.

Frames are ``numpy`` arrays of shape (height, width, 3) in RGB order. A
platform detector (OpenCV's Haar cascade here) is used when one is available;
otherwise, or when it fails, a skin-tone heuristic over the centre of the
frame decides.
"""
import base64
import logging
from typing import Optional

import cv2
import numpy as np

logger = logging.getLogger(__name__)

CENTER_RADIUS_RATIO = 0.35
SKIN_FRACTION_THRESHOLD = 0.12
SAMPLE_STEP = 2
JPEG_QUALITY = 80


def skin_mask(frame: np.ndarray) -> np.ndarray:
    """Boolean mask of pixels whose RGB values fall in a broad skin-tone range."""
    pixels = frame[..., :3].astype(np.int16)
    r, g, b = pixels[..., 0], pixels[..., 1], pixels[..., 2]
    return (
        (r > 60) & (g > 40) & (b > 20)
        & (r > g) & (r > b)
        & (np.abs(r - g) > 10)
        & (r - b > 10) & (r - b < 170)
    )


def center_skin_fraction(frame: np.ndarray) -> float:
    """Fraction of sampled pixels inside the centre circle that look like skin.

    Every other pixel on both axes is sampled; the circle is centred on the
    frame with radius 0.35 x the smaller dimension.
    """
    height, width = frame.shape[:2]
    radius = min(width, height) * CENTER_RADIUS_RATIO
    ys = np.arange(0, height, SAMPLE_STEP)
    xs = np.arange(0, width, SAMPLE_STEP)
    dy = (ys - height / 2.0)[:, None]
    dx = (xs - width / 2.0)[None, :]
    inside = dx * dx + dy * dy <= radius * radius
    checked = int(inside.sum())
    if checked == 0:
        return 0.0
    sampled = frame[::SAMPLE_STEP, ::SAMPLE_STEP]
    skin = int((skin_mask(sampled) & inside).sum())
    return skin / checked


class SkinToneDetector:
    """Low-precision fallback: enough skin in the centre circle counts as a face."""

    def __init__(self, threshold: float = SKIN_FRACTION_THRESHOLD):
        self.threshold = threshold

    def has_face(self, frame: np.ndarray) -> bool:
        fraction = center_skin_fraction(frame)
        logger.debug(f"[skin-detect] {fraction * 100:.1f}% skin pixels in center")
        return fraction > self.threshold


class HaarCascadeDetector:
    """OpenCV's bundled frontal-face cascade."""

    def __init__(self, cascade_path: Optional[str] = None):
        self.cascade = None
        if not hasattr(cv2, 'CascadeClassifier'):
            logger.warning('[face-detect] this OpenCV build has no cascade classifier')
            return
        path = cascade_path or cv2.data.haarcascades + 'haarcascade_frontalface_default.xml'
        self.cascade = cv2.CascadeClassifier(path)

    @property
    def available(self) -> bool:
        return self.cascade is not None and not self.cascade.empty()

    def detect(self, frame: np.ndarray):
        gray = cv2.cvtColor(frame, cv2.COLOR_RGB2GRAY)
        gray = cv2.equalizeHist(gray)
        return self.cascade.detectMultiScale(gray, scaleFactor=1.1, minNeighbors=5, minSize=(60, 60))


class FaceDetection:
    """Pick the platform detector when usable, otherwise the skin-tone heuristic.

    ``platform`` is any object with ``detect(frame)`` returning a sequence of
    detections and, optionally, an ``available`` flag.
    """

    def __init__(self, platform=None, fallback: Optional[SkinToneDetector] = None):
        if platform is not None and not getattr(platform, 'available', True):
            logger.info('[face-detect] platform detector unavailable, using skin tone fallback')
            platform = None
        self.platform = platform
        self.fallback = fallback or SkinToneDetector()

    @property
    def uses_platform(self) -> bool:
        return self.platform is not None

    def has_face(self, frame: np.ndarray) -> bool:
        if self.platform is not None:
            try:
                faces = self.platform.detect(frame)
                logger.debug(f"[face-detect] platform detector found {len(faces)} faces")
                return len(faces) > 0
            except Exception as exc:
                logger.warning(f"[face-detect] platform detector failed, falling back: {exc}")
        return self.fallback.has_face(frame)


def encode_data_url(frame: np.ndarray, quality: int = JPEG_QUALITY) -> str:
    """JPEG-encode an RGB frame as a ``data:`` URL."""
    bgr = cv2.cvtColor(frame, cv2.COLOR_RGB2BGR)
    ok, buffer = cv2.imencode('.jpg', bgr, [int(cv2.IMWRITE_JPEG_QUALITY), quality])
    if not ok:
        raise ValueError('could not encode frame as JPEG')
    return 'data:image/jpeg;base64,' + base64.b64encode(buffer.tobytes()).decode('ascii')


def decode_data_url(data_url: str) -> Optional[np.ndarray]:
    """Decode a base64 image (optionally a ``data:`` URL) to an RGB frame, or None."""
    try:
        raw = base64.b64decode(data_url.split(',')[-1], validate=True)
    except (ValueError, AttributeError):
        return None
    if not raw:
        return None
    try:
        image = cv2.imdecode(np.frombuffer(raw, np.uint8), cv2.IMREAD_COLOR)
    except cv2.error:
        return None
    if image is None:
        return None
    return cv2.cvtColor(image, cv2.COLOR_BGR2RGB)
