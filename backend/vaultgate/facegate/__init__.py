"""Face-gate client: camera capture and face check before entering the game."""
from .camera import (
    CameraError,
    CameraInUse,
    CameraNotFound,
    CameraPermissionDenied,
    OpenCVCamera,
    camera_error_message,
)
from .channel import SocketChannel, TimerScheduler
from .detection import FaceDetection, HaarCascadeDetector, SkinToneDetector, decode_data_url, encode_data_url
from .flow import (
    FaceGate,
    FaceGateError,
    GateState,
    GateTimings,
    PlayerInfo,
    SessionMarkers,
    fallback_prediction,
)
