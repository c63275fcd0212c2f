from flask_socketio import emit
from flask import current_app
from vaultgate import socketio
from vaultgate.facegate.detection import decode_data_url
from vaultgate.services.predictions import make_prediction

NAMESPACE = '/ws'


def handle_connect():
    emit('connected', {'message': 'Connected to /ws'})


def handle_prediction_request(data):
    """Answer a face-gate capture with a decorative prediction."""
    if not isinstance(data, dict):
        emit('prediction:error', {'message': 'Invalid prediction request'})
        return
    name = data.get('name') or ''
    image = data.get('image')
    if not isinstance(name, str) or (image is not None and not isinstance(image, str)):
        emit('prediction:error', {'message': 'Invalid prediction request'})
        return
    name = name.strip() or 'Agent'
    if image:
        frame = decode_data_url(image)
        if frame is None:
            current_app.logger.info(f"[prediction] unreadable image from name={name!r}")
            emit('prediction:error', {'message': "We couldn't read your photo. Please try again."})
            return
        current_app.logger.info(f"[prediction] name={name!r} image={frame.shape[1]}x{frame.shape[0]}")
    emit('prediction:result', make_prediction(name))


def handle_ping(data):
    emit('pong', data or {})


def register_socketio_handlers() -> None:
    """Register Socket.IO event handlers on namespace '/ws'."""
    socketio.on_event('connect', handle_connect, namespace=NAMESPACE)
    socketio.on_event('prediction:request', handle_prediction_request, namespace=NAMESPACE)
    socketio.on_event('ping', handle_ping, namespace=NAMESPACE)
