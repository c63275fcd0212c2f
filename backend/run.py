from vaultgate import create_app, dispose_store, socketio

app = create_app()

if __name__ == '__main__':
    try:
        # Use SocketIO server to enable websockets in dev
        socketio.run(app, host='0.0.0.0', port=app.config['PORT'], debug=app.debug)
    finally:
        dispose_store(app)
