import uvicorn
from constants import HOST, LOG_FILE, LOG_LEVEL, PORT, RELOAD, SOCKETIO_PATH
from logging_config import setup_logging

# Setup logging before importing app
setup_logging(log_level=LOG_LEVEL, log_file=LOG_FILE)

from logging_config import get_logger

logger = get_logger(__name__)


def main():
    logger.info(f"Radio Link signaling server running on port {PORT}")
    logger.info(f"Socket.IO URL: ws://localhost:{PORT}/{SOCKETIO_PATH}/")
    logger.info(f"WebSocket URL: ws://localhost:{PORT}/ws")
    uvicorn.run("app:asgi_app", host=HOST, port=PORT, reload=RELOAD, log_level=LOG_LEVEL.lower())


if __name__ == "__main__":
    main()
