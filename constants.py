import os

HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", 3001))

# Comma separated; "*" allows every origin
CORS_ORIGINS = [origin.strip() for origin in os.getenv("CORS_ORIGINS", "*").split(",") if origin.strip()]

SOCKETIO_PATH = os.getenv("SOCKETIO_PATH", "socket.io")

DEFAULT_CHANNEL = os.getenv("DEFAULT_CHANNEL", "DEFAULT")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FILE = os.getenv("LOG_FILE", None)

RELOAD = os.getenv("RELOAD", "false").lower() in ("1", "true", "yes")
