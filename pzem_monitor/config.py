# pzem_monitor/config.py
import os

DB_URL = os.environ.get("DB_URL", "sqlite:///./data/pzem.db")
SQL_ECHO = os.environ.get("SQL_ECHO", "0") == "1"

HOST = os.environ.get("HOST", "0.0.0.0")
PORT = int(os.environ.get("PORT", "5000"))
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()

# History pagination
HISTORY_DEFAULT_LIMIT = int(os.environ.get("HISTORY_DEFAULT_LIMIT", "100"))
HISTORY_MAX_LIMIT = int(os.environ.get("HISTORY_MAX_LIMIT", "1000"))

# Upper bound for a single websocket send
NOTIFY_TIMEOUT_SECONDS = float(os.environ.get("NOTIFY_TIMEOUT_SECONDS", "2.0"))

# Comma separated; "*" lets any dashboard origin call the API
CORS_ORIGINS = [o.strip() for o in os.environ.get("CORS_ORIGINS", "*").split(",") if o.strip()]
