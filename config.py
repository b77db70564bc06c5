import os
from dotenv import load_dotenv

load_dotenv()

DEFAULT_ADMIN_PASSWORD = "changeme"

BASE_URL = os.getenv("BASE_URL", "http://localhost:3000").rstrip("/")
HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "3000"))
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD", DEFAULT_ADMIN_PASSWORD)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./links.db")
SQL_ECHO = os.getenv("SQL_ECHO", "false").lower() in ("1", "true", "yes")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
