import os
import logging

logger = logging.getLogger(__name__)

_DEV_SECRET = "dev-secret-change-me"

DATABASE_URL = os.environ.get("DATABASE_URL", "sqlite:///./chalanbook.db")
JWT_SECRET = os.environ.get("JWT_SECRET", _DEV_SECRET)
JWT_ALGORITHM = os.environ.get("JWT_ALGORITHM", "HS256")
TOKEN_EXPIRE_DAYS = int(os.environ.get("TOKEN_EXPIRE_DAYS", "7"))
CORS_ORIGINS = [o.strip() for o in os.environ.get("CORS_ORIGINS", "http://localhost:5173").split(",") if o.strip()]
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

if JWT_SECRET == _DEV_SECRET:
    logger.warning("JWT_SECRET is not set, using the development secret")
