from .config import settings
from .logger import setup_logging
from .auth import verify_token

__all__ = ["settings", "setup_logging", "verify_token"]
