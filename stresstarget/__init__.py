from .app import create_app
from .config import RequestConfig, Settings

__all__ = ["create_app", "RequestConfig", "Settings"]
