# API package - FastAPI components
from .routes import router

__all__ = [
    "router",
]
