# Session Auth API
from sessionauth.api.router import api_router

__all__ = ["api_router"]
