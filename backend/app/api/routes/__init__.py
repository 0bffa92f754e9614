"""
API routes package
"""
from app.api.routes import chat

__all__ = [
    "chat",
]
