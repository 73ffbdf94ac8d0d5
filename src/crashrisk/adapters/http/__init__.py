# src/crashrisk/adapters/http/__init__.py
"""
HTTP Adapter - FastAPI Routes

Exposes indicators, quotes, the crash-risk breakdown and health as JSON.
"""

from crashrisk.adapters.http.routes import router

__all__ = ["router"]
