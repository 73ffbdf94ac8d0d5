# src/crashrisk/adapters/__init__.py
"""
Adapters Layer - External System Integrations

This package contains adapters for external systems:
- providers: Market and macro data API clients
- http: FastAPI consumer boundary
"""
