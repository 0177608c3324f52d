"""
Core application utilities for settings and FastAPI dependencies.

This package provides:
- Application-level settings (separate from DB settings)
- Dependency helpers (current user, owner id, rate limits)
- Error types, response cache and token helpers
"""
