"""Shared FastAPI dependencies."""

from fastapi import Request

from hr_portal.config import Settings


def get_settings(request: Request) -> Settings:
    """Return the ``Settings`` instance the running app was built with."""
    return request.app.state.settings
