from __future__ import annotations

from fastapi import Request

from microtools.bootstrap import Components


def get_components(request: Request) -> Components:
    """Components built at app creation, shared by every request."""
    return request.app.state.components
