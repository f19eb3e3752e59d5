"""Shared request dependencies for modular routers."""
from __future__ import annotations

from typing import Optional

from fastapi import Header

from ...app_context import get_current_user
from ..billing import AuthenticatedUser


def get_authenticated_user(authorization: Optional[str] = Header(None)) -> AuthenticatedUser:
    return get_current_user(authorization=authorization)
