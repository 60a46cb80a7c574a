from fastapi import Request

from app.config import Settings
from app.database.session import get_db


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


__all__ = ["get_app_settings", "get_db"]
