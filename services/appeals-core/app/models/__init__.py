"""
SQLAlchemy models
"""
from app.models.appeal import Appeal, AppealResponse, AppealStatus

__all__ = [
    "Appeal",
    "AppealResponse",
    "AppealStatus",
]
