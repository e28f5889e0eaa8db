# backend/app/features/projects/__init__.py
"""Projects feature: project and endpoint records and their storage."""

from .models import BODY_METHODS, Endpoint, HttpMethod, Priority, Project
from .repository import ProjectRepository

__all__ = [
    "BODY_METHODS",
    "Endpoint",
    "HttpMethod",
    "Priority",
    "Project",
    "ProjectRepository",
]
