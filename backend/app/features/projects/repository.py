# backend/app/features/projects/repository.py
"""Storage-backed access to projects and endpoints."""

import uuid
from typing import Iterable, List, Optional

from pydantic import ValidationError as PydanticValidationError

from backend.app.core import STORAGE_KEYS, KeyValueStore, NotFoundError, logs
from .models import Endpoint, Project, utc_now_iso


class ProjectRepository:
    """Reads and appends project/endpoint collections in a key/value store.

    Records are kept in insertion order. Deleting a project leaves its
    endpoints and results in place (they become orphaned).
    """

    def __init__(self, store: KeyValueStore) -> None:
        self.store = store

    # ========== Projects ==========

    def list_projects(self) -> List[Project]:
        return _load(self.store.get(STORAGE_KEYS["PROJECTS"], []), Project, "projects")

    def get_project(self, project_id: str) -> Optional[Project]:
        for project in self.list_projects():
            if project.id == project_id:
                return project
        return None

    def require_project(self, project_id: str) -> Project:
        """Like get_project, but raises NotFoundError for unknown ids."""
        project = self.get_project(project_id)
        if project is None:
            raise NotFoundError(f"Project '{project_id}' not found", {"project_id": project_id})
        return project

    def add_project(
        self,
        name: str,
        ip_address: Optional[str] = None,
        category: str = "Web Application",
        description: str = "",
    ) -> Project:
        project = Project(
            id=_new_id(),
            name=name,
            ip_address=ip_address,
            category=category,
            description=description,
        )
        projects = self.list_projects()
        projects.append(project)
        self._save(STORAGE_KEYS["PROJECTS"], projects)
        logs.info("Project created", "projects", {"id": project.id, "name": name})
        return project

    def delete_project(self, project_id: str) -> bool:
        projects = self.list_projects()
        remaining = [p for p in projects if p.id != project_id]
        if len(remaining) == len(projects):
            return False
        self._save(STORAGE_KEYS["PROJECTS"], remaining)
        logs.info("Project deleted", "projects", {"id": project_id})
        return True

    # ========== Endpoints ==========

    def list_endpoints(self) -> List[Endpoint]:
        return _load(self.store.get(STORAGE_KEYS["ENDPOINTS"], []), Endpoint, "endpoints")

    def get_endpoint(self, endpoint_id: str) -> Optional[Endpoint]:
        for endpoint in self.list_endpoints():
            if endpoint.id == endpoint_id:
                return endpoint
        return None

    def require_endpoint(self, endpoint_id: str) -> Endpoint:
        endpoint = self.get_endpoint(endpoint_id)
        if endpoint is None:
            raise NotFoundError(f"Endpoint '{endpoint_id}' not found", {"endpoint_id": endpoint_id})
        return endpoint

    def add_endpoints(self, endpoints: Iterable[Endpoint]) -> int:
        """Append endpoints after the existing ones. Returns the count added."""
        new = list(endpoints)
        if not new:
            return 0
        stored = self.list_endpoints()
        stored.extend(new)
        self._save(STORAGE_KEYS["ENDPOINTS"], stored)
        return len(new)

    def _save(self, key: str, records: list) -> None:
        self.store.set(key, [r.model_dump(mode="json") for r in records])

    def touch_project(self, project_id: str) -> None:
        """Bump a project's updated_at timestamp."""
        projects = self.list_projects()
        for i, project in enumerate(projects):
            if project.id == project_id:
                projects[i] = project.model_copy(update={"updated_at": utc_now_iso()})
                self._save(STORAGE_KEYS["PROJECTS"], projects)
                return


def _new_id() -> str:
    return uuid.uuid4().hex[:12]


def _load(raw: list, model, label: str) -> list:
    records = []
    for item in raw or []:
        try:
            records.append(model.model_validate(item))
        except PydanticValidationError as e:
            logs.warning(f"Skipping invalid stored {label} record", "projects", {"error": str(e)})
    return records
