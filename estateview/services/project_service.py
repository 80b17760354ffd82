from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple

from flask import current_app

from estateview.domain.entities import (
    DEFAULT_ENTITY_TYPES,
    DEFAULT_VIEW_TYPES,
    ENTITY_FIELD_NAMES,
    ENTITY_STATUSES,
    Entity,
    View,
    descendant_ids,
    entity_path,
    find_entity,
    find_view_owner,
    is_unit_type,
    linked_child,
    slugify,
)
from estateview.domain.selections import Hotspot, Polygon
from estateview.storage.protocols import KeyValueStore

PROJECTS_KEY = "projects"
LANDING_PROJECT_KEY = "landing_project_id"
ENTITY_TYPES_KEY = "entity_types_list"
VIEW_TYPES_KEY = "view_types_list"


class ProjectError(Exception):
    """Base exception raised for project management issues."""


class ProjectNotFoundError(ProjectError):
    """Raised when a project is not found."""


class EntityNotFoundError(ProjectError):
    """Raised when an entity is not found in a project."""


class ViewNotFoundError(ProjectError):
    """Raised when a view is not found on an entity."""


class EntityConflictError(ProjectError):
    """Raised when a name is invalid or its slug is already taken."""


def storage_safe_view_id(view_id: str) -> str:
    return view_id.replace("/", "__")


class ProjectService:
    """Projects, their entity tree and views, on top of a key-value store."""

    def __init__(self, store: KeyValueStore) -> None:
        self._store = store

    @property
    def store(self) -> KeyValueStore:
        return self._store

    # Projects

    def list_projects(self) -> List[dict]:
        return self._read_json(PROJECTS_KEY, [])

    def get_project(self, project_id: str) -> dict:
        for project in self.list_projects():
            if project.get("id") == project_id:
                return project
        raise ProjectNotFoundError(f"Project with id {project_id} not found.")

    def create_project(self, name: str) -> dict:
        project_id = slugify(name)
        projects = self.list_projects()
        if not project_id or any(p.get("id") == project_id for p in projects):
            raise EntityConflictError(
                f'Project with name "{name}" already exists or name is invalid.'
            )

        project = {
            "id": project_id,
            "name": name,
            "creationTime": datetime.now(timezone.utc).isoformat(),
        }
        projects.append(project)
        self._write_json(PROJECTS_KEY, projects)
        self._save_metadata(project_id, [], None)
        current_app.logger.info(f"Created project {project_id}")
        return project

    def delete_project(self, project_id: str) -> None:
        projects = self.list_projects()
        remaining = [p for p in projects if p.get("id") != project_id]
        if len(remaining) == len(projects):
            raise ProjectNotFoundError(f"Project with id {project_id} not found.")

        # Keys are deleted by name: "project-a-" also prefixes keys of "a-view".
        entities, _ = self._load_metadata(project_id)
        for entity in entities:
            for view in entity.views:
                self._delete_view_data(project_id, view.id)
        self._store.delete(self._key(project_id, "data"))
        self._write_json(PROJECTS_KEY, remaining)
        if self._store.get(LANDING_PROJECT_KEY) == project_id:
            self._store.delete(LANDING_PROJECT_KEY)
        current_app.logger.info(f"Deleted project {project_id}")

    # Entities

    def list_entities(self, project_id: str) -> List[Entity]:
        entities, _ = self._load_metadata(project_id)
        return entities

    def get_entity(self, project_id: str, entity_id: str) -> Entity:
        entity = find_entity(self.list_entities(project_id), entity_id)
        if entity is None:
            raise EntityNotFoundError(f"Entity with id {entity_id} not found.")
        return entity

    def add_entity(
        self,
        project_id: str,
        name: str,
        entity_type: str,
        parent_id: Optional[str] = None,
    ) -> Entity:
        """Append an entity; its id is the slug of its name."""
        entities, landing_id = self._load_metadata(project_id)
        entity_id = slugify(name)
        if not entity_id or find_entity(entities, entity_id) is not None:
            raise EntityConflictError(
                f'Entity with name "{name}" already exists or name is invalid.'
            )
        if parent_id is not None and find_entity(entities, parent_id) is None:
            raise EntityNotFoundError(f"Parent entity with id {parent_id} not found.")

        entity = Entity(id=entity_id, name=name, entity_type=entity_type, parent_id=parent_id)
        if is_unit_type(entity_type):
            entity = entity.with_changes(floors=1, rooms=1, status="available")

        entities.append(entity)
        self._save_metadata(project_id, entities, landing_id)
        current_app.logger.info(f"Added entity {entity_id} ({entity_type}) to project {project_id}")
        return entity

    def ensure_child_entity(
        self, project_id: str, parent_id: str, name: str, entity_type: str
    ) -> Entity:
        """Return the child of ``parent_id`` named ``name``, creating it if needed."""
        existing = linked_child(self.list_entities(project_id), parent_id, name)
        if existing is not None:
            return existing
        return self.add_entity(project_id, name, entity_type, parent_id=parent_id)

    def update_entity(self, project_id: str, entity_id: str, changes: Dict[str, Any]) -> Entity:
        entities, landing_id = self._load_metadata(project_id)
        entity = find_entity(entities, entity_id)
        if entity is None:
            raise EntityNotFoundError(f"Entity with id {entity_id} not found.")

        status = changes.get("status")
        if status not in (None, "") and status not in ENTITY_STATUSES:
            raise ValueError(f"Invalid status: {status}")

        data = entity.to_json()
        data.update({key: value for key, value in changes.items() if key in ENTITY_FIELD_NAMES})
        updated = Entity.from_json(data)

        entities = [updated if e.id == entity_id else e for e in entities]
        self._save_metadata(project_id, entities, landing_id)
        return updated

    def delete_entity(self, project_id: str, entity_id: str) -> List[str]:
        """
        Delete an entity together with all of its descendants and their views'
        stored images and selections. Returns the removed entity ids.
        """
        entities, landing_id = self._load_metadata(project_id)
        if find_entity(entities, entity_id) is None:
            raise EntityNotFoundError(f"Entity with id {entity_id} not found.")

        doomed = descendant_ids(entity_id, entities)
        for entity in entities:
            if entity.id in doomed:
                for view in entity.views:
                    self._delete_view_data(project_id, view.id)

        remaining = [e for e in entities if e.id not in doomed]
        if landing_id in doomed:
            landing_id = None
        self._save_metadata(project_id, remaining, landing_id)
        current_app.logger.info(
            f"Deleted entities {sorted(doomed)} from project {project_id}"
        )
        return sorted(doomed)

    # Views

    def add_view(self, project_id: str, entity_id: str, name: str, view_type: str) -> View:
        """
        Add a view to an entity. The view id is the entity's ancestor path
        plus the view slug, joined with '__'.
        """
        entities, landing_id = self._load_metadata(project_id)
        entity = find_entity(entities, entity_id)
        if entity is None:
            raise EntityNotFoundError(f"Entity with id {entity_id} not found.")

        view_slug = slugify(name)
        if not view_slug:
            raise EntityConflictError(
                "Invalid view name. The name must contain alphanumeric characters."
            )
        if any(v.id.split("__")[-1] == view_slug for v in entity.views):
            raise EntityConflictError(
                f'A view with a name that generates the same slug ("{view_slug}") '
                f"already exists in this entity."
            )

        view = View(
            id="__".join(entity_path(entity_id, entities) + [view_slug]),
            name=name,
            type=view_type,
        )
        views = tuple(entity.views) + (view,)
        default_view_id = view.id if len(views) == 1 else entity.default_view_id
        updated = entity.with_changes(views=views, default_view_id=default_view_id)

        entities = [updated if e.id == entity_id else e for e in entities]
        self._save_metadata(project_id, entities, landing_id)
        current_app.logger.info(f"Added view {view.id} to entity {entity_id}")
        return view

    def ensure_view(self, project_id: str, entity_id: str, name: str, view_type: str) -> View:
        entity = self.get_entity(project_id, entity_id)
        for view in entity.views:
            if view.name == name:
                return view
        return self.add_view(project_id, entity_id, name, view_type)

    def delete_view(self, project_id: str, entity_id: str, view_id: str) -> None:
        entities, landing_id = self._load_metadata(project_id)
        entity = find_entity(entities, entity_id)
        if entity is None:
            raise EntityNotFoundError(f"Entity with id {entity_id} not found.")
        if entity.get_view(view_id) is None:
            raise ViewNotFoundError(f"View with id {view_id} not found.")

        views = tuple(v for v in entity.views if v.id != view_id)
        default_view_id = entity.default_view_id
        if default_view_id == view_id:
            default_view_id = views[0].id if views else None
        updated = entity.with_changes(views=views, default_view_id=default_view_id)

        entities = [updated if e.id == entity_id else e for e in entities]
        self._save_metadata(project_id, entities, landing_id)
        self._delete_view_data(project_id, view_id)

    def get_view(self, project_id: str, entity_id: str, view_id: str) -> View:
        """View metadata hydrated with its stored image, selections and hotspots."""
        view = self.get_entity(project_id, entity_id).get_view(view_id)
        if view is None:
            raise ViewNotFoundError(f"View with id {view_id} not found.")
        image_url, selections, hotspots = self.load_view(project_id, view_id)
        return View(
            id=view.id,
            name=view.name,
            type=view.type,
            image_url=image_url,
            selections=tuple(selections),
            hotspots=tuple(hotspots),
        )

    def find_view(self, project_id: str, view_id: str) -> Tuple[Entity, View]:
        found = find_view_owner(self.list_entities(project_id), view_id)
        if found is None:
            raise ViewNotFoundError(f"View with id {view_id} not found.")
        entity, _ = found
        return entity, self.get_view(project_id, entity.id, view_id)

    def set_default_view(self, project_id: str, entity_id: str, view_id: str) -> Entity:
        entities, landing_id = self._load_metadata(project_id)
        entity = find_entity(entities, entity_id)
        if entity is None:
            raise EntityNotFoundError(f"Entity with id {entity_id} not found.")
        if entity.get_view(view_id) is None:
            raise ViewNotFoundError(f"View with id {view_id} not found.")

        updated = entity.with_changes(default_view_id=view_id)
        entities = [updated if e.id == entity_id else e for e in entities]
        self._save_metadata(project_id, entities, landing_id)
        return updated

    def load_view(
        self, project_id: str, view_id: str
    ) -> Tuple[Optional[str], List[Polygon], List[Hotspot]]:
        """Stored image, selections and hotspots of a view, all relative."""
        safe_id = storage_safe_view_id(view_id)
        image_url = self._store.get(self._key(project_id, f"view-image-{safe_id}"))
        raw_selections = self._read_json(self._key(project_id, f"view-selections-{safe_id}"), [])
        raw_hotspots = self._read_json(self._key(project_id, f"view-hotspots-{safe_id}"), [])
        try:
            selections = [Polygon.from_json(item) for item in raw_selections]
            hotspots = [Hotspot.from_json(item) for item in raw_hotspots]
        except (KeyError, TypeError, ValueError) as e:
            raise ProjectError(f"Stored data for view {view_id} is malformed: {e}") from e
        return image_url, selections, hotspots

    def save_selections(
        self,
        project_id: str,
        entity_id: str,
        view_id: str,
        selections: Sequence[Polygon],
        hotspots: Optional[Sequence[Hotspot]] = None,
    ) -> None:
        """
        Overwrite the stored (relative) selections of a view, and its hotspots
        when given.
        """
        self._require_view(project_id, entity_id, view_id)
        safe_id = storage_safe_view_id(view_id)
        self._write_json(
            self._key(project_id, f"view-selections-{safe_id}"),
            [polygon.to_json() for polygon in selections],
        )
        current_app.logger.info(f"Saved {len(selections)} selections for view {view_id}")
        if hotspots is not None:
            self._write_json(
                self._key(project_id, f"view-hotspots-{safe_id}"),
                [hotspot.to_json() for hotspot in hotspots],
            )
            current_app.logger.info(f"Saved {len(hotspots)} hotspots for view {view_id}")

    def save_view_image(self, project_id: str, entity_id: str, view_id: str, image_url: str) -> None:
        self._require_view(project_id, entity_id, view_id)
        self._store.set(
            self._key(project_id, f"view-image-{storage_safe_view_id(view_id)}"), image_url
        )

    # Landing page

    def set_landing_entity(self, project_id: str, entity_id: Optional[str]) -> None:
        entities, _ = self._load_metadata(project_id)
        if entity_id is not None and find_entity(entities, entity_id) is None:
            raise EntityNotFoundError(f"Entity with id {entity_id} not found.")

        self._save_metadata(project_id, entities, entity_id)
        if entity_id:
            self._store.set(LANDING_PROJECT_KEY, project_id)
        elif self._store.get(LANDING_PROJECT_KEY) == project_id:
            self._store.delete(LANDING_PROJECT_KEY)

    def landing(self) -> Optional[dict]:
        """Landing project, its landing entity and that entity's default view."""
        project_id = self._store.get(LANDING_PROJECT_KEY)
        if not project_id:
            return None
        entities, landing_id = self._load_metadata(project_id)
        entity = find_entity(entities, landing_id)
        if entity is None:
            return None

        view = None
        if entity.default_view_id:
            view = self.get_view(project_id, entity.id, entity.default_view_id)
        return {"projectId": project_id, "entity": entity, "view": view}

    # Type lists

    def entity_types(self) -> List[str]:
        return self._read_json(ENTITY_TYPES_KEY, list(DEFAULT_ENTITY_TYPES))

    def add_entity_type(self, type_name: str) -> List[str]:
        return self._add_to_list(ENTITY_TYPES_KEY, self.entity_types(), type_name)

    def delete_entity_type(self, type_name: str) -> List[str]:
        return self._remove_from_list(ENTITY_TYPES_KEY, self.entity_types(), type_name)

    def view_types(self) -> List[str]:
        return self._read_json(VIEW_TYPES_KEY, list(DEFAULT_VIEW_TYPES))

    def add_view_type(self, type_name: str) -> List[str]:
        return self._add_to_list(VIEW_TYPES_KEY, self.view_types(), type_name)

    def delete_view_type(self, type_name: str) -> List[str]:
        return self._remove_from_list(VIEW_TYPES_KEY, self.view_types(), type_name)

    # Internals

    @staticmethod
    def _key(project_id: str, suffix: str) -> str:
        return f"project-{project_id}-{suffix}"

    def _load_metadata(self, project_id: str) -> Tuple[List[Entity], Optional[str]]:
        data = self._read_json(self._key(project_id, "data"), None)
        if data is None:
            # Raises when the project itself is unknown.
            self.get_project(project_id)
            return [], None
        try:
            entities = [Entity.from_json(item) for item in data.get("entities", [])]
        except (KeyError, TypeError, ValueError) as e:
            raise ProjectError(f"Project data for {project_id} is malformed: {e}") from e
        return entities, data.get("landingPageEntityId")

    def _save_metadata(
        self, project_id: str, entities: Sequence[Entity], landing_id: Optional[str]
    ) -> None:
        self._write_json(
            self._key(project_id, "data"),
            {
                "landingPageEntityId": landing_id,
                "entities": [entity.to_json() for entity in entities],
            },
        )

    def _require_view(self, project_id: str, entity_id: str, view_id: str) -> None:
        if self.get_entity(project_id, entity_id).get_view(view_id) is None:
            raise ViewNotFoundError(f"View with id {view_id} not found.")

    def _delete_view_data(self, project_id: str, view_id: str) -> None:
        safe_id = storage_safe_view_id(view_id)
        self._store.delete(self._key(project_id, f"view-image-{safe_id}"))
        self._store.delete(self._key(project_id, f"view-selections-{safe_id}"))
        self._store.delete(self._key(project_id, f"view-hotspots-{safe_id}"))

    def _add_to_list(self, key: str, values: List[str], value: str) -> List[str]:
        if value and value not in values:
            values.append(value)
            self._write_json(key, values)
        return values

    def _remove_from_list(self, key: str, values: List[str], value: str) -> List[str]:
        if value in values:
            values = [v for v in values if v != value]
            self._write_json(key, values)
        return values

    def _read_json(self, key: str, default: Any) -> Any:
        raw = self._store.get(key)
        if raw is None:
            return default
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            raise ProjectError(f"Failed to decode stored value for {key}: {e}") from e

    def _write_json(self, key: str, value: Any) -> None:
        self._store.set(key, json.dumps(value, ensure_ascii=False))
