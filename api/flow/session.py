"""
Per-space editing sessions.

A session bundles a space's graph store, its canvas controller and its node
templates. The manager creates sessions on demand and, when persistence is
enabled, restores them from and saves them to the graph repository.
"""

import uuid
from typing import Any, Dict, List, Optional

from ..shared.logger import get_logger
from .connections import ConnectionsCatalog, connections_catalog
from .canvas import CanvasController
from .models import NodeTemplate
from .repository import GraphRepository
from .store import GraphStore

logger = get_logger(__name__)


class SpaceSession:
    """Editing state of one space."""

    def __init__(self, slug: str, connections: ConnectionsCatalog, base_path: str = "/dmp"):
        self.slug = slug
        self.store = GraphStore(connections=connections, base_path=base_path, space=slug)
        self.canvas = CanvasController(self.store)
        self._templates: Dict[str, NodeTemplate] = {}

    # ============= Templates =============

    @property
    def templates(self) -> List[NodeTemplate]:
        return list(self._templates.values())

    def get_template(self, template_id: str) -> Optional[NodeTemplate]:
        return self._templates.get(template_id)

    def add_template(self, connection_id: str, schema: str, table: str) -> NodeTemplate:
        """Add a palette template.

        Raises:
            ValueError: If connection, schema or table is missing
        """
        if not connection_id or not (schema or "").strip() or not (table or "").strip():
            raise ValueError("Connection, schema and table are required")
        template = NodeTemplate(
            id=str(uuid.uuid4()),
            connection_id=connection_id,
            schema=schema.strip(),
            table=table.strip(),
        )
        self._templates[template.id] = template
        return template

    # ============= Documents =============

    def to_document(self) -> Dict[str, Any]:
        document = self.store.snapshot()
        document["templates"] = [t.to_dict() for t in self._templates.values()]
        return document

    def load_document(self, document: Dict[str, Any]) -> None:
        """Replace graph and templates; nothing changes if any entry is malformed.

        Raises:
            KeyError, TypeError, ValueError: If the document cannot be parsed
        """
        if not isinstance(document, dict):
            raise ValueError("Space document must be a mapping")
        templates: Dict[str, NodeTemplate] = {}
        for data in document.get("templates") or []:
            template = NodeTemplate.from_dict(data)
            templates[template.id] = template

        self.store.restore(document)
        self._templates = templates
        self.canvas.click_pane()


class SpaceSessionManager:
    """Creates, caches and optionally persists space sessions."""

    def __init__(
        self,
        connections: Optional[ConnectionsCatalog] = None,
        repository: Optional[GraphRepository] = None,
        base_path: str = "/dmp",
    ):
        self.connections = connections if connections is not None else connections_catalog
        self.repository = repository
        self.base_path = base_path
        self._sessions: Dict[str, SpaceSession] = {}

    def get(self, slug: str) -> SpaceSession:
        session = self._sessions.get(slug)
        if session is not None:
            return session

        session = SpaceSession(slug, self.connections, self.base_path)
        if self.repository is not None:
            document = self.repository.load(slug)
            if document is not None:
                try:
                    session.load_document(document)
                    logger.info("Restored space %s (%d nodes)", slug, len(session.store.nodes))
                except (KeyError, TypeError, ValueError) as e:
                    logger.error("Stored space %s is malformed, starting empty: %r", slug, e)
        self._sessions[slug] = session
        return session

    def save(self, slug: str) -> None:
        """Persist a session if persistence is enabled."""
        if self.repository is None:
            return
        session = self._sessions.get(slug)
        if session is None:
            return
        try:
            self.repository.save(slug, session.to_document())
        except OSError as e:
            logger.error("Failed to save space %s: %s", slug, e)

    def reset(self, slug: str) -> None:
        """Forget a space's graph, on disk too."""
        self._sessions.pop(slug, None)
        if self.repository is not None:
            self.repository.delete(slug)

    def clear(self) -> None:
        self._sessions.clear()

    def list_spaces(self) -> List[str]:
        slugs = set(self._sessions)
        if self.repository is not None:
            slugs.update(self.repository.list_spaces())
        return sorted(slugs)


_space_manager: Optional[SpaceSessionManager] = None


def get_space_manager() -> SpaceSessionManager:
    """Process-wide manager built from the app settings."""
    global _space_manager
    if _space_manager is None:
        from ..app_config import get_settings

        settings = get_settings()
        repository = GraphRepository(settings.spaces_dir) if settings.persist_graphs else None
        _space_manager = SpaceSessionManager(
            connections=connections_catalog,
            repository=repository,
            base_path=settings.base_path,
        )
    return _space_manager


def set_space_manager(manager: Optional[SpaceSessionManager]) -> None:
    """Replace the process-wide manager (None rebuilds it from settings)."""
    global _space_manager
    _space_manager = manager
