"""
In-memory connections catalog.

The flow editor only reads connections: it resolves a node's database type
and icon from them and lists them in the node configuration dialog.
Registered connections live for the lifetime of the process.
"""

import uuid
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional

from ..shared.logger import get_logger
from .catalog import get_category, is_known_db_type, make_slug
from .models import ConnectionRef

logger = get_logger(__name__)

UNKNOWN_CONNECTION_NAME = "Unknown connection"


@dataclass(frozen=True)
class ConnectionDescriptor:
    id: str
    name: str
    database_type: str
    category: str
    slug: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def to_ref(self) -> ConnectionRef:
        return ConnectionRef(id=self.id, name=self.name, database_type=self.database_type)


class ConnectionsCatalog:
    """Registry of connections keyed by id, in registration order."""

    def __init__(self):
        self._connections: Dict[str, ConnectionDescriptor] = {}

    def register(
        self,
        name: str,
        database_type: str,
        connection_id: Optional[str] = None,
    ) -> ConnectionDescriptor:
        """Add a connection and return its descriptor.

        Raises:
            ValueError: If the name is blank, the type unknown or the id taken
        """
        name = (name or "").strip()
        if not name:
            raise ValueError("Connection name is required")
        if not is_known_db_type(database_type):
            raise ValueError(f"Unknown database type: {database_type}")

        connection_id = connection_id or str(uuid.uuid4())
        if connection_id in self._connections:
            raise ValueError(f"Connection '{connection_id}' already exists")

        descriptor = ConnectionDescriptor(
            id=connection_id,
            name=name,
            database_type=database_type,
            category=get_category(database_type),
            slug=make_slug(name, database_type),
        )
        self._connections[connection_id] = descriptor
        logger.info("Registered connection %s (%s)", name, database_type)
        return descriptor

    def get(self, connection_id: Optional[str]) -> Optional[ConnectionDescriptor]:
        if not connection_id:
            return None
        return self._connections.get(connection_id)

    def resolve_name(self, connection_id: Optional[str]) -> str:
        descriptor = self.get(connection_id)
        return descriptor.name if descriptor else UNKNOWN_CONNECTION_NAME

    def list(self) -> List[ConnectionDescriptor]:
        return list(self._connections.values())

    def options_for(self, database_type: Optional[str] = None) -> List[ConnectionDescriptor]:
        """Connections selectable for a node of the given database type.

        A node without a fixed type may pick any connection.
        """
        if not database_type:
            return self.list()
        return [c for c in self._connections.values() if c.database_type == database_type]

    def clear(self) -> None:
        self._connections.clear()

    def __len__(self) -> int:
        return len(self._connections)


# Global catalog shared by all spaces
connections_catalog = ConnectionsCatalog()
