"""
File persistence for space graphs.

Each space is stored as one JSON document under ``<config_dir>/spaces/``.
Documents can also be exported and imported as YAML.
"""

import json
import re
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from ..shared.logger import get_logger

logger = get_logger(__name__)

SUPPORTED_FORMATS = ("json", "yaml")


def _safe_name(slug: str) -> str:
    return re.sub(r"[^A-Za-z0-9._-]", "_", slug) or "_"


class GraphRepository:
    """Reads and writes space documents in a folder."""

    def __init__(self, spaces_dir: Path):
        self.spaces_dir = Path(spaces_dir)

    def _path(self, slug: str) -> Path:
        return self.spaces_dir / f"{_safe_name(slug)}.json"

    def exists(self, slug: str) -> bool:
        return self._path(slug).exists()

    def load(self, slug: str) -> Optional[Dict[str, Any]]:
        """Load a space document, or None when missing or unreadable."""
        path = self._path(slug)
        if not path.exists():
            return None
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error("Failed to load space %s from %s: %s", slug, path, e)
            return None

    def save(self, slug: str, document: Dict[str, Any]) -> None:
        self.spaces_dir.mkdir(parents=True, exist_ok=True)
        data = dict(document)
        data["space"] = slug
        data["saved_at"] = datetime.now().isoformat()
        path = self._path(slug)
        tmp_path = path.with_suffix(".json.tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
        tmp_path.replace(path)

    def delete(self, slug: str) -> bool:
        path = self._path(slug)
        if not path.exists():
            return False
        path.unlink()
        return True

    def list_spaces(self) -> List[str]:
        """Slugs of every stored space (file names are sanitized, the slug is not)."""
        if not self.spaces_dir.exists():
            return []
        slugs = []
        for path in sorted(self.spaces_dir.glob("*.json")):
            try:
                with open(path, "r", encoding="utf-8") as f:
                    slugs.append(json.load(f).get("space") or path.stem)
            except (OSError, json.JSONDecodeError, AttributeError) as e:
                logger.warning("Skipping unreadable space file %s: %s", path, e)
        return sorted(slugs)


def dump_document(document: Dict[str, Any], fmt: str = "json") -> str:
    """Serialize a space document for export."""
    if fmt == "yaml":
        return yaml.safe_dump(document, sort_keys=False, allow_unicode=True)
    if fmt == "json":
        return json.dumps(document, indent=2)
    raise ValueError(f"Unsupported format: {fmt}")


def load_document(content: str, fmt: str = "json") -> Dict[str, Any]:
    """Parse an exported space document.

    Raises:
        ValueError: If the content cannot be parsed or is not a mapping
    """
    try:
        if fmt == "yaml":
            data = yaml.safe_load(content)
        elif fmt == "json":
            data = json.loads(content)
        else:
            raise ValueError(f"Unsupported format: {fmt}")
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        raise ValueError(f"Invalid {fmt} document: {e}") from e

    if not isinstance(data, dict):
        raise ValueError("Space document must be a mapping with nodes and edges")
    return data
