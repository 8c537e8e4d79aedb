"""
Tests for space persistence and per-space sessions.
"""

import shutil
import sys
import tempfile
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from api.app_config import load_settings
from api.flow.models import NodeRole
from api.flow.repository import GraphRepository, dump_document, load_document
from api.flow.session import SpaceSessionManager


@pytest.fixture
def temp_dir():
    """Create a temporary spaces directory."""
    path = tempfile.mkdtemp(prefix="dmp_test_")
    yield Path(path)
    shutil.rmtree(path, ignore_errors=True)


@pytest.fixture
def repository(temp_dir):
    return GraphRepository(temp_dir / "spaces")


class TestGraphRepository:
    def test_missing_space_loads_none(self, repository):
        assert repository.load("nope") is None
        assert repository.exists("nope") is False

    def test_save_and_load(self, repository):
        repository.save("sales/eu", {"nodes": [], "edges": []})
        document = repository.load("sales/eu")

        assert document["space"] == "sales/eu"
        assert "saved_at" in document
        assert repository.list_spaces() == ["sales/eu"]

    def test_corrupt_file_loads_none(self, repository):
        repository.spaces_dir.mkdir(parents=True)
        (repository.spaces_dir / "broken.json").write_text("{not json", encoding="utf-8")
        assert repository.load("broken") is None

    def test_delete(self, repository):
        repository.save("a", {"nodes": []})
        assert repository.delete("a") is True
        assert repository.delete("a") is False


class TestDocumentFormats:
    def test_yaml_roundtrip(self):
        document = {"nodes": [{"id": "n1", "role": "source"}], "edges": []}
        assert load_document(dump_document(document, "yaml"), "yaml") == document

    def test_invalid_content(self):
        with pytest.raises(ValueError, match="Invalid json"):
            load_document("{", "json")

    def test_non_mapping_rejected(self):
        with pytest.raises(ValueError, match="mapping"):
            load_document("- a\n- b\n", "yaml")

    def test_unsupported_format(self):
        with pytest.raises(ValueError, match="Unsupported format"):
            dump_document({}, "xml")


class TestSpaceSessionManager:
    def test_sessions_are_per_space(self, connections):
        manager = SpaceSessionManager(connections=connections)
        manager.get("a").store.create_node(NodeRole.SOURCE)

        assert len(manager.get("a").store.nodes) == 1
        assert manager.get("b").store.nodes == []

    def test_persisted_space_is_restored(self, connections, repository):
        manager = SpaceSessionManager(connections=connections, repository=repository)
        session = manager.get("crm")
        a = session.store.create_node(NodeRole.SOURCE, connection_id="pg-crm")
        b = session.store.create_node(NodeRole.DESTINATION)
        session.store.connect(a, b)
        session.add_template("pg-crm", "public", "customers")
        manager.save("crm")

        fresh = SpaceSessionManager(connections=connections, repository=repository)
        restored = fresh.get("crm")

        assert len(restored.store.nodes) == 2
        assert len(restored.store.edges) == 1
        assert restored.templates[0].table == "customers"

    def test_reset_forgets_space(self, connections, repository):
        manager = SpaceSessionManager(connections=connections, repository=repository)
        manager.get("crm").store.create_node(NodeRole.SOURCE)
        manager.save("crm")
        manager.reset("crm")

        assert manager.get("crm").store.nodes == []
        assert repository.exists("crm") is False

    def test_malformed_stored_space_starts_empty(self, connections, repository):
        repository.save("broken", {"nodes": [{"role": "source"}], "edges": []})

        manager = SpaceSessionManager(connections=connections, repository=repository)
        session = manager.get("broken")

        assert session.store.nodes == []
        assert session.templates == []
        assert manager.get("broken") is session

    def test_bad_template_leaves_session_untouched(self, connections):
        session = SpaceSessionManager(connections=connections).get("s")
        session.store.create_node(NodeRole.SOURCE, connection_id="pg-crm")
        session.add_template("pg-crm", "public", "customers")
        before = session.to_document()

        with pytest.raises(KeyError):
            session.load_document({"nodes": [], "templates": [{"table": "orders"}]})

        assert session.to_document() == before

    def test_non_mapping_document_rejected(self, connections):
        session = SpaceSessionManager(connections=connections).get("s")
        with pytest.raises(ValueError, match="mapping"):
            session.load_document(["nodes"])

    def test_template_requires_all_fields(self, connections):
        session = SpaceSessionManager(connections=connections).get("s")
        with pytest.raises(ValueError, match="required"):
            session.add_template("pg-crm", "public", " ")


class TestSettings:
    def test_env_overrides_file(self, temp_dir, monkeypatch):
        (temp_dir / "app_settings.json").write_text(
            '{"base_path": "/from-file", "port": 9000}', encoding="utf-8"
        )
        monkeypatch.setenv("DMP_PERSIST", "yes")
        monkeypatch.setenv("DMP_PORT", "8123")
        monkeypatch.delenv("DMP_BASE_PATH", raising=False)

        settings = load_settings(temp_dir)

        assert settings.base_path == "/from-file"
        assert settings.persist_graphs is True
        assert settings.port == 8123
        assert settings.spaces_dir == temp_dir / "spaces"
