# tests/test_mcp_server.py
"""Tests for the MCP server implementation."""
import json
from unittest.mock import MagicMock, patch

import pytest

from noteshelf.exceptions import InvariantViolationError
from noteshelf.models.schema import User, Visibility
from noteshelf.observability import MetricsCollector
from noteshelf.server.mcp_server import NoteshelfMcpServer
from noteshelf.storage.base import SharedPersister
from noteshelf.storage.memory_persister import InMemoryPersister
from tests.factories import make_draft


class TestMcpServer:
    """Tests for the NoteshelfMcpServer class."""

    def setup_method(self):
        """Set up test environment before each test."""
        # Capture the tool decorator functions when registering
        self.registered_tools = {}

        # Create a mock for FastMCP
        self.mock_mcp = MagicMock()

        # Mock the tool decorator to capture registered functions BEFORE server creation
        def mock_tool_decorator(*args, **kwargs):
            def tool_wrapper(func):
                name = kwargs.get('name')
                self.registered_tools[name] = func
                return func
            return tool_wrapper
        self.mock_mcp.tool = mock_tool_decorator

        self.mcp_patcher = patch('noteshelf.server.mcp_server.FastMCP', return_value=self.mock_mcp)
        self.mcp_patcher.start()

        self.persister = InMemoryPersister()
        self.server = NoteshelfMcpServer(handle=SharedPersister(self.persister))

    def teardown_method(self):
        """Clean up after each test."""
        self.mcp_patcher.stop()

    def test_tools_registered(self):
        assert set(self.registered_tools) == {
            "ns_all_notes",
            "ns_list_notes",
            "ns_tagged_notes",
            "ns_get_note",
            "ns_create_note",
            "ns_update_note",
            "ns_delete_note",
            "ns_list_tags",
            "ns_status",
        }

    def test_default_handle_uses_configured_storage(self):
        with patch('noteshelf.server.mcp_server.create_persister', return_value=InMemoryPersister()) as factory:
            server = NoteshelfMcpServer()
        factory.assert_called_once_with()
        assert server.handle.engine_name == "InMemoryPersister"

    def test_create_note_tool(self):
        result = self.registered_tools['ns_create_note'](
            title="Test Note",
            body="Test body",
            tags="tag1, tag2, tag1",
            visibility="public",
        )
        data = json.loads(result)
        assert data["id"] == 0
        assert data["title"] == "Test Note"
        assert data["user"] == 0
        assert data["visibility"] == "Public"
        assert data["tags"] == [{"id": 0, "label": "tag1"}, {"id": 1, "label": "tag2"}]

    def test_create_note_invalid_visibility(self):
        result = self.registered_tools['ns_create_note'](
            title="Bad", body="b", visibility="secret"
        )
        assert result.startswith("Error 400: Invalid input")
        assert self.persister.note_count() == 0

    def test_create_note_rejects_deleted_visibility(self):
        result = self.registered_tools['ns_create_note'](
            title="Gone", body="b", visibility="deleted"
        )
        assert result.startswith("Error 400: Invalid input")
        assert self.persister.note_count() == 0

    def test_create_note_title_too_long(self):
        result = self.registered_tools['ns_create_note'](title="x" * 501, body="b")
        assert result.startswith("Error 400")

    def test_get_note_tool(self):
        self.persister.add_note(make_draft(title="Stored", body="Body"), User.default())
        data = json.loads(self.registered_tools['ns_get_note'](note_id=0))
        assert data["title"] == "Stored"
        assert data["body"] == "Body"

    def test_get_note_not_found(self):
        result = self.registered_tools['ns_get_note'](note_id=3)
        assert result == "Error 404: Note does not exist"

    def test_get_note_unauthorized(self):
        self.persister.add_note(make_draft(), User(id=5))
        result = self.registered_tools['ns_get_note'](note_id=0)
        assert result == "Error 401: Note belongs to other user"

    def test_update_note_tool(self):
        self.persister.add_note(make_draft(title="old", tags=["a"]), User.default())
        result = self.registered_tools['ns_update_note'](
            note_id=0, title="new", body="changed", visibility="private", tags="b"
        )
        data = json.loads(result)
        assert data["title"] == "new"
        assert data["tags"] == [{"id": 1, "label": "b"}]
        assert self.persister.note(0).title == "new"

    def test_update_requires_visibility(self):
        """Leaving visibility out must not quietly make a public note private."""
        self.persister.add_note(
            make_draft(visibility=Visibility.PUBLIC), User.default()
        )
        with pytest.raises(TypeError):
            self.registered_tools['ns_update_note'](note_id=0, title="t", body="b")
        assert self.persister.note(0).visibility == Visibility.PUBLIC

        result = self.registered_tools['ns_update_note'](
            note_id=0, title="t", body="b", visibility="public"
        )
        assert json.loads(result)["visibility"] == "Public"

    def test_update_missing_note(self):
        result = self.registered_tools['ns_update_note'](
            note_id=0, title="t", body="b", visibility="private"
        )
        assert result == "Error 404: Note does not exist"
        assert self.persister.note_count() == 0

    def test_delete_note_tool(self):
        self.persister.add_note(make_draft(), User.default())
        result = self.registered_tools['ns_delete_note'](note_id=0)
        assert result == "Note deleted successfully: 0"
        assert self.persister.notes() == []

    def test_delete_note_not_found(self):
        assert self.registered_tools['ns_delete_note'](note_id=0).startswith("Error 404")

    def test_list_tools(self):
        self.persister.add_note(make_draft(title="mine", tags=["t"]), User.default())
        self.persister.add_note(make_draft(title="theirs", tags=["u"]), User(id=2))

        mine = json.loads(self.registered_tools['ns_list_notes']())
        everything = json.loads(self.registered_tools['ns_all_notes']())
        tags = json.loads(self.registered_tools['ns_list_tags']())

        assert [n["title"] for n in mine] == ["mine"]
        assert [n["title"] for n in everything] == ["mine", "theirs"]
        assert tags == [{"id": 0, "label": "t"}, {"id": 1, "label": "u"}]

    def test_tagged_notes_tool(self):
        self.persister.add_note(make_draft(title="tagged", tags=["t"]), User.default())
        self.persister.add_note(make_draft(title="other"), User.default())
        data = json.loads(self.registered_tools['ns_tagged_notes'](tag="t"))
        assert [n["title"] for n in data] == ["tagged"]

    def test_tagged_notes_unknown_tag(self):
        result = self.registered_tools['ns_tagged_notes'](tag="nonexistent")
        assert result == "Error 400: Tag does not exist"
        assert self.persister.tags() == []

    def test_status_tool(self):
        collector = MetricsCollector()
        with patch('noteshelf.observability.metrics', collector):
            self.registered_tools['ns_create_note'](title="a", body="b", tags="x")
            self.registered_tools['ns_get_note'](note_id=9)
            report = json.loads(self.registered_tools['ns_status']())

        assert report["server"]["name"]
        assert report["storage"] == {
            "engine": "InMemoryPersister",
            "note_slots": 1,
            "active_notes": 1,
            "tags": 1,
        }
        assert report["metrics"]["calls"] == 3
        assert report["metrics"]["failures"] == 1
        assert "operations" not in report

    def test_status_tool_details(self):
        collector = MetricsCollector()
        with patch('noteshelf.observability.metrics', collector):
            self.registered_tools['ns_list_notes']()
            report = json.loads(self.registered_tools['ns_status'](include_details=True))

        assert report["operations"]["list_notes"]["calls"] == 1
        assert report["operations"]["list_notes"]["failures"] == 0

    def test_format_error_response(self):
        """Test formatting of different error kinds."""
        domain = self.server.format_error_response(
            InvariantViolationError("No note slot at id 4", note_id=4)
        )
        assert domain == "Error 500: No note slot at id 4"

        unexpected = self.server.format_error_response(RuntimeError("/secret/path"))
        assert unexpected.startswith("Error 500: An unexpected error occurred (ref: ")
        assert "/secret/path" not in unexpected

    def test_run(self):
        self.server.run()
        self.mock_mcp.run.assert_called_once()
