"""MCP server implementation for noteshelf."""

import json
import logging
import uuid
from typing import List, Optional

from mcp.server.fastmcp import FastMCP
from pydantic import BaseModel

from noteshelf import observability
from noteshelf.config import config
from noteshelf.exceptions import NoteshelfError
from noteshelf.models.schema import Draft, Visibility
from noteshelf.services.note_service import NoteService
from noteshelf.storage import SharedPersister, create_persister

logger = logging.getLogger(__name__)

MAX_TITLE_LENGTH = 500
MAX_BODY_LENGTH = 1_000_000  # 1 MB


def _validate_input_lengths(title: Optional[str] = None, body: Optional[str] = None) -> None:
    """Validate input string lengths at the MCP boundary."""
    if title and len(title) > MAX_TITLE_LENGTH:
        raise ValueError(f"Title exceeds maximum length of {MAX_TITLE_LENGTH} characters")
    if body and len(body) > MAX_BODY_LENGTH:
        raise ValueError(f"Body exceeds maximum length of {MAX_BODY_LENGTH} characters")


def _split_labels(tags: Optional[str]) -> List[str]:
    """Split a comma-separated tag string into labels, keeping their case."""
    if not tags:
        return []
    return [label.strip() for label in tags.split(",") if label.strip()]


def _to_json(value) -> str:
    """Serialize a model or a list of models to JSON text."""
    if isinstance(value, BaseModel):
        return value.model_dump_json()
    return json.dumps([item.model_dump(mode="json") for item in value])


def _build_draft(title: str, body: str, tags: Optional[str], visibility: str) -> Draft:
    _validate_input_lengths(title=title, body=body)
    if visibility.lower() not in ("private", "public"):
        raise ValueError(f"Visibility must be private or public, got {visibility!r}")
    return Draft(
        title=title,
        body=body,
        tags=_split_labels(tags),
        visibility=Visibility(visibility.capitalize()),
    )


class NoteshelfMcpServer:
    """MCP server for noteshelf."""

    def __init__(self, handle: Optional[SharedPersister] = None):
        """Initialize the MCP server.

        Args:
            handle: Shared persister the tools operate on. When None, a
                    persister for config.storage_backend is created.
        """
        self.mcp = FastMCP(config.server_name)
        if handle is None:
            handle = SharedPersister(create_persister())
        self.handle = handle
        self.note_service = NoteService(handle)
        self.initialize()
        self._register_tools()

    def initialize(self) -> None:
        """Initialize services."""
        logger.info(
            f"noteshelf MCP server {config.server_version} initialized "
            f"(storage: {self.handle.engine_name})"
        )

    def format_error_response(self, error: Exception) -> str:
        """Format an error response in a consistent way.

        Domain errors carry the status code a transport should answer with.

        Args:
            error: The exception that occurred

        Returns:
            Formatted error message with appropriate level of detail
        """
        # Generate a unique error ID for traceability in logs
        error_id = str(uuid.uuid4())[:8]

        if isinstance(error, NoteshelfError):
            logger.warning(
                f"[{error.code.name}] [{error_id}]: {error.message}",
                extra={"error_details": error.details},
            )
            return f"Error {error.status_code}: {error.message}"
        elif isinstance(error, ValueError):
            # Log full detail but return generic ref to avoid leaking internals
            logger.error(f"Validation error [{error_id}]: {str(error)}")
            return f"Error 400: Invalid input (ref: {error_id})"
        else:
            # Unexpected errors - log with full stack trace but return generic message
            logger.error(f"Unexpected error [{error_id}]: {str(error)}", exc_info=True)
            return f"Error 500: An unexpected error occurred (ref: {error_id})"

    def _register_tools(self) -> None:
        """Register MCP tools."""

        @self.mcp.tool(name="ns_all_notes")
        def ns_all_notes() -> str:
            """List every active note of every user (debugging aid).
            Returns:
                JSON list of notes.
            """
            logger.info("ns_all_notes")
            try:
                return _to_json(self.note_service.all_notes())
            except Exception as e:
                return self.format_error_response(e)

        @self.mcp.tool(name="ns_list_notes")
        def ns_list_notes() -> str:
            """List your notes.
            Returns:
                JSON list of notes.
            """
            logger.info("ns_list_notes")
            try:
                return _to_json(self.note_service.list_notes())
            except Exception as e:
                return self.format_error_response(e)

        @self.mcp.tool(name="ns_tagged_notes")
        def ns_tagged_notes(tag: str) -> str:
            """List your notes carrying a tag.
            Args:
                tag: Exact, case-sensitive tag label
            Returns:
                JSON list of notes, or an error if the tag does not exist.
            """
            logger.info(f"ns_tagged_notes {tag}")
            try:
                return _to_json(self.note_service.tagged_notes(tag))
            except Exception as e:
                return self.format_error_response(e)

        @self.mcp.tool(name="ns_get_note")
        def ns_get_note(note_id: int) -> str:
            """Retrieve one of your notes.
            Args:
                note_id: The ID of the note
            """
            logger.info(f"ns_get_note {note_id}")
            try:
                return _to_json(self.note_service.get_note(note_id))
            except Exception as e:
                return self.format_error_response(e)

        @self.mcp.tool(name="ns_create_note")
        def ns_create_note(
            title: str,
            body: str,
            tags: Optional[str] = None,
            visibility: str = "private",
        ) -> str:
            """Create a new note.
            Args:
                title: The title of the note
                body: The body text of the note
                tags: Comma-separated list of tag labels (optional)
                visibility: private or public
            """
            logger.info(f"ns_create_note {title[:30]}")
            try:
                draft = _build_draft(title, body, tags, visibility)
                return _to_json(self.note_service.create_note(draft))
            except Exception as e:
                return self.format_error_response(e)

        @self.mcp.tool(name="ns_update_note")
        def ns_update_note(
            note_id: int,
            title: str,
            body: str,
            visibility: str,
            tags: Optional[str] = None,
        ) -> str:
            """Replace the content of one of your notes.
            Title, body, tags and visibility are all replaced; the owner is kept.
            Args:
                note_id: The ID of the note to update
                title: New title
                body: New body text
                visibility: private or public (required, so a public note is
                    never made private by omission)
                tags: Comma-separated list of tag labels (optional)
            """
            logger.info(f"ns_update_note {note_id}")
            try:
                draft = _build_draft(title, body, tags, visibility)
                return _to_json(self.note_service.update_note(note_id, draft))
            except Exception as e:
                return self.format_error_response(e)

        @self.mcp.tool(name="ns_delete_note")
        def ns_delete_note(note_id: int) -> str:
            """Delete one of your notes.
            Args:
                note_id: The ID of the note to delete
            """
            logger.info(f"ns_delete_note {note_id}")
            try:
                self.note_service.delete_note(note_id)
                return f"Note deleted successfully: {note_id}"
            except Exception as e:
                return self.format_error_response(e)

        @self.mcp.tool(name="ns_list_tags")
        def ns_list_tags() -> str:
            """List every tag.
            Returns:
                JSON list of tags.
            """
            logger.info("ns_list_tags")
            try:
                return _to_json(self.note_service.list_tags())
            except Exception as e:
                return self.format_error_response(e)

        @self.mcp.tool(name="ns_status")
        def ns_status(include_details: bool = False) -> str:
            """Report storage contents and service call metrics.
            Args:
                include_details: Add per-operation timings (default: False)
            Returns:
                JSON object with "server", "storage" and "metrics" sections.
            """
            logger.info("ns_status")
            try:
                report = {
                    "server": {"name": config.server_name, "version": config.server_version},
                    "storage": self.note_service.storage_stats(),
                    "metrics": observability.metrics.summary(),
                }
                if include_details:
                    report["operations"] = observability.metrics.operations()
                return json.dumps(report)
            except Exception as e:
                return self.format_error_response(e)

    def run(self) -> None:
        """Run the MCP server."""
        self.mcp.run()
