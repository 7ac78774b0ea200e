"""
drivescope MCP server

Exposes the sandboxed Drive operations as MCP tools over stdio. Every tool
goes through ScopedDrive, so nothing outside the sandbox folder can be read
or changed.

Tool handlers are plain functions taking the ScopedDrive as first argument;
create_server() binds them to a FastMCP instance.
"""

import base64
import json
from typing import Any, Callable, List, Optional

from mcp.server.fastmcp import FastMCP
from mcp.server.fastmcp.exceptions import ToolError

from .exceptions import PermanentError, TransientError
from .operations import ScopedDrive


def list_files(
    drive: ScopedDrive, parent_id: Optional[str] = None, depth: Optional[int] = None
) -> dict:
    return {"files": [item.to_api() for item in drive.list_scoped(parent_id, depth)]}


def create_folder(drive: ScopedDrive, name: str, parent_id: Optional[str] = None) -> dict:
    return {"folder": drive.create_folder(name, parent_id).to_api()}


def upload_file(
    drive: ScopedDrive,
    name: Optional[str] = None,
    content: Optional[str] = None,
    mime_type: Optional[str] = None,
    parent_id: Optional[str] = None,
    file_id: Optional[str] = None,
) -> dict:
    # Content travels base64-encoded so binary files survive JSON transport.
    body = base64.b64decode(content, validate=True) if content else None
    node = drive.upload_file(name, body, mime_type, parent_id, file_id)
    return {"updated" if file_id else "created": node.to_api()}


def read_file(drive: ScopedDrive, file_id: str) -> str:
    return drive.read_file(file_id)


def get_metadata(drive: ScopedDrive, file_id: str) -> dict:
    return drive.get_metadata(file_id).to_api()


def search_files(drive: ScopedDrive, query: str, content_search: bool = False) -> dict:
    return {"files": [node.to_api() for node in drive.search_scoped(query, content_search)]}


def move_item(drive: ScopedDrive, item_id: str, new_parent_id: str) -> dict:
    return {"moved": drive.move(item_id, new_parent_id).to_api()}


def rename_item(drive: ScopedDrive, item_id: str, new_name: str) -> dict:
    return {"renamed": drive.rename(item_id, new_name).to_api()}


def delete_item(drive: ScopedDrive, item_id: str) -> dict:
    return {"deleted": drive.delete(item_id)}


def batch_delete(drive: ScopedDrive, ids: List[str]) -> dict:
    return {"results": [item.model_dump(exclude_none=True) for item in drive.batch_delete(ids)]}


def run_tool(handler: Callable[..., Any], drive: ScopedDrive, **kwargs) -> str:
    """
    Runs a tool handler and renders its result as text. Domain errors become
    MCP tool errors so the client sees them as failed calls.
    """
    try:
        result = handler(drive, **kwargs)
    except (PermanentError, TransientError, ValueError) as e:
        raise ToolError(f"Error: {e}") from e
    if isinstance(result, str):
        return result
    return json.dumps(result, indent=2)


def create_server(drive: ScopedDrive, name: str = "drivescope") -> FastMCP:
    """Create the MCP server with one tool per sandboxed operation."""
    mcp = FastMCP(name)

    @mcp.tool(name="list_files")
    def list_files_tool(parent_id: Optional[str] = None, depth: Optional[int] = None) -> str:
        """
        List files and folders inside the sandbox folder, breadth-first.

        Args:
            parent_id: Folder to start from (defaults to the sandbox root)
            depth: How many folder levels to descend (default 4)
        """
        return run_tool(list_files, drive, parent_id=parent_id, depth=depth)

    @mcp.tool(name="create_folder")
    def create_folder_tool(name: str, parent_id: Optional[str] = None) -> str:
        """Create a new folder inside the sandbox folder."""
        return run_tool(create_folder, drive, name=name, parent_id=parent_id)

    @mcp.tool(name="upload_file")
    def upload_file_tool(
        name: Optional[str] = None,
        content: Optional[str] = None,
        mime_type: Optional[str] = None,
        parent_id: Optional[str] = None,
        file_id: Optional[str] = None,
    ) -> str:
        """
        Upload a new file, or update an existing one when file_id is given.

        Args:
            name: File name
            content: Base64 encoded content
            mime_type: MIME type (new files default to text/markdown)
            parent_id: Parent folder ID (defaults to the sandbox root)
            file_id: ID of the file to update
        """
        return run_tool(
            upload_file,
            drive,
            name=name,
            content=content,
            mime_type=mime_type,
            parent_id=parent_id,
            file_id=file_id,
        )

    @mcp.tool(name="read_file")
    def read_file_tool(file_id: str) -> str:
        """Read a file's content as text. Google Docs are exported as plain text."""
        return run_tool(read_file, drive, file_id=file_id)

    @mcp.tool(name="get_metadata")
    def get_metadata_tool(file_id: str) -> str:
        """Get the metadata of a file or folder."""
        return run_tool(get_metadata, drive, file_id=file_id)

    @mcp.tool(name="search_files")
    def search_files_tool(query: str, content_search: bool = False) -> str:
        """
        Search files by name, and optionally by text content.

        Args:
            query: Text to look for
            content_search: Also search inside text files and Google Docs
        """
        return run_tool(search_files, drive, query=query, content_search=content_search)

    @mcp.tool(name="move_item")
    def move_item_tool(item_id: str, new_parent_id: str) -> str:
        """Move a file or folder to a new parent folder."""
        return run_tool(move_item, drive, item_id=item_id, new_parent_id=new_parent_id)

    @mcp.tool(name="rename_item")
    def rename_item_tool(item_id: str, new_name: str) -> str:
        """Rename a file or folder."""
        return run_tool(rename_item, drive, item_id=item_id, new_name=new_name)

    @mcp.tool(name="delete_item")
    def delete_item_tool(item_id: str) -> str:
        """Permanently delete a file or folder."""
        return run_tool(delete_item, drive, item_id=item_id)

    @mcp.tool(name="batch_delete")
    def batch_delete_tool(ids: List[str]) -> str:
        """Delete several items; returns a per-item report."""
        return run_tool(batch_delete, drive, ids=ids)

    return mcp
