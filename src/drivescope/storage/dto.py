# storage/dto.py
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"
GOOGLE_DOC_MIME_TYPE = "application/vnd.google-apps.document"

# Fields requested from Drive for every node we hand back to callers.
NODE_FIELDS = "id, name, mimeType, size, modifiedTime, parents, trashed"


class Node(BaseModel):
    """
    A file or folder in the remote store. A node may have several parents,
    so the store is a DAG rather than a tree.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str = ""
    mime_type: str = Field("", alias="mimeType")
    parents: List[str] = Field(default_factory=list)
    trashed: bool = False
    size: Optional[int] = None
    modified_time: Optional[datetime] = Field(None, alias="modifiedTime")

    @property
    def is_folder(self) -> bool:
        return self.mime_type == FOLDER_MIME_TYPE

    @property
    def kind(self) -> str:
        return "folder" if self.is_folder else "file"

    @classmethod
    def from_api(cls, item: dict) -> "Node":
        """Builds a Node from a raw Drive v3 file resource."""
        return cls.model_validate(item)

    def to_api(self) -> dict:
        """Dumps the node using Drive's camelCase field names, plus its kind."""
        data = self.model_dump(by_alias=True, exclude_none=True, mode="json")
        data["kind"] = self.kind
        return data


class ListedNode(BaseModel):
    """A node produced by a scoped listing, tagged with its BFS depth."""

    node: Node
    depth: int

    def to_api(self) -> dict:
        return {**self.node.to_api(), "depth": self.depth}


class BatchDeleteItem(BaseModel):
    """One line of a batch-delete report."""

    id: str
    ok: bool
    reason: Optional[str] = None


class TokenSet(BaseModel):
    """
    OAuth token pair plus the client data google-auth needs to refresh it.
    Stored on disk in the authorized-user JSON format google-auth reads.
    """

    token: Optional[str] = None
    refresh_token: Optional[str] = None
    token_uri: str = "https://oauth2.googleapis.com/token"
    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    scopes: Optional[List[str]] = None
    expiry: Optional[str] = None
