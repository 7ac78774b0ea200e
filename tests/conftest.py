# tests/conftest.py
import pytest
from unittest.mock import MagicMock
from pathlib import Path
from typing import Dict, List, Optional

# Imported before the autouse patch below replaces the class, so config tests
# still get the real Settings.
from drivescope.config import Settings, get_settings
from drivescope.exceptions import NodeNotFoundError, PermanentError, TransientError
from drivescope.storage.base import StorageClient
from drivescope.storage.dto import FOLDER_MIME_TYPE, GOOGLE_DOC_MIME_TYPE, Node

ROOT_ID = "root-id"
ROOT_NAME = "Photo_Storage"


class FakeStorage(StorageClient):
    """
    In-memory StorageClient over a dict of nodes. Nodes are returned in
    insertion order, which stands in for the order Drive returns them in.
    """

    def __init__(self):
        self.nodes: Dict[str, Node] = {}
        self.contents: Dict[str, bytes] = {}
        self.failing_ids = set()
        self.metadata_calls: List[str] = []
        self.deleted: List[str] = []
        self._counter = 0

    # --- Test helpers ---

    def add(
        self,
        node_id: str,
        name: Optional[str] = None,
        parents=(),
        mime_type: str = "text/plain",
        trashed: bool = False,
        content: Optional[bytes] = None,
    ) -> Node:
        node = Node(
            id=node_id,
            name=name or node_id,
            mime_type=mime_type,
            parents=list(parents),
            trashed=trashed,
        )
        self.nodes[node_id] = node
        if content is not None:
            self.contents[node_id] = content
        return node

    def add_folder(self, node_id: str, name: Optional[str] = None, parents=(), trashed=False) -> Node:
        return self.add(node_id, name, parents, FOLDER_MIME_TYPE, trashed)

    def _get(self, node_id: str) -> Node:
        if node_id in self.failing_ids:
            raise TransientError(f"Simulated network failure for '{node_id}'")
        if node_id not in self.nodes:
            raise NodeNotFoundError(node_id)
        return self.nodes[node_id]

    def _live(self) -> List[Node]:
        return [node for node in self.nodes.values() if not node.trashed]

    # --- StorageClient ---

    def list_children(self, parent_id, page_size=1000):
        return [node for node in self._live() if parent_id in node.parents][:page_size]

    def get_metadata(self, node_id, fields="*"):
        self.metadata_calls.append(node_id)
        return self._get(node_id).model_copy(deep=True)

    def create_node(self, metadata, content=None, mime_type=None):
        self._counter += 1
        node = self.add(
            f"new-{self._counter}",
            metadata["name"],
            metadata.get("parents", []),
            metadata.get("mimeType", mime_type or ""),
            content=content,
        )
        return node.model_copy(deep=True)

    def update_node(self, node_id, patch, content=None, mime_type=None):
        node = self._get(node_id)
        if "name" in patch:
            node.name = patch["name"]
        if "mimeType" in patch:
            node.mime_type = patch["mimeType"]
        if content is not None:
            self.contents[node_id] = content
        return node.model_copy(deep=True)

    def delete_node(self, node_id):
        self._get(node_id)
        del self.nodes[node_id]
        self.deleted.append(node_id)

    def export_as_text(self, node_id, mime_type="text/plain"):
        node = self._get(node_id)
        if node.mime_type != GOOGLE_DOC_MIME_TYPE:
            raise PermanentError(f"'{node_id}' cannot be exported")
        return self.contents.get(node_id, b"").decode("utf-8")

    def download_bytes(self, node_id):
        node = self._get(node_id)
        if node.is_folder or node.mime_type == GOOGLE_DOC_MIME_TYPE:
            raise PermanentError(f"'{node_id}' has no downloadable content")
        return self.contents.get(node_id, b"")

    def set_parents(self, node_id, add, remove):
        node = self._get(node_id)
        node.parents = [parent for parent in node.parents if parent not in remove] + [
            parent for parent in add if parent not in node.parents
        ]
        return node.model_copy(deep=True)

    def query_by_name_substring(self, text, page_size=100):
        # Drive's "name contains" is case-insensitive.
        return [node for node in self._live() if text.lower() in node.name.lower()][:page_size]

    def query_all(self, page_size=1000):
        return self._live()[:page_size]

    def find_folders_by_name(self, name, page_size=10):
        return [node for node in self._live() if node.is_folder and node.name == name][:page_size]


@pytest.fixture
def empty_storage():
    """A FakeStorage with no nodes at all, not even the sandbox root."""
    return FakeStorage()


@pytest.fixture
def storage(empty_storage):
    """
    A FakeStorage holding only the sandbox root ("root-id", named
    "Photo_Storage"), which sits in "My Drive" (an ID the store itself
    does not know, just like Drive's real root).
    """
    empty_storage.add_folder(ROOT_ID, ROOT_NAME, parents=["my-drive"])
    return empty_storage


@pytest.fixture
def mock_settings():
    """
    Provides a mock of the application settings for testing.
    This avoids the need for environment variables during tests.
    """
    settings = MagicMock(spec=Settings)
    settings.GOOGLE_CLIENT_ID = "test_client_id"
    settings.GOOGLE_CLIENT_SECRET = "test_client_secret"
    settings.OAUTH_REDIRECT_URI = "http://localhost:10000/oauth2callback"
    settings.TOKEN_FILE = "tokens.json"
    settings.DRIVE_FOLDER_NAME = ROOT_NAME
    settings.LOG_LEVEL = "INFO"
    settings.ANCESTRY_HOP_LIMIT = 30
    settings.DEFAULT_LIST_DEPTH = 4
    settings.LIST_PAGE_SIZE = 1000
    settings.SEARCH_PAGE_SIZE = 100
    settings.CONTENT_SEARCH_PAGE_SIZE = 1000
    settings.ROOT_QUERY_PAGE_SIZE = 10
    settings.MAX_CONCURRENT_FETCHES = 1
    settings.STRICT_ROOT_RESOLUTION = True
    settings.DEDUPLICATE_LISTING = True
    settings.BASE_DIR = Path("/tmp")
    settings.TOKEN_PATH = Path("/tmp/tokens.json")
    settings.LOG_FILE = Path("/tmp/app.log")
    return settings


@pytest.fixture(autouse=True)
def patch_settings_class(monkeypatch, mock_settings):
    """
    This autouse fixture automatically replaces the `Settings` class constructor.
    Any part of the app code that calls `Settings()` during a test run will
    receive the `mock_settings` instance instead of a real settings object.
    """
    # get_settings might have cached a real instance during collection.
    get_settings.cache_clear()
    monkeypatch.setattr("drivescope.config.Settings", lambda *args, **kwargs: mock_settings)
    yield
    get_settings.cache_clear()
