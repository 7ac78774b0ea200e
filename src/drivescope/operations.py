# operations.py
import logging
from typing import List, Optional

from .ancestry import AncestryVerifier
from .exceptions import PermanentError, ScopeViolationError, TransientError
from .root import RootResolver
from .search import SearchEngine
from .storage.base import StorageClient
from .storage.dto import (
    FOLDER_MIME_TYPE,
    GOOGLE_DOC_MIME_TYPE,
    BatchDeleteItem,
    ListedNode,
    Node,
)
from .traversal import ScopedTraversal


class ScopedDrive:
    """
    The operations exposed to callers. Every operation resolves the sandbox
    root, verifies each ID it was given, and only then calls the storage
    client. Scope membership is re-checked on every call and never cached.
    """

    def __init__(
        self,
        storage: StorageClient,
        folder_name: str = "Photo_Storage",
        hop_limit: int = 30,
        default_depth: int = 4,
        list_page_size: int = 1000,
        search_page_size: int = 100,
        content_search_page_size: int = 1000,
        root_query_page_size: int = 10,
        max_workers: int = 1,
        strict_root: bool = True,
        deduplicate_listing: bool = True,
    ):
        self.storage = storage
        self.default_depth = default_depth
        self.root_resolver = RootResolver(
            storage, folder_name, strict=strict_root, page_size=root_query_page_size
        )
        self.verifier = AncestryVerifier(storage, hop_limit=hop_limit, max_workers=max_workers)
        self.traversal = ScopedTraversal(
            storage,
            self.root_resolver,
            self.verifier,
            page_size=list_page_size,
            max_workers=max_workers,
            deduplicate=deduplicate_listing,
        )
        self.search_engine = SearchEngine(
            storage,
            self.root_resolver,
            self.verifier,
            name_page_size=search_page_size,
            content_page_size=content_search_page_size,
        )

    @classmethod
    def from_settings(cls, storage: StorageClient, settings) -> "ScopedDrive":
        return cls(
            storage,
            folder_name=settings.DRIVE_FOLDER_NAME,
            hop_limit=settings.ANCESTRY_HOP_LIMIT,
            default_depth=settings.DEFAULT_LIST_DEPTH,
            list_page_size=settings.LIST_PAGE_SIZE,
            search_page_size=settings.SEARCH_PAGE_SIZE,
            content_search_page_size=settings.CONTENT_SEARCH_PAGE_SIZE,
            root_query_page_size=settings.ROOT_QUERY_PAGE_SIZE,
            max_workers=settings.MAX_CONCURRENT_FETCHES,
            strict_root=settings.STRICT_ROOT_RESOLUTION,
            deduplicate_listing=settings.DEDUPLICATE_LISTING,
        )

    def resolve_root(self) -> str:
        return self.root_resolver.resolve()

    def is_in_scope(self, node_id: str, root_id: Optional[str] = None) -> bool:
        return self.verifier.is_descendant(node_id, root_id or self.resolve_root())

    def _require_in_scope(self, node_id: str, root_id: str, message: str = "Not allowed"):
        if not self.verifier.is_descendant(node_id, root_id):
            logging.warning(f"Denied access to '{node_id}': outside the sandbox folder.")
            raise ScopeViolationError(node_id, message)

    # --- Reads ---

    def list_scoped(
        self, parent_id: Optional[str] = None, depth: Optional[int] = None
    ) -> List[ListedNode]:
        if depth is None:
            depth = self.default_depth
        return self.traversal.list_scoped(parent_id, depth)

    def search_scoped(self, query: str, include_content: bool = False) -> List[Node]:
        return self.search_engine.search_scoped(query, include_content)

    def get_metadata(self, node_id: str) -> Node:
        self._require_in_scope(node_id, self.resolve_root())
        return self.storage.get_metadata(node_id)

    def read_file(self, node_id: str) -> str:
        """
        Returns a file's content as text. Google Docs are exported as plain
        text; anything else is downloaded and decoded as UTF-8.
        """
        self._require_in_scope(node_id, self.resolve_root())
        meta = self.storage.get_metadata(node_id, fields="id, name, mimeType")
        if meta.mime_type == GOOGLE_DOC_MIME_TYPE:
            return self.storage.export_as_text(node_id, "text/plain")
        return self.storage.download_bytes(node_id).decode("utf-8", errors="replace")

    # --- Mutations ---

    def create_folder(self, name: str, parent_id: Optional[str] = None) -> Node:
        if not name:
            raise ValueError("Missing name")
        root_id = self.resolve_root()
        parent_id = parent_id or root_id
        self._require_in_scope(parent_id, root_id, "Parent not allowed")
        return self.storage.create_node(
            {"name": name, "mimeType": FOLDER_MIME_TYPE, "parents": [parent_id]}
        )

    def upload_file(
        self,
        name: Optional[str] = None,
        content: Optional[bytes] = None,
        mime_type: Optional[str] = None,
        parent_id: Optional[str] = None,
        file_id: Optional[str] = None,
    ) -> Node:
        """
        Creates a file under ``parent_id`` (the sandbox root by default), or,
        when ``file_id`` is given, updates that file's name, type and body.
        New files default to text/markdown.
        """
        if not name and not file_id:
            raise ValueError("Missing name or fileId")
        root_id = self.resolve_root()
        parent_id = parent_id or root_id
        self._require_in_scope(parent_id, root_id, "Parent not allowed")

        if file_id:
            self._require_in_scope(file_id, root_id, "Target not allowed")
            patch = {}
            if name:
                patch["name"] = name
            if mime_type:
                patch["mimeType"] = mime_type
            return self.storage.update_node(
                file_id, patch, content, mime_type or "application/octet-stream"
            )

        mime_type = mime_type or "text/markdown"
        return self.storage.create_node(
            {"name": name, "parents": [parent_id], "mimeType": mime_type},
            content,
            mime_type,
        )

    def move(self, node_id: str, new_parent_id: str) -> Node:
        """
        Moves an item so that ``new_parent_id`` becomes its only parent.
        Reading the current parents and writing the new ones are two separate
        remote calls.
        """
        root_id = self.resolve_root()
        self._require_in_scope(node_id, root_id)
        self._require_in_scope(new_parent_id, root_id)
        current = self.storage.get_metadata(node_id, fields="id, parents").parents
        return self.storage.set_parents(
            node_id,
            add=[new_parent_id],
            remove=[parent for parent in current if parent != new_parent_id],
        )

    def rename(self, node_id: str, new_name: str) -> Node:
        if not new_name:
            raise ValueError("Missing newName")
        self._require_in_scope(node_id, self.resolve_root())
        return self.storage.update_node(node_id, {"name": new_name})

    def delete(self, node_id: str) -> str:
        self._require_in_scope(node_id, self.resolve_root())
        self.storage.delete_node(node_id)
        return node_id

    def batch_delete(self, ids: List[str]) -> List[BatchDeleteItem]:
        """
        Deletes each ID independently. A failure is recorded in the report
        and does not stop or undo the other deletions.
        """
        if not ids:
            raise ValueError("Missing ids array")
        root_id = self.resolve_root()
        report = []
        for node_id in ids:
            try:
                if not self.verifier.is_descendant(node_id, root_id):
                    report.append(BatchDeleteItem(id=node_id, ok=False, reason="not allowed"))
                    continue
                self.storage.delete_node(node_id)
                report.append(BatchDeleteItem(id=node_id, ok=True))
            except (PermanentError, TransientError) as e:
                logging.error(f"Batch delete of '{node_id}' failed: {e}")
                report.append(BatchDeleteItem(id=node_id, ok=False, reason=str(e)))
        return report
