# storage/base.py
from abc import ABC, abstractmethod
from typing import List, Optional

from .dto import Node, NODE_FIELDS


class StorageClient(ABC):
    """
    Abstract base class for a hierarchical remote store.
    Defines only the capabilities the sandbox core needs; scope checks are
    never done here, they live in the layers built on top of this interface.
    """

    @abstractmethod
    def list_children(self, parent_id: str, page_size: int = 1000) -> List[Node]:
        """
        Lists the non-trashed direct children of a folder (one page).

        :param parent_id: The ID of the folder to list.
        :param page_size: Maximum number of children returned.
        :return: Children in the order the store returns them.
        """
        pass

    @abstractmethod
    def get_metadata(self, node_id: str, fields: str = NODE_FIELDS) -> Node:
        """
        Fetches the metadata of a single node.

        :param node_id: The ID of the file or folder.
        :param fields: Which fields to request from the store.
        :raises NodeNotFoundError: If the ID does not exist.
        """
        pass

    @abstractmethod
    def create_node(
        self,
        metadata: dict,
        content: Optional[bytes] = None,
        mime_type: Optional[str] = None,
    ) -> Node:
        """
        Creates a file or folder.

        :param metadata: Drive-style body (name, mimeType, parents).
        :param content: Optional file body.
        :param mime_type: MIME type of the body.
        """
        pass

    @abstractmethod
    def update_node(
        self,
        node_id: str,
        patch: dict,
        content: Optional[bytes] = None,
        mime_type: Optional[str] = None,
    ) -> Node:
        """
        Updates metadata and, optionally, the body of an existing node.
        """
        pass

    @abstractmethod
    def delete_node(self, node_id: str):
        """
        Permanently deletes a node.
        """
        pass

    @abstractmethod
    def export_as_text(self, node_id: str, mime_type: str = "text/plain") -> str:
        """
        Exports a native document (e.g. a Google Doc) to text.
        """
        pass

    @abstractmethod
    def download_bytes(self, node_id: str) -> bytes:
        """
        Downloads the raw body of a file.
        """
        pass

    @abstractmethod
    def set_parents(
        self, node_id: str, add: List[str], remove: List[str]
    ) -> Node:
        """
        Adds and removes parent links of a node in a single update.
        """
        pass

    @abstractmethod
    def query_by_name_substring(self, text: str, page_size: int = 100) -> List[Node]:
        """
        Finds non-trashed nodes whose name contains ``text``.
        """
        pass

    @abstractmethod
    def query_all(self, page_size: int = 1000) -> List[Node]:
        """
        Lists non-trashed nodes across the whole store (one page).
        """
        pass

    @abstractmethod
    def find_folders_by_name(self, name: str, page_size: int = 10) -> List[Node]:
        """
        Finds non-trashed folders named exactly ``name``, anywhere in the store.
        """
        pass
