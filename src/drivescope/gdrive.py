# gdrive.py
import io
import logging
import threading
from typing import List, Optional

from google.auth.exceptions import RefreshError, TransportError
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from googleapiclient.http import MediaIoBaseDownload, MediaIoBaseUpload

from .exceptions import (
    AuthenticationRequiredError,
    NodeNotFoundError,
    PermanentError,
    TransientError,
)
from .gdrive_auth import CredentialProvider
from .storage.base import StorageClient
from .storage.dto import FOLDER_MIME_TYPE, NODE_FIELDS, Node


def escape_query_value(value: str) -> str:
    """Escapes a literal for use inside single quotes in a Drive query."""
    return value.replace("\\", "\\\\").replace("'", "\\'")


class GoogleDriveClient(StorageClient):
    """
    Client for interacting with the Google Drive API, implementing the StorageClient interface.
    """

    def __init__(self, credential_provider: CredentialProvider):
        try:
            self.credentials = credential_provider.load_credentials()
            # httplib2 is not thread-safe, so each worker thread gets its own service.
            self._local = threading.local()
            self._local.service = self._build_service()
            logging.info("Google Drive client initialized successfully.")
        except Exception as e:
            logging.error(f"Failed to initialize Google Drive client. Error: {e}")
            raise

    def _build_service(self):
        return build("drive", "v3", credentials=self.credentials, cache_discovery=False)

    @property
    def service(self):
        service = getattr(self._local, "service", None)
        if service is None:
            service = self._build_service()
            self._local.service = service
        return service

    def _execute(self, request, action: str, node_id: Optional[str] = None):
        """
        Executes an API request, translating failures into the project's
        error taxonomy.
        """
        try:
            return request.execute()
        except HttpError as e:
            raise self._translate_http_error(e, action, node_id) from e
        except RefreshError as e:
            logging.error(f"Token refresh failed while {action}: {e}")
            raise AuthenticationRequiredError(
                f"Stored Google credentials were rejected: {e}"
            ) from e
        except (TransportError, OSError) as e:
            logging.error(f"Network error while {action}: {e}")
            raise TransientError(f"Network error while {action}: {e}") from e

    @staticmethod
    def _translate_http_error(
        e: HttpError, action: str, node_id: Optional[str]
    ) -> Exception:
        status = e.resp.status
        if status == 404 and node_id is not None:
            return NodeNotFoundError(node_id)
        if status == 429 or status >= 500:
            logging.error(f"Transient Google Drive API error while {action}: {e}")
            return TransientError(f"Google Drive API error while {action}: {e}")
        logging.error(f"Google Drive API error while {action}: {e}")
        return PermanentError(f"Google Drive API error while {action}: {e}")

    def _list(self, query: str, page_size: int, action: str) -> List[Node]:
        response = self._execute(
            self.service.files().list(
                q=query, fields=f"files({NODE_FIELDS})", pageSize=page_size
            ),
            action,
        )
        return [Node.from_api(item) for item in response.get("files", [])]

    @staticmethod
    def _media(content: Optional[bytes], mime_type: Optional[str]):
        if content is None:
            return None
        return MediaIoBaseUpload(
            io.BytesIO(content),
            mimetype=mime_type or "application/octet-stream",
            resumable=True,
        )

    def list_children(self, parent_id: str, page_size: int = 1000) -> List[Node]:
        """
        Lists the non-trashed children of a folder. Only the first page is
        returned; page_size is capped by Drive at 1000.
        """
        return self._list(
            f"'{escape_query_value(parent_id)}' in parents and trashed=false",
            page_size,
            f"listing children of '{parent_id}'",
        )

    def get_metadata(self, node_id: str, fields: str = NODE_FIELDS) -> Node:
        response = self._execute(
            self.service.files().get(fileId=node_id, fields=fields),
            f"fetching metadata of '{node_id}'",
            node_id,
        )
        return Node.from_api(response)

    def create_node(
        self,
        metadata: dict,
        content: Optional[bytes] = None,
        mime_type: Optional[str] = None,
    ) -> Node:
        logging.info(
            f"Creating '{metadata.get('name')}' in parents {metadata.get('parents')}..."
        )
        response = self._execute(
            self.service.files().create(
                body=metadata,
                media_body=self._media(content, mime_type),
                fields=NODE_FIELDS,
            ),
            f"creating '{metadata.get('name')}'",
        )
        node = Node.from_api(response)
        logging.info(f"Created '{node.name}' with ID: {node.id}")
        return node

    def update_node(
        self,
        node_id: str,
        patch: dict,
        content: Optional[bytes] = None,
        mime_type: Optional[str] = None,
    ) -> Node:
        logging.info(f"Updating item with ID '{node_id}'...")
        response = self._execute(
            self.service.files().update(
                fileId=node_id,
                body=patch,
                media_body=self._media(content, mime_type),
                fields=NODE_FIELDS,
            ),
            f"updating '{node_id}'",
            node_id,
        )
        return Node.from_api(response)

    def delete_node(self, node_id: str):
        """
        Deletes an item from Google Drive by its ID. Unlike trashing, this
        cannot be undone, and a folder takes its whole subtree with it.
        """
        logging.info(f"Deleting item with ID '{node_id}'...")
        self._execute(
            self.service.files().delete(fileId=node_id),
            f"deleting '{node_id}'",
            node_id,
        )

    def export_as_text(self, node_id: str, mime_type: str = "text/plain") -> str:
        data = self._execute(
            self.service.files().export(fileId=node_id, mimeType=mime_type),
            f"exporting '{node_id}'",
            node_id,
        )
        if isinstance(data, bytes):
            return data.decode("utf-8", errors="replace")
        return data

    def download_bytes(self, node_id: str) -> bytes:
        """
        Downloads a file's body into memory using its file ID.
        """
        logging.info(f"Downloading file with ID '{node_id}'...")
        request = self.service.files().get_media(fileId=node_id)
        buffer = io.BytesIO()
        downloader = MediaIoBaseDownload(buffer, request)
        try:
            done = False
            while not done:
                status, done = downloader.next_chunk()
        except HttpError as e:
            raise self._translate_http_error(
                e, f"downloading '{node_id}'", node_id
            ) from e
        except RefreshError as e:
            logging.error(f"Token refresh failed while downloading '{node_id}': {e}")
            raise AuthenticationRequiredError(
                f"Stored Google credentials were rejected: {e}"
            ) from e
        except (TransportError, OSError) as e:
            logging.error(f"Network error while downloading '{node_id}': {e}")
            raise TransientError(f"Network error while downloading '{node_id}': {e}") from e
        return buffer.getvalue()

    def set_parents(self, node_id: str, add: List[str], remove: List[str]) -> Node:
        logging.info(
            f"Re-parenting item ID '{node_id}': adding {add}, removing {remove}..."
        )
        response = self._execute(
            self.service.files().update(
                fileId=node_id,
                addParents=",".join(add),
                removeParents=",".join(remove),
                fields=NODE_FIELDS,
            ),
            f"re-parenting '{node_id}'",
            node_id,
        )
        return Node.from_api(response)

    def query_by_name_substring(self, text: str, page_size: int = 100) -> List[Node]:
        return self._list(
            f"name contains '{escape_query_value(text)}' and trashed=false",
            page_size,
            f"searching names for '{text}'",
        )

    def query_all(self, page_size: int = 1000) -> List[Node]:
        return self._list("trashed=false", page_size, "listing all items")

    def find_folders_by_name(self, name: str, page_size: int = 10) -> List[Node]:
        return self._list(
            f"name='{escape_query_value(name)}' and mimeType='{FOLDER_MIME_TYPE}' "
            "and trashed=false",
            page_size,
            f"searching for folder '{name}'",
        )
