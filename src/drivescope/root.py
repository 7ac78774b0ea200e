# root.py
import logging
import threading

from .exceptions import AmbiguousRootError
from .storage.base import StorageClient
from .storage.dto import FOLDER_MIME_TYPE


class RootResolver:
    """
    Finds, or creates on first use, the folder that bounds the sandbox.

    The lookup is repeated on every call so the answer always reflects the
    current state of the drive. Resolution is serialized within the process,
    which keeps two concurrent first calls from creating two roots; separate
    processes can still race.
    """

    def __init__(
        self,
        storage: StorageClient,
        folder_name: str,
        strict: bool = True,
        page_size: int = 10,
    ):
        self.storage = storage
        self.folder_name = folder_name
        self.strict = strict
        self.page_size = page_size
        self._lock = threading.Lock()

    def resolve(self) -> str:
        """
        Returns the ID of the sandbox root folder.

        Raises:
            AmbiguousRootError: In strict mode, if several folders share the name.
        """
        with self._lock:
            matches = self.storage.find_folders_by_name(
                self.folder_name, page_size=self.page_size
            )
            if len(matches) > 1:
                candidate_ids = [folder.id for folder in matches]
                if self.strict:
                    raise AmbiguousRootError(self.folder_name, candidate_ids)
                logging.warning(
                    f"Several folders named '{self.folder_name}' exist ({candidate_ids}). "
                    f"Using the first one: {candidate_ids[0]}"
                )
            if matches:
                return matches[0].id

            logging.info(f"Sandbox folder '{self.folder_name}' not found. Creating it...")
            folder = self.storage.create_node(
                {"name": self.folder_name, "mimeType": FOLDER_MIME_TYPE}
            )
            logging.info(f"Created sandbox folder '{self.folder_name}' with ID: {folder.id}")
            return folder.id
