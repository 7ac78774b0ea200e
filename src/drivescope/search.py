# search.py
import logging
from typing import List, Optional

from .ancestry import AncestryVerifier
from .exceptions import AuthenticationRequiredError, PermanentError, TransientError
from .root import RootResolver
from .storage.base import StorageClient
from .storage.dto import GOOGLE_DOC_MIME_TYPE, Node


def is_text_bearing(mime_type: str) -> bool:
    """Whether a file's body can be searched as plain text."""
    return (
        mime_type.startswith("text/")
        or "json" in mime_type
        or "markdown" in mime_type
        or "csv" in mime_type
    )


class SearchEngine:
    """
    Name and content search restricted to the sandbox.
    """

    def __init__(
        self,
        storage: StorageClient,
        root_resolver: RootResolver,
        verifier: AncestryVerifier,
        name_page_size: int = 100,
        content_page_size: int = 1000,
    ):
        self.storage = storage
        self.root_resolver = root_resolver
        self.verifier = verifier
        self.name_page_size = name_page_size
        self.content_page_size = content_page_size

    def _extract_text(self, node: Node) -> Optional[str]:
        try:
            if node.mime_type == GOOGLE_DOC_MIME_TYPE:
                return self.storage.export_as_text(node.id, "text/plain")
            if is_text_bearing(node.mime_type):
                return self.storage.download_bytes(node.id).decode("utf-8", errors="replace")
        except AuthenticationRequiredError:
            raise
        except (PermanentError, TransientError) as e:
            logging.debug(f"Skipping content of '{node.name}' ({node.id}): {e}")
        return None

    def search_scoped(self, query: str, include_content: bool = False) -> List[Node]:
        """
        Returns in-scope nodes whose name contains ``query``, followed, when
        ``include_content`` is set, by in-scope text files whose body contains
        it (case-insensitive). Each ID appears once.
        """
        query = (query or "").strip()
        if not query:
            raise ValueError("Search query cannot be empty")

        root_id = self.root_resolver.resolve()
        results = [
            node
            for node in self.storage.query_by_name_substring(
                query, page_size=self.name_page_size
            )
            if not node.trashed and self.verifier.is_descendant(node.id, root_id)
        ]
        if not include_content:
            return results

        seen = {node.id for node in results}
        needle = query.lower()
        for candidate in self.storage.query_all(page_size=self.content_page_size):
            if candidate.trashed or candidate.id in seen:
                continue
            if not self.verifier.is_descendant(candidate.id, root_id):
                continue
            text = self._extract_text(candidate)
            if text and needle in text.lower():
                results.append(candidate)
                seen.add(candidate.id)
        logging.info(f"Search for '{query}' matched {len(results)} items.")
        return results
