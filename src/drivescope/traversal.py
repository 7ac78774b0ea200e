# traversal.py
from typing import List, Optional

from .ancestry import AncestryVerifier
from .exceptions import ScopeViolationError
from .fanout import map_in_order
from .root import RootResolver
from .storage.base import StorageClient
from .storage.dto import ListedNode, Node


class ScopedTraversal:
    """
    Breadth-first listing of everything below a folder inside the sandbox.
    """

    def __init__(
        self,
        storage: StorageClient,
        root_resolver: RootResolver,
        verifier: AncestryVerifier,
        page_size: int = 1000,
        max_workers: int = 1,
        deduplicate: bool = True,
    ):
        self.storage = storage
        self.root_resolver = root_resolver
        self.verifier = verifier
        self.page_size = page_size
        self.max_workers = max_workers
        self.deduplicate = deduplicate

    def _children(self, folder_id: str) -> List[Node]:
        children = self.storage.list_children(folder_id, page_size=self.page_size)
        return [child for child in children if not child.trashed]

    def list_scoped(
        self, start_id: Optional[str] = None, max_depth: int = 4
    ) -> List[ListedNode]:
        """
        Lists descendants of ``start_id`` (the sandbox root when omitted).

        Each child is tagged with the depth of the folder it was listed from,
        so direct children have depth 0. Folders are expanded only while
        ``depth + 1 < max_depth``. Results are in BFS order; siblings keep the
        order the store returned them in. With ``deduplicate`` on, a node
        reachable through several listed folders is emitted once, at its first
        (shallowest) occurrence, and expanded once. A ``max_depth`` below 1
        still lists the direct children; it only stops further expansion.

        Raises:
            ScopeViolationError: If the start folder is outside the sandbox.
        """
        root_id = self.root_resolver.resolve()
        start_id = start_id or root_id
        if not self.verifier.is_descendant(start_id, root_id):
            raise ScopeViolationError(start_id)

        results: List[ListedNode] = []
        seen = {start_id}
        level = [start_id]
        depth = 0
        while level:
            next_level = []
            for children in map_in_order(self._children, level, self.max_workers):
                for child in children:
                    if self.deduplicate:
                        if child.id in seen:
                            continue
                        seen.add(child.id)
                    results.append(ListedNode(node=child, depth=depth))
                    if child.is_folder and depth + 1 < max_depth:
                        next_level.append(child.id)
            level = next_level
            depth += 1
        return results
