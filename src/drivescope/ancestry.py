# ancestry.py
import logging
from typing import List

from .exceptions import AuthenticationRequiredError, PermanentError, TransientError
from .fanout import map_in_order
from .storage.base import StorageClient


class AncestryVerifier:
    """
    Decides whether a node lies inside the subtree of a root folder.

    Drive items can have several parents, so ancestry is explored as a
    breadth-first search upward over every parent link rather than a walk
    along a single chain.
    """

    def __init__(self, storage: StorageClient, hop_limit: int = 30, max_workers: int = 1):
        self.storage = storage
        self.hop_limit = hop_limit
        self.max_workers = max_workers

    def _parents_of(self, node_id: str) -> List[str]:
        # A failed lookup only closes this branch; other paths are still searched.
        try:
            return self.storage.get_metadata(node_id, fields="id, parents").parents
        except AuthenticationRequiredError:
            raise
        except (PermanentError, TransientError) as e:
            logging.debug(f"Dropping ancestry branch at '{node_id}': {e}")
            return []

    def is_descendant(self, candidate_id: str, root_id: str) -> bool:
        """
        Returns True if ``candidate_id`` is ``root_id`` or reaches it by
        following parent links within ``hop_limit`` hops. Fails closed: an
        exhausted budget or a dead end yields False.
        """
        if candidate_id == root_id:
            return True

        frontier = [candidate_id]
        visited = {candidate_id}
        for _ in range(self.hop_limit):
            next_frontier = []
            for parents in map_in_order(self._parents_of, frontier, self.max_workers):
                for parent_id in parents:
                    if parent_id == root_id:
                        return True
                    if parent_id not in visited:
                        visited.add(parent_id)
                        next_frontier.append(parent_id)
            if not next_frontier:
                return False
            frontier = next_frontier
        return False
