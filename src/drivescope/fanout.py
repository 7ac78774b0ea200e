# fanout.py
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Iterable, List, TypeVar

T = TypeVar("T")
R = TypeVar("R")


def map_in_order(
    func: Callable[[T], R], items: Iterable[T], max_workers: int = 1
) -> List[R]:
    """
    Applies ``func`` to every item with at most ``max_workers`` calls in flight
    and returns the results in input order. With one worker the calls run
    strictly one after another on the calling thread.
    """
    items = list(items)
    if max_workers <= 1 or len(items) <= 1:
        return [func(item) for item in items]
    with ThreadPoolExecutor(max_workers=min(max_workers, len(items))) as executor:
        return list(executor.map(func, items))
