# subdomain_engine/sweeper/queue.py

from collections import OrderedDict
from threading import Lock
from typing import List


class PropagationQueue:
    """
    Ids of records that just had a successful registrar write.

    The request path puts ids here so the next sweep checks them first;
    duplicates collapse to one entry.
    """

    def __init__(self):
        self._items: "OrderedDict[int, None]" = OrderedDict()
        self._lock = Lock()

    def put(self, record_id: int) -> None:
        with self._lock:
            self._items[record_id] = None

    def drain(self) -> List[int]:
        with self._lock:
            items = list(self._items)
            self._items.clear()
            return items

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)
