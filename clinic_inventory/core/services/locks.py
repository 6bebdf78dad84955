"""
Per-product mutual exclusion for stock writes.

Writers for the same product queue on one asyncio.Lock; writers for
different products never share a lock. This serializes the engine's
read-validate-append sequence within a process. Across processes the
storage compare-and-swap is what keeps stock consistent.
"""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager


class ProductLockRegistry:
    """
    Hands out one lock per product id.

    A lock lives only while someone holds or waits on it, so the registry
    stays as small as the number of products being written right now.
    """

    def __init__(self) -> None:
        self._locks: dict[int, asyncio.Lock] = {}
        self._users: dict[int, int] = {}

    @asynccontextmanager
    async def hold(self, product_id: int) -> AsyncIterator[None]:
        """
        Hold a product's lock for the duration of the block.

        Usage:
            async with registry.hold(product_id):
                ...
        """
        # No await between lookup and registration, so this is atomic on the loop
        lock = self._locks.get(product_id)
        if lock is None:
            lock = self._locks[product_id] = asyncio.Lock()
        self._users[product_id] = self._users.get(product_id, 0) + 1

        try:
            async with lock:
                yield
        finally:
            self._users[product_id] -= 1
            if self._users[product_id] == 0:
                del self._users[product_id]
                del self._locks[product_id]

    def __len__(self) -> int:
        return len(self._locks)
