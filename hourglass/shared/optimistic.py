"""
Optimistic update helper.

Three phases: snapshot the affected keys of a store, apply the local
mutation, then keep it if the request succeeds or restore the snapshot
if it fails. Restores can be limited to a subset of keys so a partially
failed bulk request only reverts the failed items.
"""

from copy import deepcopy
from typing import Any, Awaitable, Callable, Dict, Iterable, MutableMapping, Optional
import logging

logger = logging.getLogger(__name__)

_MISSING = object()


class OptimisticUpdate:
    """
    Snapshot, apply and commit-or-revert over a mutable mapping.

    Args:
        store: Mapping mutated in place
        keys: Keys the mutation touches
    """

    def __init__(self, store: MutableMapping[str, Any], keys: Iterable[str]):
        self.store = store
        self.keys = list(keys)
        self.snapshot: Optional[Dict[str, Any]] = None

    def take_snapshot(self) -> Dict[str, Any]:
        self.snapshot = {
            key: deepcopy(self.store[key]) if key in self.store else _MISSING
            for key in self.keys
        }
        return self.snapshot

    def apply(self, mutate: Callable[[MutableMapping[str, Any]], None]) -> None:
        """Snapshot, then run the local mutation."""
        if self.snapshot is None:
            self.take_snapshot()
        mutate(self.store)

    def revert(self, keys: Optional[Iterable[str]] = None) -> None:
        """Restore snapshotted values; all keys unless a subset is given."""
        if self.snapshot is None:
            return
        for key in (self.keys if keys is None else keys):
            if key not in self.snapshot:
                continue
            value = self.snapshot[key]
            if value is _MISSING:
                self.store.pop(key, None)
            else:
                self.store[key] = value

    def commit(self) -> None:
        self.snapshot = None

    async def commit_or_revert(
        self,
        request: Awaitable[Any],
        succeeded: Callable[[Any], bool] = lambda result: bool(getattr(result, "ok", True))
    ) -> Any:
        """
        Await the request and keep or undo the local mutation.

        Args:
            request: Pending request
            succeeded: Decides whether the response counts as success

        Returns:
            Any: The request's result

        Raises:
            Exception: Whatever the request raised, after reverting
        """
        try:
            result = await request
        except Exception:
            logger.warning(f"Request failed, reverting {self.keys}")
            self.revert()
            self.commit()
            raise

        if succeeded(result):
            self.commit()
        else:
            logger.info(f"Request rejected, reverting {self.keys}")
            self.revert()
            self.commit()
        return result
