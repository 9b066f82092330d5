"""Ordered operation engine.

Store is the record store's inbound adapter to a Storage backend. Every
public call is queued on a per-instance chain and returns a StoreFuture
immediately. A call starts only after the previously submitted call has
settled, successfully or not, so calls take effect in submission order
whatever the backend latency, and a failed call never blocks later ones.

Storage backends may be synchronous or asynchronous; each backend result
is awaited only if it is awaitable.
"""

from __future__ import annotations

import asyncio
import inspect
import time
from collections.abc import Awaitable, Hashable, Mapping
from functools import partial
from typing import Any, Callable, Generic, TypeVar

from record_store.adapters.outbound import InMemoryStorage
from record_store.application.observable import StoreFuture, UpdateStream
from record_store.application.views import Queryable, QueryView
from record_store.domain.entities import ItemFailure, UpdateResult
from record_store.domain.services import Patch, PatchApplicationError, PatchUpdate, Query
from record_store.domain.value_objects import (
    CrudOptions,
    IdentityResolver,
    JsonPointer,
    OperationType,
    StoreOperation,
    to_pointer,
)
from record_store.infrastructure.config import StoreSettings, get_config
from record_store.infrastructure.logging import get_logger
from record_store.infrastructure.metrics import MetricsRegistry, get_metrics
from record_store.infrastructure.tracing import trace_span
from record_store.ports.inbound import BackendError, NotFoundError, StoreError
from record_store.ports.outbound import Storage

T = TypeVar("T")
R = TypeVar("R")

_MUTATIONS = frozenset({"add", "put", "patch", "delete"})


def _as_list(records: Any) -> list[Any]:
    if isinstance(records, (list, tuple)):
        return list(records)
    return [records]


def _as_ids(ids: Any) -> list[Hashable]:
    if isinstance(ids, (list, tuple, set, frozenset)):
        return list(ids)
    return [ids]


def _as_patch_updates(updates: Any) -> list[PatchUpdate]:
    """Normalize the accepted patch call shapes to a list of PatchUpdates."""
    if isinstance(updates, PatchUpdate):
        return [updates]
    if isinstance(updates, Mapping):
        return [PatchUpdate(id, patch) for id, patch in updates.items()]
    if isinstance(updates, tuple) and len(updates) == 2 and isinstance(updates[1], Patch):
        return [PatchUpdate(*updates)]

    normalized = []
    for update in updates:
        if isinstance(update, PatchUpdate):
            normalized.append(update)
        else:
            id, patch = update
            normalized.append(PatchUpdate(id, patch))
    return normalized


class Store(Queryable[T], Generic[T]):
    """Queryable record store with ordered, observable operations.

    Example:
        >>> store = Store([{"id": "1", "value": 1}])
        >>> result = await store.put({"id": "1", "value": 2})
        >>> await store.fetch(Filter().greater_than("value", 1))
        [{'id': '1', 'value': 2}]

    Awaiting a write yields its UpdateResult; awaiting ``get`` or ``fetch``
    yields the list of records. Calls must be made with an event loop
    running; construction may happen anywhere.
    """

    def __init__(
        self,
        data: Any = None,
        storage: Storage | None = None,
        id_property: str | None = None,
        id_function: Callable[[T], Hashable] | None = None,
        settings: StoreSettings | None = None,
        metrics: MetricsRegistry | None = None,
    ) -> None:
        self._settings = settings or get_config().store
        self._identity = IdentityResolver.create(
            id_property, id_function, default_property=self._settings.id_property
        )
        self._storage: Storage = (
            storage if storage is not None else InMemoryStorage(self._identity)
        )
        self._metrics = metrics or get_metrics()
        self._logger = get_logger(__name__, store_id=hex(id(self)))

        self._tail: asyncio.Future[Any] | None = None
        self._pending = 0
        self._initial_data = _as_list(data) if data is not None else None
        self._initialized: StoreFuture[UpdateResult[T]] | None = None
        self.updates: UpdateStream[UpdateResult[T]] = UpdateStream()

    @property
    def storage(self) -> Storage:
        return self._storage

    @property
    def settings(self) -> StoreSettings:
        return self._settings

    @property
    def metrics(self) -> MetricsRegistry:
        return self._metrics

    @property
    def root(self) -> Store[T]:
        return self

    @property
    def initialized(self) -> StoreFuture[UpdateResult[T]] | None:
        """Future of the initial ``data`` load, once the first call queued it."""
        return self._initialized

    @property
    def pending(self) -> int:
        """Number of submitted calls that have not settled."""
        return self._pending

    # Write operations

    def add(self, records: Any, *, reject_overwrite: bool = True) -> StoreFuture[UpdateResult[T]]:
        """Insert records; by default the call fails if any identifier exists."""
        items = _as_list(records)
        options = CrudOptions(reject_overwrite=reject_overwrite)
        return self._enqueue(
            "add",
            partial(self._write, StoreOperation.ADD, items, options),
            {"store.items": len(items), "store.reject_overwrite": reject_overwrite},
        )

    def put(self, records: Any, *, reject_overwrite: bool = False) -> StoreFuture[UpdateResult[T]]:
        """Insert or overwrite records."""
        items = _as_list(records)
        options = CrudOptions(reject_overwrite=reject_overwrite)
        return self._enqueue(
            "put",
            partial(self._write, StoreOperation.PUT, items, options),
            {"store.items": len(items), "store.reject_overwrite": reject_overwrite},
        )

    def patch(self, updates: Any) -> StoreFuture[UpdateResult[T]]:
        """Apply patches to stored records.

        Each update succeeds or fails on its own; failures are reported in
        the result's ``failed_data`` and do not reject the call.
        """
        items = _as_patch_updates(updates)
        return self._enqueue("patch", partial(self._patch, items), {"store.items": len(items)})

    def delete(self, ids: Any) -> StoreFuture[UpdateResult[T]]:
        """Remove records; absent identifiers are reported as NotFoundError."""
        items = _as_ids(ids)
        return self._enqueue("delete", partial(self._delete, items), {"store.items": len(items)})

    # Read operations

    def get(self, ids: Any) -> StoreFuture[list[T]]:
        items = _as_ids(ids)
        return self._enqueue(
            "get",
            partial(self._call_storage, self._storage.get, items),
            {"store.items": len(items)},
        )

    def fetch(self, query: Query[T] | None = None) -> StoreFuture[list[T]]:
        return self._enqueue(
            "fetch",
            partial(self._call_storage, self._storage.fetch, query),
            {"store.query": str(query) if query is not None else ""},
        )

    def identify(self, records: Any) -> list[Hashable]:
        """Return the identifiers of records; no storage access."""
        return [self._identity.identify(record) for record in _as_list(records)]

    def create_id(self) -> StoreFuture[str]:
        return self._enqueue("create_id", partial(self._call_storage, self._storage.create_id))

    def _derive(self, query: Query[T]) -> QueryView[T]:
        return QueryView(self, query)

    # Operation bodies

    async def _write(
        self, operation: StoreOperation, records: list[T], options: CrudOptions
    ) -> UpdateResult[T]:
        method = self._storage.add if operation is StoreOperation.ADD else self._storage.put
        stored = await self._call_storage(method, records, options)
        return UpdateResult(operation, successful_data=list(stored))

    async def _patch(self, updates: list[PatchUpdate]) -> UpdateResult[T]:
        ids = list(dict.fromkeys(update.id for update in updates))
        current = await self._call_storage(self._storage.get, ids)
        records = {self._identity.identify(record): record for record in current}

        patched: dict[Hashable, T] = {}
        successful: list[T] = []
        failed: list[ItemFailure] = []
        for update in updates:
            if update.id not in records:
                failed.append(ItemFailure(update.id, NotFoundError(update.id)))
                continue
            try:
                result = update.patch.apply(records[update.id])
                self._check_identity(update.id, result)
            except PatchApplicationError as error:
                failed.append(ItemFailure(update.id, error))
                continue
            # Later updates to the same id build on earlier ones
            records[update.id] = result
            patched[update.id] = result
            successful.append(result)

        if patched:
            await self._call_storage(
                self._storage.put, list(patched.values()), CrudOptions(reject_overwrite=False)
            )
        return UpdateResult(StoreOperation.PATCH, successful_data=successful, failed_data=failed)

    def _check_identity(self, id: Hashable, record: T) -> None:
        if self._identity.identify(record) != id:
            path = (
                to_pointer(self._identity.id_property)
                if self._identity.id_property is not None
                else JsonPointer()
            )
            raise PatchApplicationError(
                f"Patch changes the identifier of record {id!r}", path, OperationType.REPLACE
            )

    async def _delete(self, ids: list[Hashable]) -> UpdateResult[T]:
        deleted = list(await self._call_storage(self._storage.delete, ids))
        removed = set(deleted)
        failed = [ItemFailure(id, NotFoundError(id)) for id in ids if id not in removed]
        return UpdateResult(StoreOperation.DELETE, successful_data=deleted, failed_data=failed)

    async def _call_storage(self, method: Callable[..., Any], *args: Any) -> Any:
        """Invoke a backend method, awaiting its result if needed.

        Raises:
            StoreError: Raised by the backend, passed through unchanged
            BackendError: Wrapping any other backend exception
        """
        try:
            result = method(*args)
            if inspect.isawaitable(result):
                result = await result
        except StoreError:
            raise
        except Exception as e:
            raise BackendError(str(e) or type(e).__name__) from e
        return result

    # Queue

    def _enqueue(
        self,
        name: str,
        operation: Callable[[], Awaitable[R]],
        attributes: dict[str, Any] | None = None,
    ) -> StoreFuture[R]:
        loop = asyncio.get_running_loop()
        if self._initial_data is not None:
            data, self._initial_data = self._initial_data, None
            options = CrudOptions(reject_overwrite=True)
            self._initialized = self._submit(
                loop,
                "add",
                partial(self._write, StoreOperation.ADD, data, options),
                {"store.items": len(data), "store.initial": True},
                initial=True,
            )
        return self._submit(loop, name, operation, attributes)

    def _submit(
        self,
        loop: asyncio.AbstractEventLoop,
        name: str,
        operation: Callable[[], Awaitable[R]],
        attributes: dict[str, Any] | None = None,
        initial: bool = False,
    ) -> StoreFuture[R]:
        previous = self._tail
        span_attributes = {"store.operation": name, **(attributes or {})}

        async def run() -> R:
            if previous is not None:
                # Wait for settlement only; the previous outcome is not ours
                await asyncio.wait((previous,))
            started = time.perf_counter()
            try:
                with trace_span(f"record_store.{name}", span_attributes):
                    return await operation()
            finally:
                self._metrics.operation_latency_seconds.labels(operation=name).observe(
                    time.perf_counter() - started
                )

        task = loop.create_task(run())
        self._tail = task
        self._pending += 1
        self._metrics.queue_depth.inc()
        task.add_done_callback(partial(self._settle, name, initial))
        self._logger.debug("operation_queued", operation=name, pending=self._pending, **(attributes or {}))
        return StoreFuture(task)

    def _settle(self, name: str, initial: bool, task: asyncio.Task[Any]) -> None:
        self._pending -= 1
        self._metrics.queue_depth.dec()

        if task.cancelled():
            self._metrics.operations_total.labels(operation=name, status="error").inc()
            self._logger.warning("operation_cancelled", operation=name)
            return

        error = task.exception()
        if error is not None:
            self._metrics.operations_total.labels(operation=name, status="error").inc()
            self._logger.warning(
                "operation_failed",
                operation=name,
                initial=initial,
                error=str(error),
                error_type=type(error).__name__,
            )
            if name in _MUTATIONS and not initial:
                self.updates.emit_error(error)
            return

        self._metrics.operations_total.labels(operation=name, status="success").inc()
        result = task.result()
        if isinstance(result, UpdateResult):
            if result.failed_data:
                self._metrics.item_failures_total.labels(operation=name).inc(len(result.failed_data))
                self._logger.warning(
                    "operation_items_failed",
                    operation=name,
                    failed=len(result.failed_data),
                    succeeded=len(result.successful_data),
                )
            self.updates.emit(result)

    def __repr__(self) -> str:
        return f"Store(storage={type(self._storage).__name__}, pending={self._pending})"
