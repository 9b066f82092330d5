"""Unit tests for the Store operation engine."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Callable

import pytest

from record_store.application import QueryView, Store
from record_store.domain.entities import UpdateResult
from record_store.domain.services import (
    Filter,
    PatchApplicationError,
    PatchUpdate,
    create_compound_query,
    create_operation,
    create_patch,
    create_range,
    create_sort,
)
from record_store.domain.value_objects import JsonPointer, OperationType, StoreOperation
from record_store.infrastructure.metrics import MetricsRegistry
from record_store.ports.inbound import BackendError, ConflictError, NotFoundError

StoreFactory = Callable[..., Store[Any]]
NESTED_VALUE = JsonPointer.of("nestedProperty", "value")


@dataclass
class Item:
    name: str
    id: str | None = None


def ids_of(records: list[dict[str, Any]]) -> list[str]:
    return [record["id"] for record in records]


@pytest.mark.unit
class TestInitialData:
    """Tests for construction and the initial load."""

    @pytest.mark.asyncio
    async def test_initial_data(self, make_store: StoreFactory, data: list[dict[str, Any]]) -> None:
        """Initial data is visible to the first call."""
        store = make_store(data)

        assert await store.fetch() == data
        result = await store.initialized
        assert result.type is StoreOperation.ADD
        assert result.successful_data == data

    def test_initialized_is_lazy(self, make_store: StoreFactory, data: list[dict[str, Any]]) -> None:
        """Nothing is queued until the first call."""
        assert make_store(data).initialized is None
        assert make_store().initialized is None

    def test_call_requires_running_loop(self, make_store: StoreFactory) -> None:
        """Calls outside an event loop fail immediately."""
        with pytest.raises(RuntimeError):
            make_store().fetch()

    @pytest.mark.asyncio
    async def test_failed_initial_add_does_not_block(self, make_store: StoreFactory) -> None:
        """A conflicting initial load is reported on initialized only."""
        store = make_store([{"id": "1"}, {"id": "1"}])
        errors: list[BaseException] = []
        store.updates.subscribe(lambda result: None, errors.append)

        added = await store.add([{"id": "1"}, {"id": "2"}])

        assert ids_of(added.successful_data) == ["1", "2"]
        with pytest.raises(ConflictError):
            await store.initialized
        assert errors == []

    def test_identify_by_property(self, make_store: StoreFactory, updates: list[list[dict[str, Any]]]) -> None:
        """identify reads the configured property without storage access."""
        store = make_store(id_property="value")
        assert store.identify(updates[0]) == [2, 3, 4]

    def test_identify_by_function(self, make_store: StoreFactory, data: list[dict[str, Any]]) -> None:
        """identify applies the identity function."""
        store = make_store(id_function=lambda item: item["id"] + "-id")
        assert store.identify(data) == ["1-id", "2-id", "3-id"]
        assert store.identify(data[0]) == ["1-id"]

    def test_property_and_function_exclusive(self, make_store: StoreFactory) -> None:
        """Passing both identity options is an error."""
        with pytest.raises(ValueError):
            make_store(id_property="id", id_function=lambda item: item["id"])


@pytest.mark.unit
class TestAddPut:
    """Tests for add and put."""

    @pytest.mark.asyncio
    async def test_add_new_items(self, make_store: StoreFactory, data: list[dict[str, Any]]) -> None:
        """Single records and lists can be added."""
        store = make_store()
        store.add([data[0], data[1]])
        store.add(data[2])

        assert await store.fetch() == data

    @pytest.mark.asyncio
    async def test_add_existing_fails(
        self,
        make_store: StoreFactory,
        data: list[dict[str, Any]],
        updates: list[list[dict[str, Any]]],
    ) -> None:
        """add rejects existing ids and commits nothing."""
        store = make_store(data)

        with pytest.raises(ConflictError, match="Objects already exist in store"):
            await store.add([{"id": "4"}, updates[0][2]])

        assert await store.fetch() == data

    @pytest.mark.asyncio
    async def test_add_without_reject_overwrite(
        self,
        make_store: StoreFactory,
        data: list[dict[str, Any]],
        updates: list[list[dict[str, Any]]],
    ) -> None:
        """add with reject_overwrite=False overwrites."""
        store = make_store(data)

        result = await store.add(updates[0][2], reject_overwrite=False)

        assert result.successful_data == [updates[0][2]]
        assert await store.get("3") == [updates[0][2]]

    @pytest.mark.asyncio
    async def test_put_adds_and_updates(
        self,
        make_store: StoreFactory,
        data: list[dict[str, Any]],
        updates: list[list[dict[str, Any]]],
    ) -> None:
        """put inserts new records and overwrites existing ones."""
        store = make_store(data)
        store.put([updates[0][0], updates[0][1]])
        store.put(updates[0][2])
        store.put({"id": "4", "value": 0})

        assert await store.fetch() == [*updates[0], {"id": "4", "value": 0}]

    @pytest.mark.asyncio
    async def test_put_with_reject_overwrite(
        self,
        make_store: StoreFactory,
        data: list[dict[str, Any]],
        updates: list[list[dict[str, Any]]],
    ) -> None:
        """put with reject_overwrite=True fails on existing ids."""
        store = make_store(data)

        with pytest.raises(ConflictError, match="Objects already exist in store"):
            await store.put([updates[0][0], updates[0][1]], reject_overwrite=True)

    @pytest.mark.asyncio
    async def test_awaited_results(self, make_store: StoreFactory, data: list[dict[str, Any]]) -> None:
        """Awaiting a write yields its UpdateResult."""
        store = make_store()

        added = await store.add(data)
        put = await store.put(data)

        assert isinstance(added, UpdateResult)
        assert (added.type, added.successful_data) == (StoreOperation.ADD, data)
        assert (put.type, put.successful_data) == (StoreOperation.PUT, data)
        assert added.succeeded and put.succeeded

    @pytest.mark.asyncio
    async def test_create_id_unique(self, make_store: StoreFactory) -> None:
        """Generated ids do not repeat."""
        store = make_store()
        ids = await asyncio.gather(*(store.create_id() for _ in range(500)))
        assert len(set(ids)) == 500

    @pytest.mark.asyncio
    async def test_records_without_identifier_rejected(self, make_store: StoreFactory) -> None:
        """Records that cannot carry an id fail the call instead of colliding."""
        store = make_store()

        with pytest.raises(BackendError, match="no identifier"):
            await store.put([Item("a")])
        with pytest.raises(BackendError, match="no identifier"):
            await store.add([Item("b")])
        await store.put([Item("c", "1"), Item("d", "2")])

        assert await store.fetch() == [Item("c", "1"), Item("d", "2")]


@pytest.mark.unit
class TestPatch:
    """Tests for patch."""

    @pytest.mark.asyncio
    async def test_single_update(
        self, make_store: StoreFactory, data: list[dict[str, Any]], patches: list[PatchUpdate]
    ) -> None:
        """A single PatchUpdate is applied."""
        store = make_store(data)
        store.patch(patches[0])

        records = await store.fetch()
        assert records[0] == patches[0].patch.apply(data[0])
        assert records[1:] == data[1:]

    @pytest.mark.asyncio
    async def test_list_of_updates(
        self, make_store: StoreFactory, data: list[dict[str, Any]], patches: list[PatchUpdate]
    ) -> None:
        """A list of updates patches every record."""
        store = make_store(data)

        result = await store.patch(patches)

        expected = [update.patch.apply(record) for update, record in zip(patches, data)]
        assert result.type is StoreOperation.PATCH
        assert result.successful_data == expected
        assert await store.fetch() == expected

    @pytest.mark.asyncio
    async def test_mapping_and_tuples(
        self, make_store: StoreFactory, data: list[dict[str, Any]], patches: list[PatchUpdate]
    ) -> None:
        """Mappings of id to patch and (id, patch) tuples are accepted."""
        store = make_store(data)

        await store.patch({update.id: update.patch for update in patches[:2]})
        await store.patch((patches[2].id, patches[2].patch))

        expected = [update.patch.apply(record) for update, record in zip(patches, data)]
        assert await store.fetch() == expected

    @pytest.mark.asyncio
    async def test_mapping_keys_are_always_ids(self, make_store: StoreFactory) -> None:
        """A mapping keyed by "id" and "patch" still maps ids to patches."""
        store = make_store([{"id": "id", "value": 1}, {"id": "patch", "value": 1}])
        bump = create_patch([create_operation(OperationType.REPLACE, "value", 2)])

        result = await store.patch({"id": bump, "patch": bump})

        assert result.failed_data == []
        assert await store.fetch() == [{"id": "id", "value": 2}, {"id": "patch", "value": 2}]

    @pytest.mark.asyncio
    async def test_inapplicable_patch_is_item_failure(self, make_store: StoreFactory, data: list[dict[str, Any]]) -> None:
        """A patch on an undefined path fails that item only."""
        store = make_store(data)
        patch = create_patch([create_operation(OperationType.REPLACE, "prop1", 2)])

        result = await store.patch(("1", patch))

        assert not result.succeeded
        [failure] = result.failed_data
        assert failure.item == "1"
        assert isinstance(failure.error, PatchApplicationError)
        assert failure.reason == "Cannot replace undefined path: /prop1 on object"
        assert await store.fetch() == data

    @pytest.mark.asyncio
    async def test_mixed_outcomes(
        self, make_store: StoreFactory, data: list[dict[str, Any]], patches: list[PatchUpdate]
    ) -> None:
        """Successful items are written even when others fail."""
        store = make_store(data)
        missing = PatchUpdate("missing", patches[0].patch)

        result = await store.patch([patches[0], missing])

        assert result.successful_data == [patches[0].patch.apply(data[0])]
        assert result.failed_items == ["missing"]
        assert isinstance(result.failed_data[0].error, NotFoundError)
        assert (await store.get("1"))[0]["value"] == 3

    @pytest.mark.asyncio
    async def test_identity_change_rejected(self, make_store: StoreFactory, data: list[dict[str, Any]]) -> None:
        """A patch that changes a record's id fails for that record."""
        store = make_store(data)
        patch = create_patch([create_operation(OperationType.REPLACE, "id", "9")])

        result = await store.patch(("1", patch))

        assert isinstance(result.failed_data[0].error, PatchApplicationError)
        assert ids_of(await store.fetch()) == ["1", "2", "3"]

    @pytest.mark.asyncio
    async def test_repeated_id_accumulates(self, make_store: StoreFactory, data: list[dict[str, Any]]) -> None:
        """Several updates to one id apply in order."""
        store = make_store(data)
        increment = create_patch([create_operation(OperationType.REPLACE, "value", 5)])
        append = create_patch([create_operation(OperationType.ADD, "tag", "x")])

        await store.patch([("1", increment), ("1", append)])

        assert await store.get("1") == [{**data[0], "value": 5, "tag": "x"}]


@pytest.mark.unit
class TestDelete:
    """Tests for delete."""

    @pytest.mark.asyncio
    async def test_delete_single(self, make_store: StoreFactory, data: list[dict[str, Any]]) -> None:
        """A single id is deleted."""
        store = make_store(data)
        store.delete("1")

        assert await store.fetch() == [data[1], data[2]]

    @pytest.mark.asyncio
    async def test_delete_multiple(self, make_store: StoreFactory, data: list[dict[str, Any]]) -> None:
        """A list of ids is deleted and returned."""
        store = make_store(data)

        result = await store.delete(["1", "2", "3"])

        assert result.type is StoreOperation.DELETE
        assert result.successful_data == ["1", "2", "3"]
        assert await store.fetch() == []

    @pytest.mark.asyncio
    async def test_delete_absent(self, make_store: StoreFactory, data: list[dict[str, Any]]) -> None:
        """Absent ids are reported as NotFoundError without failing the call."""
        store = make_store(data)

        result = await store.delete(["1", "missing"])

        assert result.successful_data == ["1"]
        assert result.failed_items == ["missing"]
        assert isinstance(result.failed_data[0].error, NotFoundError)

    @pytest.mark.asyncio
    async def test_backend_failure(
        self, make_store: StoreFactory, data: list[dict[str, Any]], monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Backend exceptions are wrapped with their message preserved."""
        store = make_store(data)

        def failing_delete(ids: Any) -> Any:
            raise RuntimeError("failed")

        monkeypatch.setattr(store.storage, "delete", failing_delete)

        with pytest.raises(BackendError, match="^failed$") as exc_info:
            await store.delete("1")
        assert isinstance(exc_info.value.__cause__, RuntimeError)
        assert await store.fetch() == data


@pytest.mark.unit
class TestFetch:
    """Tests for get and fetch."""

    @pytest.mark.asyncio
    async def test_get_order(self, make_store: StoreFactory, data: list[dict[str, Any]]) -> None:
        """get returns records in requested order, omitting missing ids."""
        store = make_store(data)
        assert await store.get(["3", "9", "1"]) == [data[2], data[0]]

    @pytest.mark.asyncio
    async def test_fetch_with_sort(self, make_store: StoreFactory, data: list[dict[str, Any]]) -> None:
        """fetch applies a sort."""
        store = make_store(data)
        assert await store.fetch(create_sort("id", True)) == [data[2], data[1], data[0]]

    @pytest.mark.asyncio
    async def test_fetch_with_filter(self, make_store: StoreFactory, data: list[dict[str, Any]]) -> None:
        """fetch applies a filter."""
        store = make_store(data)
        assert await store.fetch(Filter().less_than("value", 2)) == [data[0]]

    @pytest.mark.asyncio
    async def test_fetch_with_range(self, make_store: StoreFactory, data: list[dict[str, Any]]) -> None:
        """fetch applies a range."""
        store = make_store(data)
        assert await store.fetch(create_range(1, 2)) == [data[1], data[2]]
        assert await store.fetch(create_range(100, 5)) == []
        assert await store.fetch(create_range(2, 5)) == [data[2]]

    @pytest.mark.asyncio
    async def test_fetch_with_compound_query(self, make_store: StoreFactory, data: list[dict[str, Any]]) -> None:
        """fetch applies a compound query in order."""
        store = make_store(data)
        query = create_compound_query(
            Filter().deep_equal_to(NESTED_VALUE, 2).or_().deep_equal_to(NESTED_VALUE, 3)
        ).with_query(create_sort(NESTED_VALUE))

        assert await store.fetch(query) == [data[1], data[0]]

    @pytest.mark.asyncio
    async def test_fetched_records_are_copies(self, make_store: StoreFactory, data: list[dict[str, Any]]) -> None:
        """Mutating fetched records does not change the store."""
        store = make_store(data)
        [first, *_] = await store.fetch()
        first["value"] = 100

        assert (await store.get("1"))[0]["value"] == 1


@pytest.mark.unit
class TestOrdering:
    """Tests for submission-order execution."""

    @pytest.mark.asyncio
    async def test_calls_run_in_submission_order(
        self,
        make_store: StoreFactory,
        data: list[dict[str, Any]],
        updates: list[list[dict[str, Any]]],
    ) -> None:
        """Each get sees exactly the writes submitted before it."""
        store = make_store()
        order: list[int] = []

        store.add(data[0])
        first = store.get("1")
        first.subscribe(lambda records: order.append(1))
        store.put(updates[0][0])
        second = store.get("1")
        second.subscribe(lambda records: order.append(2))
        store.put(updates[1][0])
        third = store.get("1")
        third.subscribe(lambda records: order.append(3))

        results = await asyncio.gather(first, second, third)

        assert results == [[data[0]], [updates[0][0]], [updates[1][0]]]
        assert order == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_failure_does_not_block(self, make_store: StoreFactory, data: list[dict[str, Any]]) -> None:
        """A rejected call does not stop later calls."""
        store = make_store(data)

        conflict = store.add(data[0])
        later = store.put({"id": "4"})

        with pytest.raises(ConflictError):
            await conflict
        assert (await later).successful_data == [{"id": "4"}]
        assert store.pending == 0

    @pytest.mark.asyncio
    async def test_cancelled_awaiter_does_not_cancel_call(self, make_store: StoreFactory) -> None:
        """Cancelling a waiting coroutine leaves the queued call running."""
        store = make_store()
        future = store.add({"id": "1"})

        waiter = asyncio.ensure_future(future)
        waiter.cancel()
        with pytest.raises(asyncio.CancelledError):
            await waiter

        assert await store.get("1") == [{"id": "1"}]


@pytest.mark.unit
class TestObservables:
    """Tests for subscriptions and the updates stream."""

    @pytest.mark.asyncio
    async def test_crud_operations_are_observable(
        self, make_store: StoreFactory, data: list[dict[str, Any]], patches: list[PatchUpdate]
    ) -> None:
        """Each write emits one UpdateResult then completes."""
        store = make_store([data[0]])
        events: list[Any] = []

        def observe(future: Any) -> None:
            future.subscribe(events.append, events.append, lambda: events.append("complete"))

        observe(store.add(data[1]))
        observe(store.put(data[2]))
        observe(store.patch(patches[0]))
        observe(store.delete(data[0]["id"]))
        await store.fetch()

        results = events[0::2]
        assert events[1::2] == ["complete"] * 4
        assert [result.type for result in results] == [
            StoreOperation.ADD,
            StoreOperation.PUT,
            StoreOperation.PATCH,
            StoreOperation.DELETE,
        ]
        assert results[0].successful_data == [data[1]]
        assert results[1].successful_data == [data[2]]
        assert results[2].successful_data == [patches[0].patch.apply(data[0])]
        assert results[3].successful_data == ["1"]

    @pytest.mark.asyncio
    async def test_error_is_observable(self, make_store: StoreFactory, data: list[dict[str, Any]]) -> None:
        """A rejected call emits one error and no completion."""
        store = make_store(data)
        errors: list[BaseException] = []
        completed: list[bool] = []

        store.add(data[0]).subscribe(
            on_error=errors.append, on_complete=lambda: completed.append(True)
        )
        await store.fetch()

        assert len(errors) == 1
        assert isinstance(errors[0], ConflictError)
        assert completed == []

    @pytest.mark.asyncio
    async def test_subscribe_after_completion(self, make_store: StoreFactory) -> None:
        """Late subscribers still receive the result."""
        store = make_store()
        future = store.put({"id": "1"})
        await future

        received: list[Any] = []
        future.subscribe(received.append)
        await asyncio.sleep(0)

        assert [result.successful_data for result in received] == [[{"id": "1"}]]

    @pytest.mark.asyncio
    async def test_unsubscribe(self, make_store: StoreFactory) -> None:
        """Unsubscribed observers receive nothing."""
        store = make_store()
        received: list[Any] = []

        subscription = store.put({"id": "1"}).subscribe(received.append)
        subscription.unsubscribe()
        await store.fetch()

        assert subscription.closed
        assert received == []

    @pytest.mark.asyncio
    async def test_updates_stream(self, make_store: StoreFactory, data: list[dict[str, Any]]) -> None:
        """The updates stream pushes results and errors in call order."""
        store = make_store()
        events: list[Any] = []
        store.updates.subscribe(
            lambda result: events.append(result.type), lambda error: events.append(type(error))
        )

        store.add(data)
        store.add(data[0])
        store.get("1")
        store.delete("1")
        await store.fetch()

        assert events == [StoreOperation.ADD, ConflictError, StoreOperation.DELETE]

    @pytest.mark.asyncio
    async def test_failing_subscriber_is_isolated(self, make_store: StoreFactory) -> None:
        """A raising update subscriber does not affect others."""
        store = make_store()
        received: list[Any] = []

        def broken(result: Any) -> None:
            raise ValueError("boom")

        store.updates.subscribe(broken)
        store.updates.subscribe(received.append)
        await store.put({"id": "1"})

        assert len(received) == 1


@pytest.mark.unit
class TestStoreMetrics:
    """Tests for operation metrics."""

    @pytest.mark.asyncio
    async def test_operation_counters(
        self, make_store: StoreFactory, metrics_registry: MetricsRegistry, data: list[dict[str, Any]]
    ) -> None:
        """Operations are counted by status and item failures by operation."""
        store = make_store(data)
        registry = metrics_registry.registry

        await store.delete(["1", "missing"])
        with pytest.raises(ConflictError):
            await store.add(data[1])

        def sample(name: str, **labels: str) -> float | None:
            return registry.get_sample_value(name, labels)

        assert sample("record_store_operations_total", operation="add", status="success") == 1.0
        assert sample("record_store_operations_total", operation="add", status="error") == 1.0
        assert sample("record_store_operations_total", operation="delete", status="success") == 1.0
        assert sample("record_store_item_failures_total", operation="delete") == 1.0
        assert sample("record_store_operation_latency_seconds_count", operation="delete") == 1.0
        assert sample("record_store_queue_depth") == 0.0


@pytest.mark.unit
class TestQueryView:
    """Tests for views derived with filter/sort/range/query."""

    @pytest.mark.asyncio
    async def test_filter_view(self, make_store: StoreFactory, data: list[dict[str, Any]]) -> None:
        """A filtered view fetches matching records only."""
        store = make_store(data)
        view = store.filter(Filter().greater_than("value", 1))

        assert isinstance(view, QueryView)
        assert await view.fetch() == [data[1], data[2]]

    @pytest.mark.asyncio
    async def test_views_compose(self, make_store: StoreFactory, data: list[dict[str, Any]]) -> None:
        """Derived views apply their queries in order."""
        store = make_store(data)
        view = store.filter(Filter().greater_than("value", 1)).sort("value", descending=True)

        assert await view.fetch() == [data[2], data[1]]
        assert await view.range(0, 1).fetch() == [data[2]]
        assert await view.fetch(create_range(1, 1)) == [data[1]]

    @pytest.mark.asyncio
    async def test_writes_through_view(self, make_store: StoreFactory, data: list[dict[str, Any]]) -> None:
        """Writes through a view land in the store, in call order."""
        store = make_store(data)
        view = store.filter(Filter().greater_than("value", 1))

        view.put({"id": "4", "value": 4})
        view.delete("2")

        assert ids_of(await view.fetch()) == ["3", "4"]
        assert ids_of(await store.fetch()) == ["1", "3", "4"]
        assert view.root is store
        assert view.updates is store.updates

    @pytest.mark.asyncio
    async def test_query_view(self, make_store: StoreFactory, data: list[dict[str, Any]]) -> None:
        """query accepts any query object."""
        store = make_store(data)
        view = store.query(create_compound_query(create_sort("id", True), create_range(0, 2)))

        assert ids_of(await view.fetch()) == ["3", "2"]
        assert view.identify(data) == ["1", "2", "3"]
