import asyncio
import random

import pytest

from info_hub.services.fan_out import AggregateError, FanOutAggregator, FetchTask


def returning(value, delay=0.0):
    async def operation():
        if delay:
            await asyncio.sleep(delay)
        return value
    return operation


def failing(exc, delay=0.0):
    async def operation():
        if delay:
            await asyncio.sleep(delay)
        raise exc
    return operation


def test_every_task_is_accounted_for_exactly_once():
    tasks = [
        FetchTask("a", returning(1)),
        FetchTask("b", failing(RuntimeError("boom"))),
        FetchTask("c", returning(3)),
        FetchTask("d", failing(ValueError("bad payload")))
    ]

    result = asyncio.run(FanOutAggregator().run(tasks))

    failed = [failure.identifier for failure in result.failures]
    assert sorted(result.succeeded + failed) == ["a", "b", "c", "d"]
    assert not set(result.succeeded) & set(failed)
    assert result.successes == [1, 3]
    assert result.total == 2
    assert result.is_partial


def test_failures_carry_reasons():
    tasks = [
        FetchTask("ok", returning("x")),
        FetchTask("broken", failing(RuntimeError("connection reset")))
    ]

    result = asyncio.run(FanOutAggregator().run(tasks))

    assert len(result.failures) == 1
    assert result.failures[0].identifier == "broken"
    assert result.failures[0].reason == "connection reset"
    assert str(result.failures[0]) == "broken: connection reset"


def test_empty_exception_message_falls_back_to_class_name():
    tasks = [FetchTask("ok", returning(1)), FetchTask("silent", failing(TimeoutError()))]

    result = asyncio.run(FanOutAggregator().run(tasks))

    assert result.failures[0].reason == "TimeoutError"


def test_all_failed_raises_aggregate_error_listing_every_task():
    tasks = [
        FetchTask("x", failing(RuntimeError("down"))),
        FetchTask("y", failing(ValueError("garbled"))),
        FetchTask("z", failing(KeyError("missing")))
    ]

    with pytest.raises(AggregateError) as exc_info:
        asyncio.run(FanOutAggregator(label="market index").run(tasks))

    error = exc_info.value
    assert error.identifiers == ["x", "y", "z"]
    assert all(failure.reason for failure in error.failures)
    assert error.message.startswith("All 3 market index tasks failed")
    assert "x: down" in error.message


def test_empty_task_list_is_an_empty_success():
    result = asyncio.run(FanOutAggregator().run([]))

    assert result.successes == []
    assert result.failures == []
    assert result.total == 0
    assert not result.is_partial


def test_order_does_not_depend_on_completion_order():
    values = {"alpha": [5, 3], "beta": [5, 1], "gamma": [3, 9]}

    def build_tasks(rng):
        return [
            FetchTask(name, returning(items, delay=rng.uniform(0, 0.02)))
            for name, items in values.items()
        ]

    runs = []
    for seed in range(5):
        rng = random.Random(seed)
        result = asyncio.run(
            FanOutAggregator().run(
                build_tasks(rng),
                sort_key=lambda value: value,
                descending=True,
                flatten=True
            )
        )
        runs.append(result.successes)

    assert runs[0] == [9, 5, 5, 3, 3, 1]
    assert all(run == runs[0] for run in runs)


def test_equal_keys_break_ties_by_identifier_then_position():
    tasks = [
        FetchTask("zulu", returning([("zulu", 0, 10), ("zulu", 1, 10)])),
        FetchTask("alpha", returning([("alpha", 0, 10)]))
    ]

    result = asyncio.run(
        FanOutAggregator().run(tasks, sort_key=lambda item: item[2], descending=True, flatten=True)
    )

    assert result.successes == [("alpha", 0, 10), ("zulu", 0, 10), ("zulu", 1, 10)]


def test_without_sort_key_values_keep_task_order():
    tasks = [
        FetchTask("second", returning("b", delay=0.01)),
        FetchTask("first", returning("a"))
    ]

    result = asyncio.run(FanOutAggregator().run(tasks))

    assert result.successes == ["b", "a"]
    assert result.succeeded == ["second", "first"]


def test_limit_applies_after_sort_and_total_counts_everything():
    tasks = [
        FetchTask("one", returning([1, 4, 7])),
        FetchTask("two", returning([2, 5])),
        FetchTask("three", failing(RuntimeError("nope")))
    ]

    result = asyncio.run(
        FanOutAggregator().run(
            tasks,
            sort_key=lambda value: value,
            descending=True,
            limit=3,
            flatten=True
        )
    )

    assert result.successes == [7, 5, 4]
    assert result.total == 5
    assert result.succeeded == ["one", "two"]


def test_fast_failure_does_not_cancel_slow_siblings():
    completed = []

    def slow(name):
        async def operation():
            await asyncio.sleep(0.05)
            completed.append(name)
            return name
        return operation

    tasks = [
        FetchTask("fast-fail", failing(RuntimeError("immediately"))),
        FetchTask("slow-1", slow("slow-1")),
        FetchTask("slow-2", slow("slow-2"))
    ]

    result = asyncio.run(FanOutAggregator().run(tasks))

    assert sorted(completed) == ["slow-1", "slow-2"]
    assert result.successes == ["slow-1", "slow-2"]
    assert [failure.identifier for failure in result.failures] == ["fast-fail"]


def test_tasks_run_concurrently():
    async def scenario():
        loop = asyncio.get_running_loop()
        tasks = [FetchTask(str(i), returning(i, delay=0.1)) for i in range(10)]
        started = loop.time()
        result = await FanOutAggregator().run(tasks)
        return result, loop.time() - started

    result, elapsed = asyncio.run(scenario())

    assert len(result.successes) == 10
    assert elapsed < 0.5
