"""Tests for the caching Todoist repository against a fake SDK client."""

import asyncio
import logging
import threading
import time
from types import SimpleNamespace

import pytest
import requests

from goalcron.engine.dependency_labels import ManageDependencyLabelsUseCase
from goalcron.integrations.todoist import TodoistTaskRepository, task_from_todoist, update_payload
from goalcron.models.task import TaskId, TaskLabel
from goalcron.repository.base import LabelNotFoundError, RepositoryError
from goalcron.repository.cache import SnapshotCache


def sdk_task(task_id, content, labels=None, parent_id=None, completed_at=None):
    return SimpleNamespace(id=task_id, content=content, labels=labels, parent_id=parent_id, completed_at=completed_at)


class FakeTodoistAPI:
    """Stand-in for todoist_api_python.api.TodoistAPI with paged results."""

    def __init__(self, task_pages=(), label_pages=()):
        self.task_pages = [list(page) for page in task_pages]
        self.label_pages = [list(page) for page in label_pages]
        self.calls = []
        self.next_id = 100
        self.fail_with = None

    def _maybe_fail(self):
        if self.fail_with is not None:
            raise self.fail_with

    def get_tasks(self):
        self.calls.append(("get_tasks",))
        self._maybe_fail()
        # Copies, so later updates do not show through an already returned page
        return iter([[SimpleNamespace(**vars(task)) for task in page] for page in self.task_pages])

    def get_labels(self):
        self.calls.append(("get_labels",))
        self._maybe_fail()
        return iter([list(page) for page in self.label_pages])

    def update_task(self, task_id, **kwargs):
        self.calls.append(("update_task", task_id, kwargs))
        self._maybe_fail()
        for page in self.task_pages:
            for task in page:
                if task.id == task_id and "labels" in kwargs:
                    task.labels = list(kwargs["labels"])
        return True

    def add_task(self, content, parent_id=None):
        self.calls.append(("add_task", content, parent_id))
        self._maybe_fail()
        self.next_id += 1
        return sdk_task(str(self.next_id), content, [], parent_id)

    def delete_task(self, task_id):
        self.calls.append(("delete_task", task_id))
        self._maybe_fail()
        return True

    def add_label(self, name):
        self.calls.append(("add_label", name))
        self._maybe_fail()
        if any(label.name == name for page in self.label_pages for label in page):
            raise requests.exceptions.HTTPError("400 Client Error: Label already exists")
        self.next_id += 1
        label = SimpleNamespace(id=str(self.next_id), name=name)
        self.label_pages.append([label])
        return label

    def delete_label(self, label_id):
        self.calls.append(("delete_label", label_id))
        self._maybe_fail()
        self.label_pages = [[l for l in page if l.id != label_id] for page in self.label_pages]
        return True

    def count(self, name):
        return sum(1 for call in self.calls if call[0] == name)


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def api():
    return FakeTodoistAPI(
        task_pages=[
            [sdk_task("1", "Goal", ["goal"]), sdk_task("2", "Work", ["task"], parent_id="1")],
            [sdk_task("3", "Done", [], completed_at="2024-01-01T00:00:00Z")],
        ],
        label_pages=[
            [SimpleNamespace(id="L1", name="goal"), SimpleNamespace(id="L2", name="dep-Goal")],
            [SimpleNamespace(id="L3", name="task")],
        ],
    )


@pytest.fixture
def repository(api, clock):
    return TodoistTaskRepository(api, SnapshotCache(ttl_seconds=300, clock=clock))


class TestMapping:
    def test_task_from_todoist(self):
        task = task_from_todoist(sdk_task(42, "Goal", ["goal", "dep-x"], parent_id=7))
        assert task.id == TaskId("42")
        assert task.parent_id == TaskId("7")
        assert task.label_names() == ["goal", "dep-x"]
        assert task.is_completed is False

    def test_missing_labels_and_completion(self):
        task = task_from_todoist(sdk_task("1", "Done", None, completed_at="2024-01-01"))
        assert task.labels == []
        assert task.parent_id is None
        assert task.is_completed is True

    def test_update_payload(self):
        task = task_from_todoist(sdk_task("1", "Goal", ["goal", "non-milestone"]))
        assert update_payload(task) == {"labels": ["goal", "non-milestone"]}


class TestSnapshots:
    def test_get_all_walks_every_page(self, repository, run):
        tasks = run(repository.get_all())
        assert [t.id.value for t in tasks] == ["1", "2", "3"]

    def test_get_all_is_cached(self, repository, api, run):
        run(repository.get_all())
        run(repository.get_all())
        assert api.count("get_tasks") == 1

    def test_cache_expires(self, repository, api, clock, run):
        run(repository.get_all())
        clock.now += 301
        run(repository.get_all())
        assert api.count("get_tasks") == 2

    def test_cached_snapshot_is_not_shared(self, repository, run):
        first = run(repository.get_all())
        first.get_by_id(TaskId("1")).add_label(TaskLabel("non-milestone"))
        second = run(repository.get_all())
        assert not second.get_by_id(TaskId("1")).is_non_milestone()

    def test_get_labels_cached(self, repository, api, run):
        labels = run(repository.get_labels())
        assert [l.title for l in labels] == ["goal", "dep-Goal", "task"]
        run(repository.get_labels())
        assert api.count("get_labels") == 1


class TestMutations:
    @pytest.mark.parametrize("mutation", ["update", "create", "delete", "create_label", "delete_label"])
    def test_any_mutation_clears_both_caches(self, repository, api, run, mutation):
        tasks = run(repository.get_all())
        run(repository.get_labels())

        if mutation == "update":
            run(repository.update(tasks.get_by_id(TaskId("1"))))
        elif mutation == "create":
            run(repository.create("New"))
        elif mutation == "delete":
            run(repository.delete(TaskId("2")))
        elif mutation == "create_label":
            run(repository.create_label("dep-New"))
        else:
            run(repository.delete_label("dep-Goal"))

        tasks_fetches = api.count("get_tasks")
        labels_fetches = api.count("get_labels")
        run(repository.get_all())
        run(repository.get_labels())
        assert api.count("get_tasks") == tasks_fetches + 1
        assert api.count("get_labels") == labels_fetches + 1

    def test_update_sends_labels(self, repository, api, run):
        task = run(repository.get_all()).get_by_id(TaskId("1"))
        task.add_label(TaskLabel("non-milestone"))
        run(repository.update(task))
        assert ("update_task", "1", {"labels": ["goal", "non-milestone"]}) in api.calls

    def test_create_with_parent(self, repository, api, run):
        task = run(repository.create("Goalのマイルストーンを置く", TaskId("1")))
        assert ("add_task", "Goalのマイルストーンを置く", "1") in api.calls
        assert task.parent_id == TaskId("1")
        assert task.is_milestone_marker_task()

    def test_create_without_parent(self, repository, api, run):
        run(repository.create("Top level"))
        assert ("add_task", "Top level", None) in api.calls

    def test_create_label_returns_none_for_existing(self, repository, api, run):
        assert run(repository.create_label("dep-Goal")) is None
        assert api.count("add_label") == 0

    def test_create_label(self, repository, api, run):
        label = run(repository.create_label("dep-New"))
        assert label == TaskLabel("dep-New")
        assert api.count("add_label") == 1


class TestDeleteLabel:
    def test_resolves_title_to_id(self, repository, api, run):
        run(repository.get_labels())
        run(repository.delete_label("dep-Goal"))
        assert ("delete_label", "L2") in api.calls

    def test_refetches_when_title_unknown(self, repository, api, run):
        run(repository.delete_label("task"))
        assert api.count("get_labels") == 1
        assert ("delete_label", "L3") in api.calls

    def test_refetch_ignores_cache(self, repository, api, run):
        run(repository.get_labels())
        api.label_pages.append([SimpleNamespace(id="L9", name="dep-Added-Elsewhere")])
        run(repository.delete_label("dep-Added-Elsewhere"))
        assert ("delete_label", "L9") in api.calls

    def test_unknown_title(self, repository, run):
        with pytest.raises(LabelNotFoundError):
            run(repository.delete_label("dep-Missing"))

    def test_created_label_can_be_deleted(self, repository, api, run):
        run(repository.create_label("dep-New"))
        new_id = api.label_pages[-1][0].id
        run(repository.delete_label("dep-New"))
        assert ("delete_label", new_id) in api.calls


class TestErrors:
    def test_http_error_wrapped(self, repository, api, run):
        api.fail_with = requests.exceptions.HTTPError("429 Too Many Requests")
        with pytest.raises(RepositoryError) as exc_info:
            run(repository.get_all())
        assert isinstance(exc_info.value.__cause__, requests.exceptions.HTTPError)

    def test_network_error_wrapped(self, repository, api, run):
        api.fail_with = requests.exceptions.ConnectionError("down")
        with pytest.raises(RepositoryError):
            run(repository.delete(TaskId("1")))

    def test_failed_mutation_keeps_cache(self, repository, api, run):
        run(repository.get_all())
        api.fail_with = RuntimeError("boom")
        with pytest.raises(RepositoryError):
            run(repository.create("New"))
        api.fail_with = None
        run(repository.get_all())
        assert api.count("get_tasks") == 1


class BlockingTodoistAPI(FakeTodoistAPI):
    """Fake whose next get_tasks/get_labels takes its snapshot, then waits to be released."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.block_next = False
        self.fetch_started = threading.Event()
        self.release = threading.Event()

    def _block(self, snapshot):
        if self.block_next:
            self.block_next = False
            self.fetch_started.set()
            self.release.wait(5)
        return snapshot

    def get_tasks(self):
        return self._block(super().get_tasks())

    def get_labels(self):
        return self._block(super().get_labels())


class SlowLabelsTodoistAPI(FakeTodoistAPI):
    def get_labels(self):
        time.sleep(0.05)
        return super().get_labels()

    def add_label(self, name):
        time.sleep(0.05)
        return super().add_label(name)


class TestOverlappingFetches:
    @pytest.fixture
    def blocking_api(self, api):
        return BlockingTodoistAPI(task_pages=api.task_pages, label_pages=api.label_pages)

    @pytest.fixture
    def blocking_repository(self, blocking_api, clock):
        return TodoistTaskRepository(blocking_api, SnapshotCache(ttl_seconds=300, clock=clock))

    def test_update_during_task_fetch_is_not_hidden(self, blocking_repository, blocking_api, run):
        goal = run(blocking_repository.get_all()).get_by_id(TaskId("1"))
        goal.add_label(TaskLabel("non-milestone"))
        run(blocking_repository.update(goal))

        async def scenario():
            blocking_api.block_next = True
            fetch = asyncio.ensure_future(blocking_repository.get_all())
            await asyncio.to_thread(blocking_api.fetch_started.wait, 5)
            updated = goal.model_copy(deep=True)
            updated.remove_label("non-milestone")
            await blocking_repository.update(updated)
            blocking_api.release.set()
            stale = await fetch
            fresh = await blocking_repository.get_all()
            return stale, fresh

        stale, fresh = run(scenario())

        assert stale.get_by_id(TaskId("1")).is_non_milestone()
        assert fresh.get_by_id(TaskId("1")).label_names() == ["goal"]
        assert blocking_api.count("get_tasks") == 3

    def test_label_created_during_label_fetch_is_seen(self, blocking_repository, blocking_api, run):
        async def scenario():
            blocking_api.block_next = True
            fetch = asyncio.ensure_future(blocking_repository.get_labels())
            await asyncio.to_thread(blocking_api.fetch_started.wait, 5)
            created = await blocking_repository.create_label("dep-New")
            blocking_api.release.set()
            stale = await fetch
            fresh = await blocking_repository.get_labels()
            return created, stale, fresh

        created, stale, fresh = run(scenario())

        assert created == TaskLabel("dep-New")
        assert TaskLabel("dep-New") not in stale
        assert TaskLabel("dep-New") in fresh
        assert blocking_api.count("get_labels") == 3

        run(blocking_repository.delete_label("dep-New"))
        assert ("delete_label", blocking_api.label_pages[-1][0].id) in blocking_api.calls


class TestConcurrentLabelCreation:
    @pytest.fixture
    def slow_api(self):
        return SlowLabelsTodoistAPI(
            task_pages=[[
                sdk_task("1", "Review", ["goal"]),
                sdk_task("2", "Review", ["goal"]),
            ]],
            label_pages=[[SimpleNamespace(id="L1", name="goal")]],
        )

    def test_same_name_created_once(self, slow_api, run):
        repository = TodoistTaskRepository(slow_api)

        async def both():
            return await asyncio.gather(
                repository.create_label("dep-Review"),
                repository.create_label("dep-Review"),
            )

        results = run(both())
        assert sorted(results, key=lambda r: r is None) == [TaskLabel("dep-Review"), None]
        assert slow_api.count("add_label") == 1

    def test_duplicate_goal_names_count_as_skipped(self, slow_api, run, caplog):
        repository = TodoistTaskRepository(slow_api)
        use_case = ManageDependencyLabelsUseCase(repository, concurrency=2)

        with caplog.at_level(logging.INFO):
            summary = run(use_case.generate_dependency_labels())

        assert (summary.created, summary.skipped) == (1, 1)
        assert slow_api.count("add_label") == 1
        assert [r for r in caplog.records if r.levelno >= logging.ERROR] == []


class TestLabelIdMap:
    def test_map_is_rebuilt_on_refetch(self, repository, api, clock, run):
        run(repository.get_labels())
        # Removed outside goalcron
        api.label_pages = [[l for l in page if l.name != "dep-Goal"] for page in api.label_pages]
        clock.now += 301
        run(repository.get_labels())

        with pytest.raises(LabelNotFoundError):
            run(repository.delete_label("dep-Goal"))
        assert api.count("delete_label") == 0
