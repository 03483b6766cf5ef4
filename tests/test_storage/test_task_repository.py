"""
Unit tests for TaskRepository.
Covers loading, snapshot/revert on failed writes, bulk operations and import/export.
"""
import json
import logging

import pytest

from tasklist.exceptions import InvalidArgumentError, PersistenceError, ValidationError
from tasklist.models import Task
from tasklist.storage import StorageError, TaskRepository


@pytest.fixture
def stored_records(storage, storage_key):
    """Read back the records the repository last wrote."""
    def _read():
        return json.loads(storage.data[storage_key])
    return _read


class TestLoad:
    """Tests for loading persisted data on construction."""

    def test_load_empty_storage(self, repository):
        assert repository.count() == 0

    def test_load_valid_records(self, storage, make_task, storage_key):
        records = [make_task("a", task_id="1").to_dict(), make_task("b", task_id="2").to_dict()]
        storage.data[storage_key] = json.dumps(records)

        repository = TaskRepository(storage, storage_key)

        assert [task.id for task in repository.find_all()] == ["1", "2"]

    def test_load_skips_invalid_records(self, storage, caplog, make_task, storage_key):
        """Malformed records are dropped and logged, valid ones are kept."""
        records = [
            make_task("good", task_id="1").to_dict(),
            {"id": "2", "title": ""},
            "not a record",
            {"id": "3", "title": "x" * 201},
        ]
        storage.data[storage_key] = json.dumps(records)

        with caplog.at_level(logging.WARNING):
            repository = TaskRepository(storage, storage_key)

        assert [task.id for task in repository.find_all()] == ["1"]
        assert "Skipping invalid task record" in caplog.text

    @pytest.mark.parametrize("created_at", ["NaN", "Infinity", "-Infinity", "1e400"])
    def test_load_skips_non_finite_timestamps(self, storage, caplog, storage_key, created_at):
        storage.data[storage_key] = (
            '[{"id": "1", "title": "ok"}, '
            '{"id": "2", "title": "bad", "createdAt": ' + created_at + '}]'
        )

        with caplog.at_level(logging.WARNING):
            repository = TaskRepository(storage, storage_key)

        assert [task.id for task in repository.find_all()] == ["1"]
        assert "Skipping invalid task record" in caplog.text

    @pytest.mark.parametrize("payload", ["{not json", '{"id": "1"}', "42"])
    def test_load_corrupt_payload_resets_to_empty(self, storage, payload, caplog, storage_key):
        storage.data[storage_key] = payload

        with caplog.at_level(logging.ERROR):
            repository = TaskRepository(storage, storage_key)

        assert repository.count() == 0
        assert "Corrupted storage data" in caplog.text

    def test_load_storage_read_failure_resets_to_empty(self, storage, storage_key):
        storage.get_error = StorageError("unreadable")
        repository = TaskRepository(storage, storage_key)
        assert repository.count() == 0

    def test_load_does_not_write(self, storage, storage_key):
        storage.data[storage_key] = "{not json"
        TaskRepository(storage, storage_key)
        assert storage.write_count == 0
        assert storage.data[storage_key] == "{not json"


class TestSave:
    """Tests for save."""

    def test_save_new_task_persists(self, repository, storage, make_task, stored_records):
        task = make_task("a", task_id="1")

        result = repository.save(task)

        assert result is task
        assert repository.exists("1")
        assert stored_records() == [task.to_dict()]

    def test_save_replaces_existing_task(self, repository, storage, make_task, stored_records):
        task = make_task("a", task_id="1")
        repository.save(task)
        repository.save(task.update_title("b"))

        assert repository.count() == 1
        assert repository.find_by_id("1").title == "b"
        assert stored_records()[0]["title"] == "b"

    @pytest.mark.parametrize("value", [None, {"title": "a"}, "task"])
    def test_save_rejects_non_task(self, repository, value):
        with pytest.raises(InvalidArgumentError):
            repository.save(value)

    def test_save_failure_removes_new_task(self, repository, storage, make_task):
        storage.fail_writes = True

        with pytest.raises(PersistenceError) as exc_info:
            repository.save(make_task("a", task_id="1"))

        assert not repository.exists("1")
        assert exc_info.value.operation == "save"
        assert isinstance(exc_info.value.__cause__, PersistenceError)

    def test_save_failure_restores_previous_version(self, repository, storage, make_task):
        task = make_task("original", task_id="1")
        repository.save(task)
        storage.fail_writes = True

        with pytest.raises(PersistenceError):
            repository.save(task.update_title("changed"))

        assert repository.find_by_id("1").title == "original"

    def test_quota_error_has_distinct_message(self, repository, storage, make_task):
        storage.quota_exceeded = True

        with pytest.raises(PersistenceError, match="quota exceeded"):
            repository.save(make_task("a"))


class TestQueries:
    """Tests for read-only queries."""

    def test_find_all_returns_copies(self, populated_repository):
        repository, tasks = populated_repository
        first = repository.find_all()
        second = repository.find_all()
        assert first == tasks
        assert all(a is not b for a, b in zip(first, second))

    def test_find_all_keeps_insertion_order(self, populated_repository):
        repository, _ = populated_repository
        assert [task.id for task in repository.find_all()] == ["t-1", "t-2", "t-3"]

    def test_find_by(self, populated_repository):
        repository, _ = populated_repository
        assert [task.id for task in repository.find_by(lambda t: t.completed)] == ["t-2"]

    def test_find_by_rejects_non_callable(self, repository):
        with pytest.raises(InvalidArgumentError):
            repository.find_by("completed")

    def test_find_by_id(self, populated_repository):
        repository, tasks = populated_repository
        assert repository.find_by_id("t-1") == tasks[0]
        assert repository.find_by_id("missing") is None

    def test_count_and_count_by(self, populated_repository):
        repository, _ = populated_repository
        assert repository.count() == 3
        assert repository.count_by(lambda t: not t.completed) == 2
        with pytest.raises(InvalidArgumentError):
            repository.count_by(None)

    def test_get_stats(self, populated_repository):
        repository, _ = populated_repository
        assert repository.get_stats() == {
            "total": 3,
            "completed": 1,
            "pending": 2,
            "completion_rate": "33.3%",
        }

    def test_get_stats_empty(self, repository):
        assert repository.get_stats()["completion_rate"] == "0%"


class TestDelete:
    """Tests for delete and delete_many."""

    def test_delete_missing_is_noop(self, repository, storage):
        assert repository.delete("missing") is False
        assert storage.write_count == 0

    def test_delete_existing(self, populated_repository, storage, stored_records):
        repository, _ = populated_repository
        assert repository.delete("t-1") is True
        assert not repository.exists("t-1")
        assert [r["id"] for r in stored_records()] == ["t-2", "t-3"]

    def test_delete_failure_restores_task(self, populated_repository, storage):
        repository, _ = populated_repository
        storage.fail_writes = True

        with pytest.raises(PersistenceError):
            repository.delete("t-1")

        assert repository.exists("t-1")
        assert repository.count() == 3

    def test_delete_many_counts_actual_deletions(self, populated_repository):
        repository, _ = populated_repository
        assert repository.delete_many(["t-1", "missing", "t-3"]) == 2
        assert [task.id for task in repository.find_all()] == ["t-2"]

    def test_delete_many_nothing_matched_skips_write(self, populated_repository, storage):
        repository, _ = populated_repository
        writes = storage.write_count
        assert repository.delete_many(["missing"]) == 0
        assert repository.delete_many([]) == 0
        assert storage.write_count == writes

    @pytest.mark.parametrize("ids", [None, "t-1", {"t-1"}, 3])
    def test_delete_many_rejects_non_sequence(self, repository, ids):
        with pytest.raises(InvalidArgumentError):
            repository.delete_many(ids)

    @pytest.mark.parametrize("ids", [["t-1", ["x"]], ["t-1", 3], ["t-1", None]])
    def test_delete_many_rejects_non_string_ids(self, populated_repository, storage, snapshot, stored_records, ids):
        repository, _ = populated_repository
        before = snapshot(repository)
        writes = storage.write_count

        with pytest.raises(InvalidArgumentError):
            repository.delete_many(ids)

        assert snapshot(repository) == before
        assert sorted(record["id"] for record in stored_records()) == ["t-1", "t-2", "t-3"]
        assert storage.write_count == writes

    def test_delete_many_failure_reverts(self, populated_repository, storage, snapshot):
        repository, _ = populated_repository
        before = snapshot(repository)
        storage.fail_writes = True

        with pytest.raises(PersistenceError):
            repository.delete_many(["t-1", "t-2"])

        assert snapshot(repository) == before


class TestSaveMany:
    """Tests for save_many."""

    def test_save_many_returns_count(self, repository, storage, make_task):
        tasks = [make_task("a"), make_task("b")]
        assert repository.save_many(tasks) == 2
        assert storage.write_count == 1

    def test_save_many_rejects_non_sequence(self, repository, make_task):
        with pytest.raises(InvalidArgumentError):
            repository.save_many(make_task("a"))

    def test_save_many_invalid_element_reverts(self, populated_repository, storage, snapshot):
        repository, tasks = populated_repository
        before = snapshot(repository)
        writes = storage.write_count

        with pytest.raises(InvalidArgumentError):
            repository.save_many([tasks[0].update_title("changed"), {"title": "bad"}])

        assert snapshot(repository) == before
        assert storage.write_count == writes

    def test_save_many_failure_reverts(self, populated_repository, storage, make_task, snapshot):
        repository, tasks = populated_repository
        before = snapshot(repository)
        storage.fail_writes = True

        with pytest.raises(PersistenceError):
            repository.save_many([tasks[0].update_order(9), make_task("new")])

        assert snapshot(repository) == before


class TestClear:
    """Tests for clear."""

    def test_clear_empty_returns_zero_without_writing(self, repository, storage):
        assert repository.clear() == 0
        assert storage.write_count == 0

    def test_clear_removes_everything(self, populated_repository, storage, stored_records):
        repository, _ = populated_repository
        assert repository.clear() == 3
        assert repository.count() == 0
        assert stored_records() == []

    def test_clear_failure_reverts(self, populated_repository, storage, snapshot):
        repository, _ = populated_repository
        before = snapshot(repository)
        storage.fail_writes = True

        with pytest.raises(PersistenceError):
            repository.clear()

        assert snapshot(repository) == before


class TestImportExport:
    """Tests for export_json and import_json."""

    def test_export_is_pretty_printed(self, populated_repository):
        repository, tasks = populated_repository
        exported = repository.export_json()
        assert exported.startswith('[\n  {\n    "id"')
        assert json.loads(exported) == [task.to_dict() for task in tasks]

    def test_export_import_round_trip(self, populated_repository, storage, snapshot):
        repository, tasks = populated_repository
        exported = repository.export_json()

        other = TaskRepository(storage, "other_key")
        assert other.import_json(exported) == 3

        assert snapshot(other) == snapshot(repository)

    def test_import_round_trip_ignores_record_order(self, populated_repository, snapshot):
        repository, tasks = populated_repository
        before = snapshot(repository)
        records = json.loads(repository.export_json())

        repository.import_json(json.dumps(list(reversed(records))))

        assert snapshot(repository) == before

    def test_import_replaces_collection_and_writes_once(self, populated_repository, storage, make_task, stored_records):
        repository, _ = populated_repository
        writes = storage.write_count
        new_tasks = [make_task("only", task_id="n-1").to_dict()]

        assert repository.import_json(json.dumps(new_tasks)) == 1

        assert [task.id for task in repository.find_all()] == ["n-1"]
        assert stored_records() == new_tasks
        assert storage.write_count == writes + 1

    @pytest.mark.parametrize("payload", ["{bad", '{"id": "1", "title": "a"}', "null"])
    def test_import_rejects_non_list_payload(self, populated_repository, payload, snapshot):
        repository, _ = populated_repository
        before = snapshot(repository)

        with pytest.raises(ValidationError):
            repository.import_json(payload)

        assert snapshot(repository) == before

    def test_import_rejects_whole_batch_on_one_bad_record(self, populated_repository, storage, make_task, snapshot, storage_key):
        repository, _ = populated_repository
        before = snapshot(repository)
        blob = storage.data[storage_key]
        payload = json.dumps([make_task("fine").to_dict(), {"title": "   "}])

        with pytest.raises(ValidationError) as exc_info:
            repository.import_json(payload)

        assert "index 1" in exc_info.value.message
        assert snapshot(repository) == before
        assert storage.data[storage_key] == blob

    @pytest.mark.parametrize("created_at", ["NaN", "Infinity", "1e400"])
    def test_import_rejects_non_finite_timestamp(self, populated_repository, storage, snapshot, storage_key, created_at):
        repository, _ = populated_repository
        before = snapshot(repository)
        blob = storage.data[storage_key]

        with pytest.raises(ValidationError) as exc_info:
            repository.import_json('[{"title": "x", "createdAt": ' + created_at + '}]')

        assert "index 0" in exc_info.value.message
        assert snapshot(repository) == before
        assert storage.data[storage_key] == blob

    def test_import_persist_failure_reverts(self, populated_repository, storage, make_task, snapshot):
        repository, _ = populated_repository
        before = snapshot(repository)
        storage.fail_writes = True

        with pytest.raises(PersistenceError):
            repository.import_json(json.dumps([make_task("x").to_dict()]))

        assert snapshot(repository) == before

    def test_import_rejects_non_string(self, repository):
        with pytest.raises(InvalidArgumentError):
            repository.import_json([{"title": "a"}])


@pytest.mark.parametrize("operation", [
    lambda repo, tasks: repo.save(tasks[0].toggle_completed()),
    lambda repo, tasks: repo.save(Task(title="new")),
    lambda repo, tasks: repo.delete(tasks[1].id),
    lambda repo, tasks: repo.delete_many([t.id for t in tasks]),
    lambda repo, tasks: repo.save_many([t.update_order(10) for t in tasks]),
    lambda repo, tasks: repo.clear(),
    lambda repo, tasks: repo.import_json("[]"),
], ids=["save-existing", "save-new", "delete", "delete_many", "save_many", "clear", "import"])
def test_failed_write_leaves_collection_unchanged(populated_repository, storage, operation, snapshot, storage_key):
    """Every mutating operation is all-or-nothing when the write fails."""
    repository, tasks = populated_repository
    before = snapshot(repository)
    blob = storage.data[storage_key]
    storage.fail_writes = True

    with pytest.raises(PersistenceError):
        operation(repository, tasks)

    assert snapshot(repository) == before
    assert storage.data[storage_key] == blob
    assert isinstance(Task.from_dict(json.loads(blob)[0]), Task)
