"""
Unit tests for recordbook/store/ — models + RecordStore

Coverage plan
─────────────
models.py   → 3 tests  (Record fields, str, Handle state)
db.py       → open / create / list / update / delete / get,
              export / import round-trip, stale + closed handles,
              failure taxonomy, the shopping-list scenario,
              stale / closed rejection for every operation,
              import blocking concurrent callers
"""

import io
import sqlite3
import threading

import pytest


# ─────────────────────────────────────────────────────────────────────────────
# 1. Models
# ─────────────────────────────────────────────────────────────────────────────

class TestRecord:
    """Record dataclass — one row of the names table."""

    def test_creates_with_fields(self):
        from recordbook.store.models import Record
        rec = Record(id=1, name="Buy milk")
        assert rec.id == 1
        assert rec.name == "Buy milk"

    def test_records_compare_by_value(self):
        from recordbook.store.models import Record
        assert Record(1, "a") == Record(1, "a")
        assert Record(1, "a") != Record(2, "a")

    def test_handle_starts_open(self, tmp_path):
        from recordbook.store.models import Handle, HandleState
        h = Handle(name="t.db", path=tmp_path / "t.db", generation=0)
        assert h.state is HandleState.OPEN
        assert h.is_open


# ─────────────────────────────────────────────────────────────────────────────
# Fixtures
# ─────────────────────────────────────────────────────────────────────────────

@pytest.fixture
def store(tmp_path):
    """Return a RecordStore over a temporary data directory."""
    from recordbook.store.db import RecordStore
    return RecordStore(data_dir=str(tmp_path / "data"))


@pytest.fixture
def handle(store):
    return store.open("t.db")


def _names(store, handle):
    return [r.name for r in store.list(handle)]


# ─────────────────────────────────────────────────────────────────────────────
# 2. open()
# ─────────────────────────────────────────────────────────────────────────────

class TestOpen:

    def test_open_creates_directory_and_file(self, store):
        h = store.open("t.db")
        assert h.path.exists()
        assert h.path.parent == store.data_dir

    def test_schema_has_names_table(self, handle):
        conn = sqlite3.connect(str(handle.path))
        try:
            cols = [row[1] for row in conn.execute("PRAGMA table_info(names)")]
        finally:
            conn.close()
        assert cols == ["id", "name"]

    def test_reopen_is_idempotent(self, store):
        h1 = store.open("t.db")
        store.create(h1, "keep me")
        h2 = store.open("t.db")
        h3 = store.open("t.db")
        assert _names(store, h3) == ["keep me"]
        assert _names(store, h2) == ["keep me"]

    def test_open_fails_when_directory_cannot_be_created(self, tmp_path):
        from recordbook.store.db import RecordStore
        from recordbook.exceptions import StorageUnavailableError
        blocker = tmp_path / "not_a_dir"
        blocker.write_text("file in the way")
        with pytest.raises(StorageUnavailableError):
            RecordStore(data_dir=str(blocker / "sub")).open("t.db")

    def test_open_rejects_names_with_separators(self, store):
        from recordbook.exceptions import StorageUnavailableError
        with pytest.raises(StorageUnavailableError):
            store.open("../escape.db")

    def test_open_fails_on_non_database_file(self, store):
        from recordbook.exceptions import StorageUnavailableError
        store.data_dir.mkdir(parents=True)
        (store.data_dir / "junk.db").write_bytes(b"this is not sqlite" * 100)
        with pytest.raises(StorageUnavailableError):
            store.open("junk.db")


# ─────────────────────────────────────────────────────────────────────────────
# 3. create() / list()
# ─────────────────────────────────────────────────────────────────────────────

class TestCreate:

    def test_create_returns_record_with_id(self, store, handle):
        rec = store.create(handle, "Buy milk")
        assert rec.id >= 1
        assert rec.name == "Buy milk"

    def test_create_appends_exactly_one_record(self, store, handle):
        store.create(handle, "a")
        before = store.list(handle)
        rec = store.create(handle, "b")
        after = store.list(handle)
        assert len(after) == len(before) + 1
        assert after[-1] == rec

    def test_ids_strictly_increase(self, store, handle):
        ids = [store.create(handle, n).id for n in ("a", "b", "c")]
        assert ids == sorted(ids)
        assert len(set(ids)) == 3

    @pytest.mark.parametrize("blank", ["", "   ", "\t\n"])
    def test_blank_name_is_noop(self, store, handle, blank):
        store.create(handle, "x")
        assert store.create(handle, blank) is None
        assert len(store.list(handle)) == 1

    def test_name_stored_as_given(self, store, handle):
        rec = store.create(handle, "  padded  ")
        assert store.get(handle, rec.id).name == "  padded  "

    def test_list_empty_store(self, store, handle):
        assert store.list(handle) == []

    def test_duplicate_names_allowed(self, store, handle):
        store.create(handle, "same")
        store.create(handle, "same")
        assert _names(store, handle) == ["same", "same"]

    def test_create_is_durable_across_stores(self, tmp_path, store, handle):
        from recordbook.store.db import RecordStore
        store.create(handle, "persisted")
        other = RecordStore(data_dir=str(store.data_dir))
        assert _names(other, other.open("t.db")) == ["persisted"]


# ─────────────────────────────────────────────────────────────────────────────
# 4. update() / delete() / get()
# ─────────────────────────────────────────────────────────────────────────────

class TestUpdate:

    def test_update_existing_returns_true(self, store, handle):
        rec = store.create(handle, "old")
        assert store.update(handle, rec.id, "new") is True
        assert store.get(handle, rec.id).name == "new"

    def test_update_absent_id_returns_false(self, store, handle):
        store.create(handle, "a")
        assert store.update(handle, 999, "zzz") is False
        assert _names(store, handle) == ["a"]

    def test_update_blank_name_is_noop(self, store, handle):
        rec = store.create(handle, "keep")
        assert store.update(handle, rec.id, "   ") is False
        assert store.get(handle, rec.id).name == "keep"

    def test_update_matches_id_not_name(self, store, handle):
        a = store.create(handle, "twin")
        store.create(handle, "twin")
        store.update(handle, a.id, "changed")
        assert _names(store, handle) == ["changed", "twin"]


class TestDelete:

    def test_delete_existing_returns_true(self, store, handle):
        rec = store.create(handle, "gone")
        assert store.delete(handle, rec.id) is True
        assert store.get(handle, rec.id) is None

    def test_delete_absent_returns_false(self, store, handle):
        assert store.delete(handle, 42) is False

    def test_deleted_id_is_never_reused(self, store, handle):
        store.create(handle, "a")
        last = store.create(handle, "b")
        store.delete(handle, last.id)
        fresh = store.create(handle, "c")
        assert fresh.id > last.id
        assert last.id not in [r.id for r in store.list(handle)]

    def test_get_missing_returns_none(self, store, handle):
        assert store.get(handle, 1) is None


class TestScenario:

    def test_shopping_list_walkthrough(self, store):
        from recordbook.store.models import Record
        h = store.open("t.db")
        store.create(h, "Buy milk")
        store.create(h, "Call Bob")
        assert store.list(h) == [Record(1, "Buy milk"), Record(2, "Call Bob")]
        store.update(h, 1, "Buy bread")
        assert store.list(h) == [Record(1, "Buy bread"), Record(2, "Call Bob")]
        store.delete(h, 2)
        assert store.list(h) == [Record(1, "Buy bread")]


# ─────────────────────────────────────────────────────────────────────────────
# 5. export_to() / import_from()
# ─────────────────────────────────────────────────────────────────────────────

class TestExport:

    def test_export_copies_bytes_verbatim(self, store, handle, tmp_path):
        store.create(handle, "a")
        dest = tmp_path / "backup" / "copy.db"
        store.export_to(handle, dest)
        assert dest.read_bytes() == handle.path.read_bytes()

    def test_export_leaves_no_temp_files(self, store, handle, tmp_path):
        out = tmp_path / "out"
        store.export_to(handle, out / "copy.db")
        assert [p.name for p in out.iterdir()] == ["copy.db"]

    def test_export_overwrites_existing_destination(self, store, handle, tmp_path):
        dest = tmp_path / "copy.db"
        dest.write_bytes(b"stale")
        store.create(handle, "fresh")
        store.export_to(handle, dest)
        assert dest.read_bytes() == handle.path.read_bytes()

    def test_export_missing_source_raises(self, store, handle, tmp_path):
        from recordbook.exceptions import ExportFailedError
        handle.path.unlink()
        with pytest.raises(ExportFailedError):
            store.export_to(handle, tmp_path / "copy.db")

    def test_export_permission_denied(self, store, handle):
        from recordbook.exceptions import PermissionDeniedError
        from recordbook.store.transfer import ByteDestination

        class Refusing(ByteDestination):
            def write_atomically(self, reader, size):
                raise PermissionDeniedError("share sheet dismissed")

        with pytest.raises(PermissionDeniedError):
            store.export_to(handle, Refusing())

    def test_export_to_custom_destination_receives_size(self, store, handle):
        from recordbook.store.transfer import ByteDestination

        class Capture(ByteDestination):
            def write_atomically(self, reader, size):
                self.size = size
                self.data = reader.read()

        dest = Capture()
        store.create(handle, "x")
        store.export_to(handle, dest)
        assert dest.size == len(dest.data) == handle.path.stat().st_size


class TestImport:

    def test_round_trip_restores_same_records(self, tmp_path):
        from recordbook.store.db import RecordStore
        src_store = RecordStore(data_dir=str(tmp_path / "a"))
        h = src_store.open("t.db")
        for n in ("one", "two", "three"):
            src_store.create(h, n)
        src_store.delete(h, 2)
        src_store.export_to(h, tmp_path / "backup.db")

        dst_store = RecordStore(data_dir=str(tmp_path / "b"))
        h2 = dst_store.open("t.db")
        dst_store.create(h2, "will be replaced")
        h2 = dst_store.import_from(h2, tmp_path / "backup.db")

        assert dst_store.list(h2) == src_store.list(h)

    def test_import_closes_old_handle(self, store, handle, tmp_path):
        from recordbook.exceptions import HandleClosedError
        store.export_to(handle, tmp_path / "b.db")
        new = store.import_from(handle, tmp_path / "b.db")
        assert new.is_open
        assert not handle.is_open
        with pytest.raises(HandleClosedError):
            store.list(handle)

    def test_other_handles_become_stale(self, store, handle, tmp_path):
        from recordbook.exceptions import StaleHandleError
        other = store.open("t.db")
        store.export_to(handle, tmp_path / "b.db")
        store.import_from(handle, tmp_path / "b.db")
        with pytest.raises(StaleHandleError):
            store.create(other, "should fail")

    def test_ids_continue_after_import(self, store, handle, tmp_path):
        store.create(handle, "a")
        store.create(handle, "b")
        store.delete(handle, 2)
        store.export_to(handle, tmp_path / "b.db")
        new = store.import_from(handle, tmp_path / "b.db")
        assert store.create(new, "c").id == 3

    def test_import_missing_source_keeps_old_file(self, store, handle, tmp_path):
        from recordbook.exceptions import ImportFailedError
        store.create(handle, "survivor")
        with pytest.raises(ImportFailedError):
            store.import_from(handle, tmp_path / "nope.db")
        assert handle.is_open
        assert _names(store, handle) == ["survivor"]

    def test_import_garbage_keeps_old_file(self, store, handle, tmp_path):
        from recordbook.exceptions import ImportFailedError
        junk = tmp_path / "junk.db"
        junk.write_bytes(b"\x00not a database\xff" * 512)
        store.create(handle, "survivor")
        with pytest.raises(ImportFailedError):
            store.import_from(handle, junk)
        assert _names(store, handle) == ["survivor"]
        leftovers = [p for p in store.data_dir.iterdir() if p.name != "t.db"]
        assert leftovers == []

    def test_import_source_without_table_gets_schema(self, store, handle, tmp_path):
        empty = tmp_path / "empty.db"
        conn = sqlite3.connect(str(empty))
        conn.execute("CREATE TABLE other (x INTEGER)")
        conn.commit()
        conn.close()
        new = store.import_from(handle, empty)
        assert store.list(new) == []

    def test_import_from_stale_handle_rejected(self, store, handle, tmp_path):
        from recordbook.exceptions import StaleHandleError
        stale = store.open("t.db")
        store.export_to(handle, tmp_path / "b.db")
        store.import_from(handle, tmp_path / "b.db")
        with pytest.raises(StaleHandleError):
            store.import_from(stale, tmp_path / "b.db")


# ─────────────────────────────────────────────────────────────────────────────
# 6. Handle lifecycle + locking
# ─────────────────────────────────────────────────────────────────────────────

class TestHandleLifecycle:

    def test_closed_handle_rejects_operations(self, store, handle):
        from recordbook.exceptions import HandleClosedError, StaleHandleError
        store.close(handle)
        with pytest.raises(HandleClosedError):
            store.create(handle, "x")
        with pytest.raises(StaleHandleError):
            store.list(handle)

    def test_close_twice_is_noop(self, store, handle):
        store.close(handle)
        store.close(handle)
        assert not handle.is_open

    def test_generation_shared_across_store_instances(self, store, handle, tmp_path):
        from recordbook.exceptions import StaleHandleError
        from recordbook.store.db import RecordStore
        other = store.open("t.db")
        store.export_to(handle, tmp_path / "b.db")
        store.import_from(handle, tmp_path / "b.db")
        second = RecordStore(data_dir=str(store.data_dir))
        with pytest.raises(StaleHandleError):
            second.list(other)
        assert second.open("t.db").generation == 1

    def test_concurrent_creates_do_not_lose_rows(self, store, handle):
        def worker(prefix):
            for i in range(20):
                store.create(handle, f"{prefix}-{i}")

        threads = [threading.Thread(target=worker, args=(p,)) for p in "abcd"]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        records = store.list(handle)
        assert len(records) == 80
        assert len({r.id for r in records}) == 80


# ─────────────────────────────────────────────────────────────────────────────
# 7. Stale / closed handles reject every operation
# ─────────────────────────────────────────────────────────────────────────────

_HANDLE_CALLS = {
    "create":       lambda s, h, tmp: s.create(h, "x"),
    "create_blank": lambda s, h, tmp: s.create(h, "   "),
    "update":       lambda s, h, tmp: s.update(h, 1, "y"),
    "update_blank": lambda s, h, tmp: s.update(h, 1, ""),
    "delete":       lambda s, h, tmp: s.delete(h, 1),
    "get":          lambda s, h, tmp: s.get(h, 1),
    "list":         lambda s, h, tmp: s.list(h),
    "export_to":    lambda s, h, tmp: s.export_to(h, tmp / "out.db"),
}


class TestHandleRejection:

    @pytest.mark.parametrize("call", sorted(_HANDLE_CALLS))
    def test_stale_handle_rejected(self, store, handle, tmp_path, call):
        from recordbook.exceptions import HandleClosedError, StaleHandleError
        other = store.open("t.db")
        store.create(handle, "a")
        store.export_to(handle, tmp_path / "b.db")
        store.import_from(handle, tmp_path / "b.db")
        with pytest.raises(StaleHandleError) as info:
            _HANDLE_CALLS[call](store, other, tmp_path)
        assert not isinstance(info.value, HandleClosedError)

    @pytest.mark.parametrize("call", sorted(_HANDLE_CALLS))
    def test_closed_handle_rejected(self, store, handle, tmp_path, call):
        from recordbook.exceptions import HandleClosedError
        store.create(handle, "a")
        store.close(handle)
        with pytest.raises(HandleClosedError):
            _HANDLE_CALLS[call](store, handle, tmp_path)

    def test_rejected_calls_leave_file_unchanged(self, store, handle, tmp_path):
        from recordbook.exceptions import StaleHandleError
        store.create(handle, "a")
        store.close(handle)
        with pytest.raises(StaleHandleError):
            store.delete(handle, 1)
        fresh = store.open("t.db")
        assert _names(store, fresh) == ["a"]


# ─────────────────────────────────────────────────────────────────────────────
# 8. Failure mapping
# ─────────────────────────────────────────────────────────────────────────────

class TestFailureMapping:

    def test_unencodable_name_raises_storage_error(self, store, handle):
        from recordbook.exceptions import StorageUnavailableError
        with pytest.raises(StorageUnavailableError):
            store.create(handle, "bad\ud800")
        assert store.list(handle) == []

    def test_unencodable_update_raises_storage_error(self, store, handle):
        from recordbook.exceptions import StorageUnavailableError
        rec = store.create(handle, "ok")
        with pytest.raises(StorageUnavailableError):
            store.update(handle, rec.id, "bad\udfff")
        assert store.get(handle, rec.id).name == "ok"

    def test_import_source_permission_denied(self, store, handle):
        from recordbook.exceptions import PermissionDeniedError
        from recordbook.store.transfer import ByteSource

        class Refusing(ByteSource):
            def size(self):
                return 4096

            def open(self):
                raise PermissionDeniedError("document picker access revoked")

        store.create(handle, "survivor")
        with pytest.raises(PermissionDeniedError):
            store.import_from(handle, Refusing())
        assert handle.is_open
        assert _names(store, handle) == ["survivor"]
        assert [p.name for p in store.data_dir.iterdir()] == ["t.db"]


# ─────────────────────────────────────────────────────────────────────────────
# 9. Import blocks other callers until the swap completes
# ─────────────────────────────────────────────────────────────────────────────

def _gated_source(data, reading, gate):
    """ByteSource whose reads stall until *gate* is set."""
    from recordbook.store.transfer import ByteSource

    class _Reader(io.BytesIO):
        def read(self, n=-1):
            reading.set()
            gate.wait(5)
            return super().read(n)

    class _Gated(ByteSource):
        def size(self):
            return len(data)

        def open(self):
            return _Reader(data)

    return _Gated()


class TestImportBlocking:

    def test_concurrent_calls_wait_for_swap(self, store, handle, tmp_path):
        from recordbook.exceptions import StaleHandleError
        from recordbook.store.db import RecordStore
        src_store = RecordStore(data_dir=str(tmp_path / "src"))
        sh = src_store.open("t.db")
        src_store.create(sh, "from backup")
        data = sh.path.read_bytes()

        store.create(handle, "local")
        other = store.open("t.db")
        reading, gate = threading.Event(), threading.Event()
        results = {}

        def do_import():
            results["handle"] = store.import_from(handle, _gated_source(data, reading, gate))

        def do_create():
            try:
                results["create"] = store.create(other, "sneaky")
            except StaleHandleError as exc:
                results["create"] = exc

        importer = threading.Thread(target=do_import)
        importer.start()
        assert reading.wait(5)

        writer = threading.Thread(target=do_create)
        writer.start()
        writer.join(0.3)
        assert writer.is_alive()          # held off while the copy is stalled
        assert "create" not in results

        gate.set()
        importer.join(5)
        writer.join(5)

        assert isinstance(results["create"], StaleHandleError)
        assert _names(store, results["handle"]) == ["from backup"]

    def test_open_waits_for_swap(self, store, handle, tmp_path):
        store.create(handle, "old")
        store.export_to(handle, tmp_path / "snap.db")
        data = (tmp_path / "snap.db").read_bytes()
        store.create(handle, "newer")

        reading, gate = threading.Event(), threading.Event()
        opened = {}
        importer = threading.Thread(
            target=lambda: store.import_from(handle, _gated_source(data, reading, gate))
        )
        importer.start()
        assert reading.wait(5)

        def do_open():
            h = store.open("t.db")
            opened["names"] = _names(store, h)

        reader = threading.Thread(target=do_open)
        reader.start()
        reader.join(0.3)
        assert reader.is_alive()

        gate.set()
        importer.join(5)
        reader.join(5)
        assert opened["names"] == ["old"]
