import asyncio
import json
import os
from queryhub.services.json_store import BoundedLog, JsonDocument


class TestJsonDocument:

    def test_missing_document_reads_default(self, tmp_path):
        document = JsonDocument(str(tmp_path / "missing.json"), dict)

        assert asyncio.run(document.read()) == {}

    def test_wrong_shape_reads_default(self, tmp_path):
        path = tmp_path / "list.json"
        path.write_text('{"not": "a list"}', encoding="utf-8")
        document = JsonDocument(str(path), list)

        assert asyncio.run(document.read()) == []
        assert asyncio.run(document.readable()) is False

    def test_mutate_writes_whole_document(self, tmp_path):
        path = tmp_path / "doc.json"
        document = JsonDocument(str(path), dict)

        async def scenario():
            await document.ensure_exists()
            return await document.mutate(lambda data: ({**data, "count": 1}, "done"))

        assert asyncio.run(scenario()) == "done"
        assert json.loads(path.read_text(encoding="utf-8")) == {"count": 1}
        assert [name for name in os.listdir(tmp_path) if name.startswith(".tmp-")] == []

    def test_mutate_returning_none_skips_write(self, tmp_path):
        path = tmp_path / "doc.json"
        document = JsonDocument(str(path), dict)

        asyncio.run(document.mutate(lambda data: (None, None)))

        assert not path.exists()

    def test_ensure_exists_keeps_existing_content(self, tmp_path):
        path = tmp_path / "doc.json"
        path.write_text('{"kept": true}', encoding="utf-8")
        document = JsonDocument(str(path), dict)

        assert asyncio.run(document.ensure_exists()) is False
        assert json.loads(path.read_text(encoding="utf-8")) == {"kept": True}

    def test_concurrent_mutations_are_serialized(self, tmp_path):
        document = JsonDocument(str(tmp_path / "counter.json"), dict)

        def increment(data):
            data["n"] = data.get("n", 0) + 1
            return data, None

        async def scenario():
            await asyncio.gather(*(document.mutate(increment) for _ in range(20)))
            return await document.read()

        assert asyncio.run(scenario()) == {"n": 20}


class TestBoundedLog:

    def test_prepend_caps_and_reports_dropped(self, tmp_path):
        log = BoundedLog(str(tmp_path / "log.json"), limit=2, key="id")

        async def scenario():
            dropped = [await log.prepend({"id": str(n)}) for n in range(3)]
            return dropped, await log.all()

        dropped, items = asyncio.run(scenario())

        assert dropped == [0, 0, 1]
        assert items == [{"id": "2"}, {"id": "1"}]

    def test_remove_missing_leaves_file_untouched(self, tmp_path):
        path = tmp_path / "log.json"
        log = BoundedLog(str(path), limit=10, key="id")

        async def scenario():
            await log.prepend({"id": "a"})
            before = path.stat().st_mtime_ns
            removed = await log.remove("b")
            return removed, before, await log.find("a")

        removed, before, found = asyncio.run(scenario())

        assert removed is None
        assert path.stat().st_mtime_ns == before
        assert found == {"id": "a"}
