import os
import shutil
import tempfile
import unittest

from archive_search.core.models import NULL_MARKER, SAVE_COLUMNS
from archive_search.sinks.csv_sink import DATA_FOLDER, CsvTabularStore


def row(record_id, created_at="2020-01-01T00:00:00.000Z", text="hello"):
    r = {col: NULL_MARKER for col in SAVE_COLUMNS}
    r.update({"id": str(record_id), "created_at": created_at, "text": text})
    return r


class TestCsvTabularStore(unittest.TestCase):
    def setUp(self):
        self.tmp_dir = tempfile.mkdtemp()
        self.store = CsvTabularStore(root=self.tmp_dir)
        self.location = self.store.location_for("climate_2020-01-01_2020-01-02")

    def tearDown(self):
        shutil.rmtree(self.tmp_dir, ignore_errors=True)

    def test_locations(self):
        self.assertEqual(
            self.location,
            os.path.join(self.tmp_dir, DATA_FOLDER, "climate_2020-01-01_2020-01-02.csv"),
        )
        self.assertEqual(
            self.store.finished_location_for("climate_2020-01-01_2020-01-02"),
            os.path.join(self.tmp_dir, DATA_FOLDER, "climate_2020-01-01_2020-01-02_finished.csv"),
        )

    def test_unsafe_key_characters_do_not_nest_paths(self):
        location = self.store.location_for("climate_01/02/2020_12:00")
        self.assertEqual(os.path.dirname(location), os.path.join(self.tmp_dir, DATA_FOLDER))

    def test_append_writes_header_once(self):
        self.store.append_rows(self.location, [row(3), row(2)])
        self.store.append_rows(self.location, [row(1)])

        with open(self.location, encoding="utf-8") as f:
            lines = f.read().splitlines()
        self.assertEqual(lines[0], ",".join(SAVE_COLUMNS))
        self.assertEqual(sum(1 for line in lines if line.startswith("id,")), 1)

        rows = self.store.read_all(self.location)
        self.assertEqual([r["id"] for r in rows], ["3", "2", "1"])

    def test_null_marker_reads_back_as_none(self):
        self.store.append_rows(self.location, [row(1)])
        stored = self.store.read_all(self.location)[0]
        self.assertIsNone(stored["place_id"])
        self.assertEqual(stored["text"], "hello")

    def test_empty_append_creates_nothing(self):
        self.store.append_rows(self.location, [])
        self.assertFalse(self.store.exists(self.location))

    def test_iter_chunks_respects_size(self):
        self.store.append_rows(self.location, [row(i) for i in range(5, 0, -1)])
        sizes = [len(chunk) for chunk in self.store.iter_chunks(self.location, chunk_size=2)]
        self.assertEqual(sizes, [2, 2, 1])

    def test_rename(self):
        self.store.append_rows(self.location, [row(1)])
        finished = self.store.finished_location_for("climate_2020-01-01_2020-01-02")
        self.store.rename(self.location, finished)
        self.assertFalse(self.store.exists(self.location))
        self.assertEqual(len(self.store.read_all(finished)), 1)

    def test_ensure_writes_header_only_store(self):
        self.store.ensure(self.location)
        self.assertTrue(self.store.exists(self.location))
        self.assertEqual(self.store.read_all(self.location), [])

    def test_repair_drops_partial_tail(self):
        self.store.append_rows(self.location, [row(2, text="multi\nline"), row(1)])
        intact_size = os.path.getsize(self.location)
        with open(self.location, "a", encoding="utf-8", newline="") as f:
            f.write('0,NA,NA,NA,NA,"half written\ntext that never')

        dropped = self.store.repair(self.location)

        self.assertGreater(dropped, 0)
        self.assertEqual(os.path.getsize(self.location), intact_size)
        rows = self.store.read_all(self.location)
        self.assertEqual([r["id"] for r in rows], ["2", "1"])
        self.assertEqual(rows[0]["text"], "multi\nline")

    def test_repair_leaves_intact_store_alone(self):
        self.store.append_rows(self.location, [row(1, text='say "hi"')])
        self.assertEqual(self.store.repair(self.location), 0)
        self.assertEqual(self.store.repair(self.store.location_for("missing")), 0)


if __name__ == "__main__":
    unittest.main()
