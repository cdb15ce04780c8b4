"""
Tests for YAML job configuration validation.
"""

import math
import os
import shutil
import tempfile
import unittest
from datetime import date

import yaml

from archive_search.config_models import config_to_job, load_and_validate_config, validate_config
from archive_search.core.errors import InvalidInput
from archive_search.core.identity import derive_key


class TestSearchConfig(unittest.TestCase):
    def setUp(self):
        self.tmp_dir = tempfile.mkdtemp()

    def tearDown(self):
        shutil.rmtree(self.tmp_dir, ignore_errors=True)

    def write(self, cfg):
        path = os.path.join(self.tmp_dir, "job.yaml")
        with open(path, "w", encoding="utf-8") as f:
            yaml.safe_dump(cfg, f)
        return path

    def test_valid_config_with_defaults(self):
        path = self.write({"job": {"query": "climate", "start_time": "2020-01-01", "end_time": "2020-01-02"}})
        job = config_to_job(load_and_validate_config(path))

        self.assertEqual(job.query, "climate")
        self.assertEqual(job.start_time, "2020-01-01")
        self.assertEqual(job.pagesize, 500)
        self.assertEqual(job.perseverance, 10)
        self.assertEqual(job.path, ".")
        self.assertTrue(job.progressbar)

    def test_unquoted_yaml_dates_keep_the_same_job_key(self):
        path = os.path.join(self.tmp_dir, "job.yaml")
        with open(path, "w", encoding="utf-8") as f:
            f.write("job:\n  query: climate\n  start_time: 2020-01-01\n  end_time: 2020-01-02\n")
        job = config_to_job(load_and_validate_config(path))

        self.assertEqual(job.start_time, date(2020, 1, 1))
        self.assertEqual(
            derive_key(job.query, job.start_time, job.end_time),
            derive_key("climate", "2020-01-01", "2020-01-02"),
        )

    def test_pagesize_out_of_range(self):
        for pagesize in (501, 9):
            with self.assertRaises(InvalidInput) as ctx:
                validate_config({"job": {"query": "q", "start_time": "2020-01-01", "pagesize": pagesize}})
            self.assertIn("job.pagesize", str(ctx.exception))

    def test_list_query_rejected(self):
        with self.assertRaises(InvalidInput) as ctx:
            validate_config({"job": {"query": ["a", "b"], "start_time": "2020-01-01"}})
        self.assertIn("1 query", str(ctx.exception))

    def test_missing_start_time(self):
        with self.assertRaises(InvalidInput) as ctx:
            validate_config({"job": {"query": "q"}})
        self.assertIn("job.start_time", str(ctx.exception))

    def test_unbounded_perseverance(self):
        for value in ("inf", None, float("inf")):
            config = validate_config({"job": {"query": "q", "start_time": "2020-01-01", "perseverance": value}})
            self.assertTrue(math.isinf(config_to_job(config).perseverance))

    def test_zero_perseverance_rejected(self):
        with self.assertRaises(InvalidInput):
            validate_config({"job": {"query": "q", "start_time": "2020-01-01", "perseverance": 0}})

    def test_bad_base_url(self):
        with self.assertRaises(InvalidInput):
            validate_config({"job": {"query": "q", "start_time": "2020-01-01"}, "api": {"base_url": "ftp://x"}})

    def test_missing_file(self):
        with self.assertRaises(InvalidInput):
            load_and_validate_config(os.path.join(self.tmp_dir, "nope.yaml"))

    def test_non_mapping(self):
        with self.assertRaises(InvalidInput):
            validate_config(["job"])


if __name__ == "__main__":
    unittest.main()
