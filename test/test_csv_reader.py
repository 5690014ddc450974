"""
Tests for statistics streamed from the request record CSV.
"""

import unittest
import tempfile
import os
import sys

# Add the parent directory to Python path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from persistence.csv_reader import CsvStatsReader, load_request_frame

HEADER = "RequestType,Path,StartTimestamp(ms),Latency(ms),ResponseCode\n"

POST_KEY = "POST /skiers/liftrides"
GET_KEY = "GET /skiers/{skierID}/vertical"


class TestCsvStatsReader(unittest.TestCase):

    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()

    def tearDown(self):
        self.temp_dir.cleanup()

    def _reader(self, rows, chunk_rows=2):
        path = os.path.join(self.temp_dir.name, "records.csv")
        with open(path, "w") as fh:
            fh.write(HEADER)
            fh.writelines(row + "\n" for row in rows)
        return CsvStatsReader(path, chunk_rows=chunk_rows)

    def _sample_reader(self):
        post_latencies = [1, 1, 2, 3, 3, 3, 5]
        rows = [f"POST,/skiers/liftrides,{1000 + i},{latency},201" for i, latency in enumerate(post_latencies)]
        rows += [
            "GET,/skiers/{skierID}/vertical,2500,10,200",
            "GET,/skiers/{skierID}/vertical,1200,30,500",
        ]
        return self._reader(rows)

    def test_mean_latencies(self):
        means = self._sample_reader().calculate_mean_latencies()
        self.assertAlmostEqual(means[POST_KEY], 18 / 7, delta=1e-9)
        self.assertAlmostEqual(means[GET_KEY], 20.0, delta=1e-9)

    def test_max_latencies(self):
        self.assertEqual(self._sample_reader().calculate_max_latencies(), {POST_KEY: 5, GET_KEY: 30})

    def test_median_and_p99(self):
        reader = self._sample_reader()
        max_by_key = reader.calculate_max_latencies()

        self.assertEqual(reader.calculate_median_latencies(max_by_key), {POST_KEY: 3, GET_KEY: 10})
        self.assertEqual(reader.calculate_p99_latencies(max_by_key), {POST_KEY: 5, GET_KEY: 30})

    def test_unknown_key_rejected(self):
        reader = self._sample_reader()
        with self.assertRaises(ValueError):
            reader.build_counting_arrays({POST_KEY: 5})

    def test_chunking_does_not_change_results(self):
        rows = [f"POST,/skiers/liftrides,{1000 + i},{i % 17},201" for i in range(100)]
        one_chunk = self._reader(rows, chunk_rows=1000)
        small_chunks = self._reader(rows, chunk_rows=3)

        self.assertEqual(one_chunk.calculate_mean_latencies(), small_chunks.calculate_mean_latencies())
        max_by_key = one_chunk.calculate_max_latencies()
        self.assertEqual(one_chunk.calculate_median_latencies(max_by_key),
                         small_chunks.calculate_median_latencies(max_by_key))

    def test_request_start_histogram(self):
        reader = self._reader([
            "POST,/skiers/liftrides,1500,4,201",
            "POST,/skiers/liftrides,1000,4,201",
            "GET,/skiers/{skierID}/vertical,3999,4,200",
        ])
        counts = reader.calculate_requests_per_second(1000, 4000)
        self.assertEqual(counts.tolist(), [2, 0, 1])

    def test_histogram_out_of_window(self):
        reader = self._reader(["POST,/skiers/liftrides,999,4,201"])
        with self.assertRaises(ValueError):
            reader.calculate_requests_per_second(1000, 4000)

        reader = self._reader(["POST,/skiers/liftrides,4000,4,201"])
        with self.assertRaises(ValueError):
            reader.calculate_requests_per_second(1000, 4000)

    def test_malformed_latency(self):
        reader = self._reader([
            "POST,/skiers/liftrides,1000,4,201",
            "POST,/skiers/liftrides,1001,fast,201",
        ])
        with self.assertRaises(ValueError):
            reader.calculate_mean_latencies()
        # Timestamps are still well formed
        self.assertEqual(reader.calculate_requests_per_second(1000, 2000).tolist(), [2])

    def test_empty_file(self):
        reader = self._reader([])
        self.assertEqual(reader.calculate_mean_latencies(), {})
        self.assertEqual(reader.calculate_max_latencies(), {})
        self.assertEqual(reader.calculate_requests_per_second(1000, 1000).tolist(), [])

    def test_load_request_frame(self):
        reader = self._sample_reader()
        data = load_request_frame(reader.csv_path)

        self.assertEqual(len(data), 9)
        self.assertEqual(set(data['key']), {POST_KEY, GET_KEY})
        self.assertEqual(data['latency_ms'].max(), 30)


if __name__ == "__main__":
    unittest.main()
