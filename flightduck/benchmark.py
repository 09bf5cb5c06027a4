"""
Benchmark Suite

This module runs every catalog query that exists in both forms, raw SQL
text and composed QueryExpression, against the same staged tables. It
measures execution times for each path, checks that both paths return the
same rows, and produces a summary report.
"""

import logging
import sys
import time
from datetime import datetime
from pathlib import Path
from typing import Callable, List, Optional, Tuple

import pandas as pd
from tabulate import tabulate

from flightduck.config import BENCHMARK_CONFIG, BENCHMARK_DIR, TIMESTAMP_FORMAT, setup_logging, validate_config
from flightduck.db_connector import DatabaseConnection
from flightduck.exceptions import FlightDuckError
from flightduck.pipeline import FlightDelayPipeline
from flightduck.queries import QUERIES, build_query, get_query
from flightduck.utils import calculate_speedup, compare_results, format_time

logger = logging.getLogger(__name__)


class BenchmarkRunner:
    """
    Compares the raw SQL path with the composed query path.

    Attributes:
        conn: Open DatabaseConnection with the walkthrough tables staged
        results (list): One result dictionary per benchmarked query
    """

    def __init__(self, conn, warmup_runs: Optional[int] = None, test_runs: Optional[int] = None):
        """
        Initialize the benchmark runner.

        Args:
            conn: Open DatabaseConnection
            warmup_runs: Untimed runs per path (default from BENCHMARK_CONFIG)
            test_runs: Timed runs per path (default from BENCHMARK_CONFIG)
        """
        self.conn = conn
        self.warmup_runs = BENCHMARK_CONFIG['warmup_runs'] if warmup_runs is None else warmup_runs
        self.test_runs = BENCHMARK_CONFIG['test_runs'] if test_runs is None else test_runs
        self.results = []

    def _time(self, run: Callable[[], pd.DataFrame]) -> Tuple[float, pd.DataFrame]:
        for _ in range(self.warmup_runs):
            run()

        times = []
        result = None
        for _ in range(max(self.test_runs, 1)):
            start = time.perf_counter()
            result = run()
            times.append(time.perf_counter() - start)

        return sum(times) / len(times), result

    def run_query_benchmark(self, query_key: str, query_info: dict) -> dict:
        """
        Benchmark a single query through both paths.

        Args:
            query_key: Query identifier
            query_info: Query metadata, SQL template and builder

        Returns:
            Dictionary with benchmark results
        """
        logger.info("Benchmarking %s", query_info['name'])

        sql = get_query(query_key)
        expression = build_query(query_key, self.conn)

        raw_time, raw_result = self._time(lambda: self.conn.execute_query(sql))
        built_time, built_result = self._time(expression.materialize)

        results_match = compare_results(
            raw_result, built_result,
            tolerance=BENCHMARK_CONFIG['tolerance'],
            ignore_order=not query_info.get('ordered', False)
        )
        if not results_match:
            logger.warning("Results differ for %s: raw rows=%d, composed rows=%d",
                           query_key, len(raw_result), len(built_result))

        return {
            'query_name': query_info['name'],
            'query_key': query_key,
            'category': query_info.get('category', 'Unknown'),
            'raw_sql_time_sec': raw_time,
            'composed_time_sec': built_time,
            'speedup': calculate_speedup(raw_time, built_time),
            'rows_returned': len(raw_result),
            'results_match': results_match
        }

    def run_all_benchmarks(self) -> List[dict]:
        """
        Benchmark every query that has a builder form.

        Returns:
            List of result dictionaries
        """
        self.results = [
            self.run_query_benchmark(query_key, query_info)
            for query_key, query_info in QUERIES.items()
            if query_info['builder'] is not None
        ]
        return self.results

    def summary_table(self) -> str:
        """
        Format the benchmark results as a text table.
        """
        table_data = [
            [
                r['query_name'][:40],
                format_time(r['raw_sql_time_sec']),
                format_time(r['composed_time_sec']),
                r['rows_returned'],
                'Yes' if r['results_match'] else 'No'
            ]
            for r in self.results
        ]
        headers = ['Query', 'Raw SQL', 'Composed', 'Rows', 'Match']
        return tabulate(table_data, headers=headers, tablefmt='grid')

    def print_summary(self) -> None:
        """
        Print benchmark summary table.
        """
        print()
        print("=" * 70)
        print("Raw SQL vs Composed Query")
        print("=" * 70)
        print()
        print(self.summary_table())
        print()

        mismatches = [r['query_key'] for r in self.results if not r['results_match']]
        print(f"Queries checked: {len(self.results)}")
        print(f"Mismatches: {', '.join(mismatches) if mismatches else 'none'}")
        print()

    def save_results(self, results_dir: Path = BENCHMARK_DIR) -> Path:
        """
        Save benchmark results to CSV.

        Returns:
            Path to saved CSV file
        """
        results_dir = Path(results_dir)
        results_dir.mkdir(parents=True, exist_ok=True)

        timestamp = datetime.now().strftime(TIMESTAMP_FORMAT)
        filename = results_dir / f"benchmark_{timestamp}.csv"

        pd.DataFrame(self.results).to_csv(filename, index=False)
        logger.info("Benchmark results saved to %s", filename)

        return filename

    def run(self, results_dir: Path = BENCHMARK_DIR) -> Path:
        """
        Execute the full benchmark suite on the open connection.

        Returns:
            Path to saved CSV file
        """
        self.run_all_benchmarks()
        self.print_summary()
        path = self.save_results(results_dir)

        print("=" * 70)
        print("Benchmark complete!")
        print("=" * 70)

        return path


def main():
    """Main entry point for benchmark script."""
    setup_logging()
    validate_config()

    pipeline = FlightDelayPipeline()
    try:
        lookups = pipeline.loader.load_lookup_tables(['carriers', 'holidays'])
        flights = pipeline.loader.load_flights()
        with DatabaseConnection() as conn:
            pipeline.stage_tables(conn, lookups, flights)
            BenchmarkRunner(conn).run()
    except FlightDuckError as e:
        logger.error("Benchmark failed: %s", e)
        sys.exit(1)


if __name__ == "__main__":
    main()
