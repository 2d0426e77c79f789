"""
Run the full query benchmark and save the day's report.

Every query runs under Model A and Model B, first with indexes and then without,
with one warmup and three timed executions per cell. Indexes are recreated at
the end.

Usage:
    python -m scripts.run_benchmark
    python -m scripts.run_benchmark --repeats 5 --output-dir benchmarks/
"""

import argparse  # command-line options
import time  # total duration

from loguru import logger  # console logging

from review_bench import config  # settings
from review_bench.benchmark import BenchmarkRunner, save_report  # harness
from review_bench.database import close_client, get_database  # storage
from review_bench.index_manager import IndexManager  # index toggling
from review_bench.models import IndexState, QueryId  # report sections and row order
from review_bench.query_registry import QueryRegistry  # query dispatch


def parse_args():
	parser = argparse.ArgumentParser(description="Benchmark Model A vs Model B queries")
	parser.add_argument('--repeats', type=int, default=3, help="Timed executions per query (default: 3)")
	parser.add_argument('--output-dir', default=str(config.BENCHMARK_DIR), help="Where to write the report")
	return parser.parse_args()


def print_summary(report):
	"""Log a median table: one line per query, four columns."""
	header = f"{'Query':<6}" + ''.join(
		f"{state.value + '/' + label:>26}" for state in IndexState for label in ('modelA', 'modelB')
	)
	logger.info(header)
	for query_id in QueryId:
		cells = []
		for state in IndexState:
			for label in ('modelA', 'modelB'):
				run = report.cells_for(state).get(label, {}).get(query_id.value)
				cells.append(f"{run.median:>24.2f}ms" if run else f"{'-':>26}")
		logger.info(f"{query_id.value:<6}" + ''.join(cells))


def main():
	args = parse_args()
	config.configure_logging()

	logger.info("=" * 60)
	logger.info("Query Benchmark: Model A vs Model B")
	logger.info("=" * 60)

	db = get_database()
	try:
		t0 = time.time()
		runner = BenchmarkRunner(QueryRegistry.for_database(db), IndexManager(db), repeats=args.repeats)
		report = runner.run()
		path = save_report(report, args.output_dir)
	finally:
		close_client()

	print_summary(report)
	logger.info(f"\nAll done in {time.time() - t0:.2f}s. Report: {path}")
	logger.info("=" * 60)


if __name__ == '__main__':
	main()  # invoke benchmark
