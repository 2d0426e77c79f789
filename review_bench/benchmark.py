"""
Benchmark harness.
Runs every registered query under both schema variants, first with indexes and
then without, timing one warmup plus a fixed number of sequential executions per
cell, and reports median/min/max latencies.
"""

import json  # report persistence
import platform  # environment descriptor
import time  # wall-clock timing
from datetime import datetime, timezone  # report timestamp and file date
from pathlib import Path  # report location
from typing import Any, Callable, Dict, List, Mapping, Optional  # type hints

import pymongo  # driver version for the environment descriptor

from loguru import logger  # console logger

from .index_manager import IndexManager
from .models import BenchmarkReport, BenchmarkRun, IndexState, QueryId, SchemaVariant
from .query_registry import QueryRegistry

# Fixed inputs used for every run (warmup and timed)
SAMPLE_PARAMS: Dict[QueryId, Dict[str, Any]] = {
	QueryId.Q1: {'title': 'The Dark Knight', 'limit': 20},
	QueryId.Q2: {'userId': 'user123', 'limit': 100},
	QueryId.Q3: {'minRating': 8, 'startDate': '2020-01-01', 'endDate': '2023-12-31', 'limit': 100},
	QueryId.Q4: {'minReviews': 50, 'limit': 10},
	QueryId.Q5: {'limit': 10},
	QueryId.Q6: {'searchText': 'great acting', 'limit': 20},
	QueryId.Q7: {},
	QueryId.Q8: {'title': 'The Dark Knight'},
	QueryId.Q9: {'minVotes': 10, 'limit': 10},
	QueryId.Q10: {'minReviews': 3, 'minRating': 8.5, 'limit': 10},
}

REPORT_PREFIX = 'benchmarks-'


def summarize_samples(samples: List[float]) -> Dict[str, float]:
	"""Median (middle element of the sorted samples, never averaged), min, and max."""
	if not samples:
		raise ValueError("At least one timed sample is required")
	ordered = sorted(samples)
	return {'median': ordered[len(ordered) // 2], 'min': ordered[0], 'max': ordered[-1]}


def environment_descriptor() -> Dict[str, str]:
	return {
		'python': platform.python_version(),
		'platform': platform.platform(),
		'pymongo': pymongo.version,
	}


class BenchmarkRunner:
	"""
	Orchestrates a full comparative run.
	The runner owns index state while it runs: indexes are created or dropped for
	both variants per pass and always recreated at the end. Concurrent runs, or
	ingestion during a run, give undefined results.
	"""

	def __init__(
		self,
		registry: QueryRegistry,
		index_manager: IndexManager,
		repeats: int = 3,
		sample_params: Optional[Mapping[QueryId, Mapping[str, Any]]] = None,
		timer: Callable[[], float] = time.perf_counter,
	):
		if repeats < 1:
			raise ValueError(f"repeats must be positive, got {repeats}")
		self.registry = registry
		self.index_manager = index_manager
		self.repeats = repeats
		self.sample_params = sample_params if sample_params is not None else SAMPLE_PARAMS
		self.timer = timer

	def run_query(self, query_id: QueryId, model: SchemaVariant, state: IndexState) -> BenchmarkRun:
		"""One cell: a discarded warmup, then sequential timed executions."""
		params = self.sample_params.get(query_id, {})
		self.registry.execute(query_id, model, params)  # warmup

		samples = []
		for _ in range(self.repeats):
			start = self.timer()
			self.registry.execute(query_id, model, params)
			samples.append((self.timer() - start) * 1000)

		summary = summarize_samples(samples)
		logger.info(
			f"[Benchmark] {state.value} model={model.value} {query_id.value}: "
			f"median={summary['median']:.2f}ms min={summary['min']:.2f}ms max={summary['max']:.2f}ms"
		)
		return BenchmarkRun(query_id=query_id, model=model, index_state=state, samples=samples, **summary)

	def _apply_state(self, state: IndexState):
		for model in SchemaVariant:
			if state is IndexState.WITH_INDEXES:
				self.index_manager.create_indexes(model)
			else:
				self.index_manager.drop_indexes(model)

	def run(self) -> BenchmarkReport:
		"""Run every (index state, variant, query) cell; any query failure aborts the run."""
		self.registry.validate()
		report = BenchmarkReport(
			timestamp=datetime.now(timezone.utc).isoformat(),
			environment=environment_descriptor(),
		)
		logger.info(
			f"[Benchmark] Starting: {len(self.registry.query_ids)} queries x {len(SchemaVariant)} models "
			f"x {len(IndexState)} index states, {self.repeats} timed runs each"
		)
		try:
			for state in IndexState:
				self._apply_state(state)
				for model in SchemaVariant:
					for query_id in self.registry.query_ids:
						report.record(self.run_query(query_id, model, state))
		finally:
			logger.info("[Benchmark] Restoring indexes")
			self._apply_state(IndexState.WITH_INDEXES)
		logger.info(f"[Benchmark] Complete: {report.cell_count()} cells")
		return report


def report_path(directory: Path, day: Optional[datetime] = None) -> Path:
	"""One report file per calendar day: benchmarks-YYYY-MM-DD.json."""
	day = day or datetime.now(timezone.utc)
	return Path(directory) / f"{REPORT_PREFIX}{day.strftime('%Y-%m-%d')}.json"


def save_report(report: BenchmarkReport, directory: Path) -> Path:
	"""Write the report as JSON, overwriting any report from the same day."""
	directory = Path(directory)
	directory.mkdir(parents=True, exist_ok=True)
	path = report_path(directory, datetime.fromisoformat(report.timestamp))
	with open(path, 'w', encoding='utf-8') as f:
		json.dump(report.to_dict(), f, indent=2)
	logger.info(f"[Benchmark] Report saved to {path}")
	return path


def load_latest_report(directory: Path) -> Optional[Dict[str, Any]]:
	"""Most recent saved report, or None when none exists."""
	reports = sorted(Path(directory).glob(f"{REPORT_PREFIX}*.json"))
	if not reports:
		return None
	with open(reports[-1], 'r', encoding='utf-8') as f:
		return json.load(f)
