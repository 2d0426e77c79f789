"""
FastAPI server exposing the review benchmark API.
Endpoints:
- GET /health: liveness plus database ping
- GET /api/v1/queries: registered queries with their parameters
- GET /api/v1/queries/{query_id}?model=A&...: run one query against one schema variant
- GET /api/v1/benchmarks: run the full benchmark and save the day's report
- GET /api/v1/benchmarks/latest: most recent saved report
- POST /api/v1/ingest?model=A: load the review CSV into one schema variant
- GET /api/v1/indexes?model=A: index names per collection
- GET /api/v1/stats: document counts per collection
- GET /api/v1/stats/movie/{title}: stored statistics of matching movies
- GET /api/v1/stats/user/{user_id}: stored statistics of one user
"""

# Import standard libraries for timing and paths
import time  # measure request latencies
from datetime import datetime, timezone  # response timestamps
from pathlib import Path  # report and dataset locations
from typing import Any, Dict, List, Optional  # precise typing for clarity

# Import FastAPI for building the web API and Pydantic for response models
from fastapi import Depends, FastAPI, Query, Request  # FastAPI primitives
from fastapi.encoders import jsonable_encoder  # BSON-safe JSON conversion
from fastapi.responses import JSONResponse  # explicit status codes on failure
from pydantic import BaseModel  # response schema definitions
from bson import ObjectId  # Mongo ids rendered as strings
from pymongo.database import Database  # database handle

# Import our internal modules
from review_bench import config  # environment-driven settings
from review_bench.benchmark import BenchmarkRunner, load_latest_report, save_report  # harness
from review_bench.data_loader import ReviewLoader  # CSV cleaning
from review_bench.database import collection_counts, get_database, movie_stats, ping, user_stats  # storage access
from review_bench.errors import InvalidQueryParameters, InvalidVariant, UnknownQuery  # client errors
from review_bench.index_manager import IndexManager  # index toggling
from review_bench.ingest import ingest  # batch loaders
from review_bench.models import SchemaVariant  # A/B selector
from review_bench.query_backends import title_pattern  # title matching shared with Q1/Q8
from review_bench.query_registry import QueryRegistry  # query dispatch

# Import loguru for simple, structured console logging
from loguru import logger  # convenient console logger

# Instantiate the FastAPI application with metadata
app = FastAPI(title="IMDB Reviews Benchmark API", version="1.0.0")  # web app


# Pydantic models describing response payloads
class Timing(BaseModel):
	startedAt: str  # ISO timestamp before the call
	endedAt: str  # ISO timestamp after the call
	elapsedMs: float  # wall-clock duration


class QueryResult(BaseModel):
	docsReturned: int  # number of rows
	data: List[Dict[str, Any]]  # rows, JSON-encoded


class QueryResponse(BaseModel):
	success: bool
	queryId: str
	model: str
	timing: Timing
	result: QueryResult


class BenchmarkTiming(BaseModel):
	startedAt: str
	endedAt: str
	totalDurationMs: float


class BenchmarkResponse(BaseModel):
	success: bool
	timing: BenchmarkTiming
	results: Dict[str, Any]  # serialized BenchmarkReport
	reportPath: str  # where the day's report was written


class IngestResponse(BaseModel):
	success: bool
	model: str
	duration: float  # ms
	counts: Dict[str, int]


class ErrorResponse(BaseModel):
	success: bool = False
	error: str


# Dependencies, overridable in tests
def get_db() -> Database:
	return get_database()


def get_report_dir() -> Path:
	return config.BENCHMARK_DIR


def get_reviews_csv() -> Path:
	return config.REVIEWS_CSV


def _iso(ts: float) -> str:
	"""Epoch seconds to an ISO-8601 UTC string."""
	return datetime.fromtimestamp(ts, tz=timezone.utc).isoformat()


def _error(status_code: int, message: str) -> JSONResponse:
	return JSONResponse(status_code=status_code, content=ErrorResponse(error=message).model_dump())


def _encode(docs: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
	"""Convert ObjectIds and datetimes so rows serialize as plain JSON."""
	return jsonable_encoder(docs, custom_encoder={ObjectId: str})


@app.on_event("startup")
async def startup_event():
	"""Configure logging once the app starts."""
	config.configure_logging()  # console sink at LOG_LEVEL
	logger.info(f"[API] Startup: database '{config.MONGODB_DB}' at {config.MONGODB_URI}")


@app.get("/")
async def root():
	"""Service banner and endpoint map."""
	return {
		"message": "IMDB User Reviews Benchmark API",
		"version": app.version,
		"endpoints": {
			"queries": "/api/v1/queries",
			"benchmarks": "/api/v1/benchmarks",
			"ingest": "/api/v1/ingest",
			"indexes": "/api/v1/indexes",
			"stats": "/api/v1/stats",
			"movieStats": "/api/v1/stats/movie/{title}",
			"userStats": "/api/v1/stats/user/{user_id}",
			"health": "/health",
		},
	}


@app.get("/health")
def health(db: Database = Depends(get_db)):
	"""Return minimal health info for liveness/readiness probes."""
	return {
		"status": "ok",  # constant indicator
		"database": ping(db),  # True if MongoDB answered
		"timestamp": datetime.now(timezone.utc).isoformat(),
	}


@app.get("/api/v1/queries")
def list_queries(db: Database = Depends(get_db)):
	"""Registered queries with their parameters and defaults."""
	return {"success": True, "queries": QueryRegistry.for_database(db).describe()}


@app.get("/api/v1/queries/{query_id}", response_model=QueryResponse)
def run_query(
	query_id: str,
	request: Request,
	model: Optional[str] = Query(None, description="Schema variant: A or B"),
	db: Database = Depends(get_db),
):
	"""Execute one query by id against one schema variant; other query params are passed through."""
	try:
		variant = SchemaVariant.parse(model)  # reject before touching the store
	except InvalidVariant as e:
		logger.warning(f"[API] /queries/{query_id} rejected: {e}")
		return _error(400, str(e))

	params = {k: v for k, v in request.query_params.items() if k != 'model'}  # flat key-value pairs
	registry = QueryRegistry.for_database(db)

	start = time.time()  # start timer
	try:
		rows = registry.execute(query_id, variant, params)  # delegate
	except UnknownQuery as e:
		return _error(404, str(e))
	except InvalidQueryParameters as e:
		return _error(400, str(e))
	except Exception as e:
		logger.error(f"[API] /queries/{query_id} model={variant.value} failed: {e}")
		return _error(500, str(e))
	end = time.time()

	elapsed_ms = (end - start) * 1000  # compute ms
	logger.info(f"[API] /queries/{query_id} model={variant.value} served {len(rows)} rows in {elapsed_ms:.2f} ms")
	return QueryResponse(
		success=True,
		queryId=registry.definition(query_id).query_id.value,
		model=variant.value,
		timing=Timing(startedAt=_iso(start), endedAt=_iso(end), elapsedMs=round(elapsed_ms, 2)),
		result=QueryResult(docsReturned=len(rows), data=_encode(rows)),
	)


@app.get("/api/v1/benchmarks", response_model=BenchmarkResponse)
def run_benchmarks(db: Database = Depends(get_db), report_dir: Path = Depends(get_report_dir)):
	"""Run every query under both variants with and without indexes, then persist the report."""
	start = time.time()
	try:
		runner = BenchmarkRunner(QueryRegistry.for_database(db), IndexManager(db))
		report = runner.run()
		path = save_report(report, report_dir)
	except Exception as e:
		logger.error(f"[API] Benchmark run failed: {e}")
		return _error(500, str(e))
	end = time.time()

	return BenchmarkResponse(
		success=True,
		timing=BenchmarkTiming(
			startedAt=_iso(start),
			endedAt=_iso(end),
			totalDurationMs=round((end - start) * 1000, 2),
		),
		results=report.to_dict(),
		reportPath=str(path),
	)


@app.get("/api/v1/benchmarks/latest")
def latest_benchmark(report_dir: Path = Depends(get_report_dir)):
	"""Most recently saved benchmark report."""
	report = load_latest_report(report_dir)
	if report is None:
		return _error(404, f"No benchmark reports found in {report_dir}")
	return {"success": True, "results": report}


@app.post("/api/v1/ingest", response_model=IngestResponse)
def ingest_dataset(
	model: Optional[str] = Query(None, description="Schema variant: A or B"),
	db: Database = Depends(get_db),
	csv_path: Path = Depends(get_reviews_csv),
):
	"""Replace one variant's data with the configured review CSV and rebuild its indexes."""
	try:
		variant = SchemaVariant.parse(model)
	except InvalidVariant as e:
		return _error(400, str(e))

	logger.info(f"[API] Starting ingestion for Model {variant.value} from {csv_path}")
	start = time.time()
	try:
		reviews = ReviewLoader().load_reviews_from_csv(str(csv_path))
		counts = ingest(db, variant, reviews)
	except Exception as e:
		logger.error(f"[API] Model {variant.value} ingestion failed: {e}")
		return _error(500, str(e))
	duration = round((time.time() - start) * 1000, 2)
	logger.info(f"[API] Ingestion completed in {duration} ms")
	return IngestResponse(success=True, model=variant.value, duration=duration, counts=counts)


@app.get("/api/v1/indexes")
def list_indexes(model: Optional[str] = Query(None), db: Database = Depends(get_db)):
	"""Index names currently present on each collection of the variant."""
	try:
		variant = SchemaVariant.parse(model)
	except InvalidVariant as e:
		return _error(400, str(e))
	return {"success": True, "model": variant.value, "indexes": IndexManager(db).list_indexes(variant)}


@app.get("/api/v1/stats")
def database_stats(db: Database = Depends(get_db)):
	"""Document counts per collection for both variants."""
	return {"success": True, "collections": collection_counts(db)}


@app.get("/api/v1/stats/movie/{title}")
def movie_statistics(title: str, db: Database = Depends(get_db)):
	"""Stored statistics of every movie whose title contains the given text (Model B collections)."""
	if not title.strip():
		return _error(400, "Movie title must not be blank")
	movies = movie_stats(db, title_pattern(title))
	if not movies:
		return _error(404, f"No movie matching '{title}'")
	return {"success": True, "movies": _encode(movies)}


@app.get("/api/v1/stats/user/{user_id}")
def user_statistics(user_id: str, db: Database = Depends(get_db)):
	"""Stored statistics of one user by id (Model B collections)."""
	user = user_stats(db, user_id)
	if user is None:
		return _error(404, f"User {user_id} not found")
	return {"success": True, "user": _encode([user])[0]}
