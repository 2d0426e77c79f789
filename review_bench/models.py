"""
Data models for Review Bench.
Enumerations used for dispatch plus the records passed between ingestion,
index management, and benchmarking.
"""

from dataclasses import dataclass, field  # record-like classes
from datetime import datetime  # review timestamps
from enum import Enum  # closed sets of identifiers
from typing import Any, Dict, List, Optional, Tuple, Union  # type hints

from .errors import InvalidVariant, UnknownQuery


class SchemaVariant(str, Enum):
	"""Which collection layout a query targets."""
	A = 'A'  # denormalized: movie/user embedded in each review
	B = 'B'  # normalized: reviews reference movies and users

	@classmethod
	def parse(cls, value: Union[str, 'SchemaVariant', None]) -> 'SchemaVariant':
		"""Case-insensitive lookup; anything other than A/B raises InvalidVariant."""
		if isinstance(value, cls):
			return value
		if isinstance(value, str) and value.strip().upper() in cls.__members__:
			return cls[value.strip().upper()]
		raise InvalidVariant(f"Invalid model parameter {value!r}. Use model=A or model=B")

	@property
	def label(self) -> str:
		"""Report key for this variant, e.g. 'modelA'."""
		return f"model{self.value}"


class QueryId(str, Enum):
	"""Benchmark query identifiers, in registration order."""
	Q1 = 'Q1'
	Q2 = 'Q2'
	Q3 = 'Q3'
	Q4 = 'Q4'
	Q5 = 'Q5'
	Q6 = 'Q6'
	Q7 = 'Q7'
	Q8 = 'Q8'
	Q9 = 'Q9'
	Q10 = 'Q10'

	@classmethod
	def parse(cls, value: Union[str, 'QueryId']) -> 'QueryId':
		if isinstance(value, cls):
			return value
		key = str(value).strip().upper()
		if key not in cls.__members__:
			raise UnknownQuery(f"Query {value} not found")
		return cls[key]


class IndexState(str, Enum):
	"""Whether secondary indexes are present during a benchmark pass."""
	WITH_INDEXES = 'withIndexes'
	WITHOUT_INDEXES = 'withoutIndexes'


# Key direction: 1 ascending, -1 descending, 'text' for a text index
IndexKey = Tuple[str, Union[int, str]]


@dataclass(frozen=True)
class IndexSpec:
	"""One declared index on one collection."""
	collection: str  # collection name
	keys: Tuple[IndexKey, ...]  # ordered key specification
	weights: Optional[Dict[str, int]] = None  # text index weights
	unique: bool = False
	sparse: bool = False

	@property
	def name(self) -> str:
		"""Index name in MongoDB's default naming scheme (field_direction joined by '_')."""
		return '_'.join(f"{k}_{d}" for k, d in self.keys)

	def options(self) -> Dict[str, Any]:
		"""Keyword options for pymongo's create_index."""
		opts: Dict[str, Any] = {'name': self.name}
		if self.weights:
			opts['weights'] = dict(self.weights)
		if self.unique:
			opts['unique'] = True
		if self.sparse:
			opts['sparse'] = True
		return opts


@dataclass
class ParsedReview:
	"""
	One cleaned review row from the source CSV.
	Carries everything needed to render the review under either schema variant.
	"""
	movie_id: str  # stable movie identifier shared by both variants
	movie_title: str
	user_id: str  # stable user identifier shared by both variants
	username: str
	rating: int  # 1..10
	review_date: datetime
	review_content: str
	review_title: str = 'No Title'
	year: Optional[int] = None
	genres: List[str] = field(default_factory=list)
	directors: List[str] = field(default_factory=list)
	stars: List[str] = field(default_factory=list)
	imdb_rating: Optional[float] = None
	helpful_votes: int = 0
	total_votes: int = 0
	spoiler_tag: bool = False
	verified_purchase: bool = False

	@property
	def helpfulness_ratio(self) -> float:
		return self.helpful_votes / self.total_votes if self.total_votes > 0 else 0.0

	def review_fields(self) -> Dict[str, Any]:
		"""Fields stored on the review document in both variants."""
		return {
			'rating': self.rating,
			'review_title': self.review_title,
			'review_content': self.review_content,
			'review_date': self.review_date,
			'helpful_votes': self.helpful_votes,
			'total_votes': self.total_votes,
			'spoiler_tag': self.spoiler_tag,
			'verified_purchase': self.verified_purchase,
			'helpfulness_ratio': self.helpfulness_ratio,
			'review_length': len(self.review_content),
		}

	def movie_fields(self) -> Dict[str, Any]:
		"""Movie attributes, embedded in Model A and stored in movies_b in Model B."""
		return {
			'title': self.movie_title,
			'year': self.year,
			'genres': list(self.genres),
			'directors': list(self.directors),
			'stars': list(self.stars),
			'imdb_rating': self.imdb_rating,
		}

	def to_model_a_document(self) -> Dict[str, Any]:
		"""Render the denormalized review with embedded movie and user."""
		doc = {
			'movie': {'id': self.movie_id, **self.movie_fields()},
			'user': {'id': self.user_id, 'name': self.username},
		}
		doc.update(self.review_fields())
		return doc

	def to_model_b_review(self) -> Dict[str, Any]:
		"""Render the normalized review referencing movies_b and users_b by id."""
		doc = {'movie_id': self.movie_id, 'user_id': self.user_id}
		doc.update(self.review_fields())
		return doc


@dataclass
class BenchmarkRun:
	"""Timing summary for one (index state, variant, query) cell."""
	query_id: QueryId
	model: SchemaVariant
	index_state: IndexState
	samples: List[float]  # timed durations in ms, warmup excluded
	median: float
	min: float
	max: float

	def to_dict(self) -> Dict[str, Any]:
		return {
			'queryId': self.query_id.value,
			'model': self.model.value,
			'median': self.median,
			'min': self.min,
			'max': self.max,
			'samples': list(self.samples),
		}


@dataclass
class BenchmarkReport:
	"""
	A full benchmark session.
	with_indexes / without_indexes map a variant label ('modelA') to {query id: BenchmarkRun}.
	"""
	timestamp: str
	environment: Dict[str, Any]
	with_indexes: Dict[str, Dict[str, BenchmarkRun]] = field(default_factory=dict)
	without_indexes: Dict[str, Dict[str, BenchmarkRun]] = field(default_factory=dict)

	def cells_for(self, state: IndexState) -> Dict[str, Dict[str, BenchmarkRun]]:
		return self.with_indexes if state is IndexState.WITH_INDEXES else self.without_indexes

	def record(self, run: BenchmarkRun):
		"""Store a run at [index state][model label][query id]."""
		cells = self.cells_for(run.index_state)
		cells.setdefault(run.model.label, {})[run.query_id.value] = run

	def cell_count(self) -> int:
		return sum(len(runs) for state in (self.with_indexes, self.without_indexes) for runs in state.values())

	def to_dict(self) -> Dict[str, Any]:
		def dump(cells):
			return {label: {qid: run.to_dict() for qid, run in runs.items()} for label, runs in cells.items()}

		return {
			'timestamp': self.timestamp,
			'environment': dict(self.environment),
			IndexState.WITH_INDEXES.value: dump(self.with_indexes),
			IndexState.WITHOUT_INDEXES.value: dump(self.without_indexes),
		}
