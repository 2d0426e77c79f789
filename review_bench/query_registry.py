"""
Query registry.
Maps each query id to its parameter model and to the backend method implementing
it, so callers run any query under either schema variant without branching on
the storage layout.
"""

from dataclasses import dataclass  # registry entries
from typing import Any, Dict, List, Mapping, Optional, Type, Union  # type hints

from pydantic import BaseModel, ValidationError  # parameter validation
from pymongo.database import Database  # database handle
from pymongo.errors import PyMongoError  # storage-layer failures

from loguru import logger  # console logger

from .errors import InvalidQueryParameters, QueryExecutionFailure, UnknownQuery
from .models import QueryId, SchemaVariant
from .query_backends import Document, ModelABackend, ModelBBackend, QueryBackend
from .query_params import (
	ActiveReviewersParams,
	ColdStartParams,
	HelpfulnessParams,
	LatestReviewsParams,
	MonthlyTrendParams,
	QueryParams,
	RatingHistogramParams,
	RatingWindowParams,
	TextSearchParams,
	TopRatedParams,
	UserReviewsParams,
)


@dataclass(frozen=True)
class QueryDefinition:
	query_id: QueryId
	intent: str  # what the query answers
	params_model: Type[QueryParams]
	method_name: str  # QueryBackend method implementing it


QUERY_DEFINITIONS: List[QueryDefinition] = [
	QueryDefinition(QueryId.Q1, 'Latest reviews for a movie title', LatestReviewsParams, 'latest_reviews_for_title'),
	QueryDefinition(QueryId.Q2, 'All reviews by a user', UserReviewsParams, 'reviews_by_user'),
	QueryDefinition(QueryId.Q3, 'Reviews with rating >= X in a date range', RatingWindowParams, 'reviews_in_rating_window'),
	QueryDefinition(QueryId.Q4, 'Top movies by average rating', TopRatedParams, 'top_rated_movies'),
	QueryDefinition(QueryId.Q5, 'Most active reviewers', ActiveReviewersParams, 'most_active_reviewers'),
	QueryDefinition(QueryId.Q6, 'Full-text search over reviews', TextSearchParams, 'search_reviews'),
	QueryDefinition(QueryId.Q7, 'Rating distribution per genre', RatingHistogramParams, 'rating_histogram_by_genre'),
	QueryDefinition(QueryId.Q8, 'Monthly trend for a movie', MonthlyTrendParams, 'monthly_trend'),
	QueryDefinition(QueryId.Q9, 'Top movies by helpfulness ratio', HelpfulnessParams, 'most_helpful_movies'),
	QueryDefinition(QueryId.Q10, 'Cold start movie discovery', ColdStartParams, 'cold_start_movies'),
]


class QueryRegistry:
	"""
	Executes registered queries by id and schema variant.
	Construct with one backend per variant, or use QueryRegistry.for_database(db).
	"""

	def __init__(self, backends: Mapping[SchemaVariant, QueryBackend], definitions: Optional[List[QueryDefinition]] = None):
		self.backends = dict(backends)
		self.definitions = {d.query_id: d for d in (definitions or QUERY_DEFINITIONS)}

	@classmethod
	def for_database(cls, db: Database) -> 'QueryRegistry':
		return cls({SchemaVariant.A: ModelABackend(db), SchemaVariant.B: ModelBBackend(db)})

	@property
	def query_ids(self) -> List[QueryId]:
		"""Registered ids in registration order."""
		return list(self.definitions)

	def definition(self, query_id: Union[str, QueryId]) -> QueryDefinition:
		qid = QueryId.parse(query_id)
		if qid not in self.definitions:
			raise UnknownQuery(f"Query {qid.value} not found")
		return self.definitions[qid]

	def implementation(self, query_id: Union[str, QueryId], variant: Union[str, SchemaVariant]):
		"""Bound backend method for (query, variant); UnknownQuery if either side is missing."""
		model = SchemaVariant.parse(variant)
		definition = self.definition(query_id)
		backend = self.backends.get(model)
		method = getattr(backend, definition.method_name, None) if backend is not None else None
		if method is None:
			raise UnknownQuery(f"Query {definition.query_id.value} for model {model.value} not found")
		return method

	def validate(self):
		"""Fail fast unless every registered query has an implementation for both variants."""
		for qid in self.definitions:
			for model in SchemaVariant:
				self.implementation(qid, model)

	def parse_params(self, query_id: Union[str, QueryId], params: Union[Mapping[str, Any], BaseModel, None]) -> QueryParams:
		"""Validate raw parameters against the query's model, applying its defaults."""
		definition = self.definition(query_id)
		if isinstance(params, definition.params_model):
			return params
		try:
			return definition.params_model.model_validate(dict(params or {}))
		except ValidationError as e:
			raise InvalidQueryParameters(
				f"Invalid parameters for {definition.query_id.value}: {e.errors(include_url=False)}"
			) from e

	def execute(
		self,
		query_id: Union[str, QueryId],
		variant: Union[str, SchemaVariant],
		params: Union[Mapping[str, Any], BaseModel, None] = None,
	) -> List[Document]:
		"""Run one query against one variant and return its rows."""
		model = SchemaVariant.parse(variant)  # InvalidVariant before anything else
		method = self.implementation(query_id, model)
		qid = self.definition(query_id).query_id
		parsed = self.parse_params(qid, params)
		logger.debug(f"[Registry] {qid.value} model={model.value} params={parsed.model_dump()}")
		try:
			rows = method(parsed)
		except PyMongoError as e:
			logger.error(f"[Registry] {qid.value} model={model.value} failed: {e}")
			raise QueryExecutionFailure(qid.value, model.value, str(e)) from e
		logger.debug(f"[Registry] {qid.value} model={model.value} returned {len(rows)} rows")
		return rows

	def describe(self) -> List[Dict[str, Any]]:
		"""Registry listing with each query's parameters and defaults."""
		listing = []
		for definition in self.definitions.values():
			parameters = {}
			for name, field in definition.params_model.model_fields.items():
				key = field.alias or name
				parameters[key] = 'required' if field.is_required() else field.default
			listing.append({
				'queryId': definition.query_id.value,
				'intent': definition.intent,
				'parameters': parameters,
			})
		return listing
