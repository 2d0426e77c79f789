"""
Unit tests for QueryRegistry: completeness, variant validation, defaults, and lookup misses.
"""

from datetime import date, datetime, timedelta
from unittest.mock import MagicMock

import pytest
from pymongo.errors import OperationFailure

from conftest import make_review
from review_bench.database import REVIEWS_A, REVIEWS_B
from review_bench.errors import InvalidQueryParameters, InvalidVariant, QueryExecutionFailure, UnknownQuery
from review_bench.ingest import ingest_model_a
from review_bench.models import QueryId, SchemaVariant
from review_bench.query_backends import ModelABackend, ModelBBackend, rating_bucket_expr
from review_bench.query_registry import QUERY_DEFINITIONS, QueryRegistry


def test_every_query_has_both_implementations(registry):
	assert [d.query_id for d in QUERY_DEFINITIONS] == list(QueryId)
	registry.validate()
	for qid in QueryId:
		for model in SchemaVariant:
			assert callable(registry.implementation(qid, model))


def test_third_variant_is_rejected(registry):
	with pytest.raises(InvalidVariant):
		registry.execute('Q1', 'C', {'title': 'Inception'})
	with pytest.raises(InvalidVariant):
		registry.execute('Q1', None, {'title': 'Inception'})


def test_variant_is_case_insensitive():
	assert SchemaVariant.parse('a') is SchemaVariant.A
	assert SchemaVariant.parse(' B ') is SchemaVariant.B


def test_unknown_query_is_distinct_from_empty_result(registry):
	with pytest.raises(UnknownQuery):
		registry.execute('Q11', 'A', {})
	assert registry.execute('Q1', 'B', {'title': 'No Such Movie'}) == []


def test_missing_variant_backend_fails_validation(seeded_db):
	partial = QueryRegistry({SchemaVariant.A: ModelABackend(seeded_db)})
	with pytest.raises(UnknownQuery):
		partial.validate()
	with pytest.raises(UnknownQuery):
		partial.execute('Q4', 'B', {})


def test_default_parameters(registry):
	defaults = {
		'Q1': ('limit', 20, {'title': 'x'}),
		'Q2': ('limit', 100, {}),
		'Q3': ('limit', 100, {}),
		'Q4': ('limit', 10, {}),
		'Q9': ('limit', 10, {}),
		'Q10': ('limit', 10, {}),
	}
	for qid, (field, expected, required) in defaults.items():
		params = registry.parse_params(qid, required)
		assert getattr(params, field) == expected, qid

	assert registry.parse_params('Q4', {}).min_reviews == 50
	assert registry.parse_params('Q9', {}).min_votes == 10
	cold = registry.parse_params('Q10', {})
	assert (cold.min_reviews, cold.min_rating) == (3, 8.5)


def test_params_are_coerced_from_query_strings(registry):
	params = registry.parse_params('Q3', {'minRating': '8', 'startDate': '2020-01-01', 'limit': '5', 'extra': 'x'})
	assert params.min_rating == 8
	assert params.start_date == date(2020, 1, 1)
	assert params.limit == 5


def test_bad_params_raise_client_error(registry):
	with pytest.raises(InvalidQueryParameters):
		registry.execute('Q4', 'A', {'limit': 'lots'})
	with pytest.raises(InvalidQueryParameters):
		registry.execute('Q1', 'A', {})  # title is required



@pytest.mark.parametrize('qid,params', [
	('Q1', {'title': '   '}),
	('Q8', {'title': '\t'}),
	('Q6', {'searchText': '  '}),
])
def test_blank_strings_are_rejected(registry, qid, params):
	for model in ('A', 'B'):
		with pytest.raises(InvalidQueryParameters):
			registry.execute(qid, model, params)


def test_string_params_are_stripped(registry):
	assert registry.parse_params('Q1', {'title': '  Inception '}).title == 'Inception'
	rows = registry.execute('Q1', 'B', {'title': ' paddington '})
	assert len(rows) == 3


def test_q1_default_limit_applies(db):
	start = datetime(2022, 1, 1)
	ingest_model_a(db, [make_review('Memento', 'alice', 8, start + timedelta(days=i)) for i in range(25)])
	rows = QueryRegistry.for_database(db).execute('Q1', 'A', {'title': 'memento'})
	assert len(rows) == 20
	assert rows[0]['review_date'] == start + timedelta(days=24)


@pytest.mark.parametrize('qid,params', [
	('Q1', {'title': 'Nonexistent'}),
	('Q2', {'username': 'nobody'}),
	('Q2', {}),
	('Q8', {'title': 'Nonexistent'}),
])
def test_model_b_lookup_miss_returns_empty(registry, qid, params):
	assert registry.execute(qid, 'B', params) == []


def test_storage_errors_become_execution_failures():
	db = MagicMock()
	db.__getitem__.return_value.aggregate.side_effect = OperationFailure('boom', code=2)
	registry = QueryRegistry({SchemaVariant.A: ModelABackend(db), SchemaVariant.B: ModelBBackend(db)})
	with pytest.raises(QueryExecutionFailure) as excinfo:
		registry.execute('Q5', 'A', {})
	assert 'boom' in str(excinfo.value)


@pytest.mark.parametrize('backend_cls,collection', [(ModelABackend, REVIEWS_A), (ModelBBackend, REVIEWS_B)])
def test_text_search_ranks_by_score_then_rating(backend_cls, collection):
	db = MagicMock()
	reviews = db.__getitem__.return_value
	reviews.find.return_value.sort.return_value.limit.return_value = [{'score': 1.5, 'rating': 9}]

	registry = QueryRegistry({SchemaVariant.A: backend_cls(db), SchemaVariant.B: backend_cls(db)})
	rows = registry.execute('Q6', backend_cls.variant, {'searchText': 'great acting'})

	assert rows == [{'score': 1.5, 'rating': 9}]
	db.__getitem__.assert_called_with(collection)
	reviews.find.assert_called_once_with(
		{'$text': {'$search': 'great acting'}},
		{'score': {'$meta': 'textScore'}},
	)
	reviews.find.return_value.sort.assert_called_once_with([('score', {'$meta': 'textScore'}), ('rating', -1)])
	reviews.find.return_value.sort.return_value.limit.assert_called_once_with(20)


def test_rating_bucket_expression_covers_five_ranges():
	expr = rating_bucket_expr('$rating')
	labels = []
	while isinstance(expr, dict):
		condition, label, expr = expr['$cond']
		labels.append((condition['$lte'][1], label))
	assert labels == [(2, '0-2'), (4, '2-4'), (6, '4-6'), (8, '6-8'), (10, '8-10')]
	assert expr == 'invalid'


def test_describe_lists_defaults(registry):
	listing = {q['queryId']: q for q in registry.describe()}
	assert list(listing) == [q.value for q in QueryId]
	assert listing['Q1']['parameters'] == {'title': 'required', 'limit': 20}
	assert listing['Q10']['parameters'] == {'minReviews': 3, 'minRating': 8.5, 'limit': 10}
