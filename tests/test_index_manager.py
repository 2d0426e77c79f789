"""
Tests for IndexManager: idempotent creation, dropping, and continue-on-error.
"""

from unittest.mock import MagicMock

import pytest
from pymongo.errors import OperationFailure

from review_bench.database import MOVIES_B, REVIEWS_A, REVIEWS_B, USERS_B
from review_bench.errors import IndexCreationWarning, InvalidVariant
from review_bench.index_manager import INDEX_SPECS, IndexManager
from review_bench.models import IndexSpec, SchemaVariant


def test_index_names_follow_default_scheme():
	spec = IndexSpec(REVIEWS_B, (('movie_id', 1), ('review_date', -1)))
	assert spec.name == 'movie_id_1_review_date_-1'
	assert spec.options() == {'name': 'movie_id_1_review_date_-1'}
	text = [s for s in INDEX_SPECS[SchemaVariant.A] if s.weights][0]
	assert text.options()['weights'] == {'review_content': 3, 'movie.title': 2}


def test_every_variant_declares_a_text_index():
	for variant, specs in INDEX_SPECS.items():
		assert any(d == 'text' for s in specs for _, d in s.keys), variant


def test_create_is_idempotent(seeded_db):
	manager = IndexManager(seeded_db)
	before = manager.list_indexes('A')
	summary = manager.create_indexes('A')
	assert manager.list_indexes('A') == before
	assert 'movie.title_1' in before[REVIEWS_A]
	assert 'review_date_-1' in before[REVIEWS_A]
	assert len(summary.created) + len(summary.existing) + len(summary.warnings) == len(INDEX_SPECS[SchemaVariant.A])


def test_drop_leaves_only_primary_key(seeded_db):
	manager = IndexManager(seeded_db)
	manager.drop_indexes('B')
	assert manager.list_indexes('B') == {REVIEWS_B: ['_id_'], MOVIES_B: ['_id_'], USERS_B: ['_id_']}

	manager.create_indexes('B')
	restored = manager.list_indexes('B')
	assert 'title_1' in restored[MOVIES_B]
	assert 'names_1' in restored[USERS_B]
	assert 'movie_id_1_review_date_-1' in restored[REVIEWS_B]


def test_creation_continues_past_failures():
	db = MagicMock()
	collection = db.__getitem__.return_value

	def create_index(keys, name, **kwargs):
		if name == 'rating_-1':
			raise OperationFailure('Index already exists with a different name', code=85)
		if name == 'user.id_1':
			raise OperationFailure('too many indexes', code=2)
		return name

	collection.create_index.side_effect = create_index
	summary = IndexManager(db).create_indexes(SchemaVariant.A)

	assert collection.create_index.call_count == len(INDEX_SPECS[SchemaVariant.A])
	assert summary.existing == [f"{REVIEWS_A}.rating_-1"]
	assert len(summary.warnings) == 1
	warning = summary.warnings[0]
	assert isinstance(warning, IndexCreationWarning)
	assert (warning.collection, warning.index_name) == (REVIEWS_A, 'user.id_1')
	assert not summary.ok
	assert f"{REVIEWS_A}.review_date_-1" in summary.created


def test_drop_tolerates_missing_collections():
	db = MagicMock()
	db.__getitem__.return_value.drop_indexes.side_effect = OperationFailure('ns not found', code=26)
	IndexManager(db).drop_indexes('A')  # does not raise


def test_drop_failure_is_not_fatal():
	db = MagicMock()
	db.__getitem__.return_value.drop_indexes.side_effect = OperationFailure('not authorized', code=13)
	IndexManager(db).drop_indexes('B')
	assert db.__getitem__.return_value.drop_indexes.call_count == 3


def test_invalid_variant_rejected(db):
	with pytest.raises(InvalidVariant):
		IndexManager(db).create_indexes('C')


def test_titles_and_names_are_not_unique():
	for spec in INDEX_SPECS[SchemaVariant.B]:
		if spec.collection in (MOVIES_B, USERS_B):
			assert not spec.unique, spec.name
