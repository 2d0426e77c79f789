"""
Shared fixtures: an in-memory MongoDB (mongomock) seeded with the same twelve
reviews under both schema variants.
"""

from datetime import datetime

import mongomock
import pytest

from review_bench.ingest import ingest_model_a, ingest_model_b
from review_bench.models import ParsedReview
from review_bench.query_registry import QueryRegistry

MOVIES = {
	'Inception': {'year': 2010, 'genres': ['Science Fiction', 'Thriller']},
	'The Dark Knight': {'year': 2008, 'genres': ['Action', 'Crime']},
	'Paddington 2': {'year': 2017, 'genres': ['Comedy', 'Family']},
}

# (title, username, rating, date, helpful votes, total votes, content)
REVIEW_ROWS = [
	('Inception', 'alice', 10, datetime(2021, 1, 5), 8, 10, 'Mind-bending plot and great acting'),
	('Inception', 'bob', 9, datetime(2021, 1, 20), 5, 12, 'Dreams within dreams'),
	('Inception', 'carol', 8, datetime(2021, 3, 2), 2, 4, 'A bit confusing'),
	('Inception', 'dave', 9, datetime(2022, 6, 15), 9, 11, 'Superb score'),
	('Inception', 'alice', 9, datetime(2023, 2, 1), 0, 0, 'Rewatched, still great'),
	('The Dark Knight', 'bob', 10, datetime(2021, 2, 10), 20, 25, 'Great acting by Heath Ledger'),
	('The Dark Knight', 'carol', 8, datetime(2021, 2, 11), 3, 10, 'Dark and gritty'),
	('The Dark Knight', 'alice', 7, datetime(2022, 8, 8), 1, 3, 'Too long'),
	('The Dark Knight', 'dave', 9, datetime(2023, 5, 5), 6, 10, 'Iconic villain'),
	('Paddington 2', 'alice', 9, datetime(2022, 1, 1), 4, 5, 'Charming'),
	('Paddington 2', 'carol', 9, datetime(2022, 3, 3), 1, 2, 'Marmalade'),
	('Paddington 2', 'bob', 8, datetime(2023, 7, 7), 10, 12, 'Delightful family film'),
]


def make_review(title, username, rating, review_date, helpful=0, total=0, content='Fine'):
	movie = MOVIES.get(title, {'year': 2000, 'genres': ['Drama']})
	return ParsedReview(
		movie_id=f"m_{title.lower().replace(' ', '_')}",
		movie_title=title,
		user_id=f"user_{username}",
		username=username,
		rating=rating,
		review_date=review_date,
		review_content=content,
		year=movie['year'],
		genres=list(movie['genres']),
		helpful_votes=helpful,
		total_votes=total,
	)


@pytest.fixture
def reviews():
	return [make_review(*row) for row in REVIEW_ROWS]


@pytest.fixture
def db():
	return mongomock.MongoClient()['review_bench_test']


@pytest.fixture
def seeded_db(db, reviews):
	ingest_model_a(db, reviews)
	ingest_model_b(db, reviews)
	return db


@pytest.fixture
def registry(seeded_db):
	return QueryRegistry.for_database(seeded_db)
