"""
Batch ingestion of parsed reviews into either schema variant.
Each loader clears the variant's collections, inserts in batches, recreates the
variant's indexes, and returns document counts.
"""

from typing import Any, Dict, Iterator, List, Optional  # type hints

from pymongo.database import Database  # database handle

from loguru import logger  # console logger

from .database import MOVIES_B, REVIEWS_A, REVIEWS_B, USERS_B
from .index_manager import IndexManager
from .models import ParsedReview, SchemaVariant

BATCH_SIZE = 1000


def _batches(docs: List[Dict[str, Any]], batch_size: int) -> Iterator[List[Dict[str, Any]]]:
	for start in range(0, len(docs), batch_size):
		yield docs[start:start + batch_size]


def _insert_in_batches(db: Database, collection: str, docs: List[Dict[str, Any]], batch_size: int):
	total = (len(docs) + batch_size - 1) // batch_size
	for number, batch in enumerate(_batches(docs, batch_size), 1):
		db[collection].insert_many(batch, ordered=False)
		logger.info(f"[Ingest] {collection}: inserted batch {number}/{total}")


def _empty_distribution() -> Dict[str, int]:
	return {str(r): 0 for r in range(1, 11)}


def _stats_entry() -> Dict[str, Any]:
	return {
		'total_reviews': 0,
		'rating_sum': 0,
		'total_helpful_votes': 0,
		'total_votes': 0,
		'rating_distribution': _empty_distribution(),
		'first_review_date': None,
		'last_review_date': None,
	}


def _accumulate(stats: Dict[str, Any], review: ParsedReview):
	"""Fold one review into a movie or user statistics entry."""
	stats['total_reviews'] += 1
	stats['rating_sum'] += review.rating
	stats['total_helpful_votes'] += review.helpful_votes
	stats['total_votes'] += review.total_votes
	stats['rating_distribution'][str(review.rating)] += 1
	if stats['first_review_date'] is None or review.review_date < stats['first_review_date']:
		stats['first_review_date'] = review.review_date
	if stats['last_review_date'] is None or review.review_date > stats['last_review_date']:
		stats['last_review_date'] = review.review_date


def _finalize(stats: Dict[str, Any]) -> Dict[str, Any]:
	"""Replace the running rating sum with derived averages and ratios."""
	rating_sum = stats.pop('rating_sum')
	stats['average_rating'] = rating_sum / stats['total_reviews'] if stats['total_reviews'] else 0
	stats['helpfulness_ratio'] = (
		stats['total_helpful_votes'] / stats['total_votes'] if stats['total_votes'] > 0 else 0
	)
	return stats


def ingest_model_a(
	db: Database,
	reviews: List[ParsedReview],
	batch_size: int = BATCH_SIZE,
	index_manager: Optional[IndexManager] = None,
) -> Dict[str, int]:
	"""Load reviews into the denormalized reviews_a collection."""
	logger.info("[Ingest] Starting Model A ingestion...")
	db[REVIEWS_A].delete_many({})
	logger.info("[Ingest] Cleared existing Model A data")

	_insert_in_batches(db, REVIEWS_A, [r.to_model_a_document() for r in reviews], batch_size)
	(index_manager or IndexManager(db)).create_indexes(SchemaVariant.A)

	counts = {
		'reviews': db[REVIEWS_A].count_documents({}),
		'uniqueMovies': len(db[REVIEWS_A].distinct('movie.id')),
		'uniqueUsers': len(db[REVIEWS_A].distinct('user.id')),
	}
	logger.info(f"[Ingest] Model A summary: {counts}")
	return counts


def ingest_model_b(
	db: Database,
	reviews: List[ParsedReview],
	batch_size: int = BATCH_SIZE,
	index_manager: Optional[IndexManager] = None,
) -> Dict[str, int]:
	"""
	Load reviews into the normalized layout.
	Movies are keyed by movie id and users by user id, the same identities Model A
	embeds. A movie keeps the first title/attributes seen for its id; a user keeps
	the first name as 'name' and every name seen under its id in 'names'.
	"""
	logger.info("[Ingest] Starting Model B ingestion...")
	for name in (REVIEWS_B, MOVIES_B, USERS_B):
		db[name].delete_many({})
	logger.info("[Ingest] Cleared existing Model B data")

	movies: Dict[str, Dict[str, Any]] = {}
	users: Dict[str, Dict[str, Any]] = {}
	for review in reviews:
		if review.movie_id not in movies:
			movies[review.movie_id] = {'_id': review.movie_id, **review.movie_fields(), **_stats_entry()}
		_accumulate(movies[review.movie_id], review)

		if review.user_id not in users:
			users[review.user_id] = {'_id': review.user_id, 'name': review.username, 'names': [], **_stats_entry()}
		user = users[review.user_id]
		if review.username not in user['names']:
			user['names'].append(review.username)  # renamed users keep every alias
		_accumulate(user, review)

	movie_docs = [_finalize(m) for m in movies.values()]
	user_docs = [_finalize(u) for u in users.values()]
	_insert_in_batches(db, MOVIES_B, movie_docs, batch_size)
	_insert_in_batches(db, USERS_B, user_docs, batch_size)
	logger.info(f"[Ingest] Inserted {len(movie_docs)} movies and {len(user_docs)} users")

	_insert_in_batches(db, REVIEWS_B, [r.to_model_b_review() for r in reviews], batch_size)
	(index_manager or IndexManager(db)).create_indexes(SchemaVariant.B)

	counts = {
		'reviews': db[REVIEWS_B].count_documents({}),
		'movies': db[MOVIES_B].count_documents({}),
		'users': db[USERS_B].count_documents({}),
	}
	logger.info(f"[Ingest] Model B summary: {counts}")
	return counts


def ingest(db: Database, variant, reviews: List[ParsedReview], batch_size: int = BATCH_SIZE) -> Dict[str, int]:
	"""Dispatch to the loader for one variant."""
	model = SchemaVariant.parse(variant)
	loader = ingest_model_a if model is SchemaVariant.A else ingest_model_b
	return loader(db, reviews, batch_size=batch_size)
