"""
MongoDB connectivity.
Holds collection names for both schema variants, a lazily created shared client,
and reads of the per-movie and per-user statistics stored with Model B.
"""

from typing import Any, Dict, List, Optional  # type hints

from pymongo import MongoClient  # driver
from pymongo.database import Database  # type of a database handle
from pymongo.errors import PyMongoError  # base driver error

from loguru import logger  # console logger

from . import config  # connection settings
from .models import SchemaVariant  # variant -> collections mapping

# Collection names
REVIEWS_A = 'reviews_a'  # Model A: reviews with embedded movie and user
REVIEWS_B = 'reviews_b'  # Model B: reviews referencing movie_id / user_id
MOVIES_B = 'movies_b'
USERS_B = 'users_b'

VARIANT_COLLECTIONS = {
	SchemaVariant.A: (REVIEWS_A,),
	SchemaVariant.B: (REVIEWS_B, MOVIES_B, USERS_B),
}

_client: Optional[MongoClient] = None  # shared client, created on first use


def get_client() -> MongoClient:
	"""Return the process-wide MongoClient, creating it on first call."""
	global _client
	if _client is None:
		logger.info(f"[Database] Connecting to {config.MONGODB_URI}")
		_client = MongoClient(config.MONGODB_URI, serverSelectionTimeoutMS=5000)
	return _client


def get_database() -> Database:
	"""Database handle for the configured database name."""
	return get_client()[config.MONGODB_DB]


def close_client():
	global _client
	if _client is not None:
		_client.close()
		_client = None
		logger.info("[Database] Connection closed")


def ping(db: Database) -> bool:
	"""True if the server answers a ping command."""
	try:
		db.command('ping')
		return True
	except PyMongoError as e:
		logger.warning(f"[Database] Ping failed: {e}")
		return False


def collection_counts(db: Database) -> Dict[str, Dict[str, int]]:
	"""Document counts for every collection of both variants, keyed by variant label."""
	return {
		variant.label: {name: db[name].count_documents({}) for name in names}
		for variant, names in VARIANT_COLLECTIONS.items()
	}


def _with_id(doc: Dict[str, Any], key: str) -> Dict[str, Any]:
	"""Rename _id to a named key so the document reads like an API row."""
	doc = dict(doc)
	doc[key] = doc.pop('_id')
	return doc


def movie_stats(db: Database, title_pattern) -> List[Dict[str, Any]]:
	"""
	Precomputed statistics of every Model B movie whose title matches.
	Rows carry movieId, title, year, genres, total_reviews, average_rating,
	rating_distribution, helpfulness_ratio, and first/last review dates.
	"""
	cursor = db[MOVIES_B].find({'title': title_pattern}).sort([('title', 1), ('_id', 1)])
	return [_with_id(doc, 'movieId') for doc in cursor]


def user_stats(db: Database, user_id: str) -> Optional[Dict[str, Any]]:
	"""Precomputed statistics of one Model B user, or None when unknown."""
	doc = db[USERS_B].find_one({'_id': user_id})
	return _with_id(doc, 'userId') if doc else None
