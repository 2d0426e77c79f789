"""
Query backends.
One implementation of the ten benchmark queries per schema variant. Model A reads
the embedded movie/user fields directly; Model B resolves references first and
joins movies/users back in, so both return the same rows for the same reviews.
"""

import re  # case-insensitive title matching
from abc import ABC, abstractmethod  # backend interface
from datetime import datetime, time  # whole-day date bounds
from typing import Any, Dict, List  # type hints

from pymongo import DESCENDING  # sort direction
from pymongo.database import Database  # database handle

from .database import MOVIES_B, REVIEWS_A, REVIEWS_B, USERS_B  # collection names
from .models import SchemaVariant
from .query_params import (
	ActiveReviewersParams,
	ColdStartParams,
	HelpfulnessParams,
	LatestReviewsParams,
	MonthlyTrendParams,
	RatingHistogramParams,
	RatingWindowParams,
	TextSearchParams,
	TopRatedParams,
	UserReviewsParams,
)

Document = Dict[str, Any]

# Upper bound (inclusive) -> label for the Q7 histogram
RATING_BUCKETS = [(2, '0-2'), (4, '2-4'), (6, '4-6'), (8, '6-8'), (10, '8-10')]


def title_pattern(title: str) -> re.Pattern:
	"""Case-insensitive literal substring match on a title."""
	return re.compile(re.escape(title.strip()), re.IGNORECASE)


def rating_bucket_expr(rating_field: str) -> Dict[str, Any]:
	"""Nested $cond mapping a rating onto its 2-point bucket label."""
	expr: Any = 'invalid'
	for upper, label in reversed(RATING_BUCKETS):
		expr = {'$cond': [{'$lte': [rating_field, upper]}, label, expr]}
	return expr


def rating_window_filter(params: RatingWindowParams) -> Document:
	"""Q3 filter shared by both variants."""
	query: Document = {'rating': {'$gte': params.min_rating}}
	window: Document = {}
	if params.start_date:
		window['$gte'] = datetime.combine(params.start_date, time.min)
	if params.end_date:
		window['$lte'] = datetime.combine(params.end_date, time.max)
	if window:
		query['review_date'] = window
	return query


def histogram_stages(genre_field: str) -> List[Document]:
	"""Q7 tail: count per (genre, bucket), then fold buckets into one row per genre."""
	return [
		{'$group': {
			'_id': {'genre': genre_field, 'bucket': rating_bucket_expr('$rating')},
			'count': {'$sum': 1},
		}},
		{'$project': {'_id': 0, 'genre': '$_id.genre', 'bucket': '$_id.bucket', 'count': 1}},
		{'$sort': {'genre': 1, 'bucket': 1}},
		{'$group': {'_id': '$genre', 'distribution': {'$push': {'bucket': '$bucket', 'count': '$count'}}}},
		{'$project': {'_id': 0, 'genre': '$_id', 'distribution': 1}},
		{'$sort': {'genre': 1}},
	]


def monthly_trend_stages() -> List[Document]:
	"""Q8 tail: review count and average rating per calendar month."""
	return [
		{'$group': {
			'_id': {'year': {'$year': '$review_date'}, 'month': {'$month': '$review_date'}},
			'count': {'$sum': 1},
			'avgRating': {'$avg': '$rating'},
		}},
		{'$project': {'_id': 0, 'year': '$_id.year', 'month': '$_id.month', 'count': 1, 'avgRating': 1}},
		{'$sort': {'year': 1, 'month': 1}},
	]


def ranked_movie_stages(order: Dict[str, int], limit: int) -> List[Document]:
	"""
	Sort per-movie rows (still keyed by movie id in _id), then drop the id.
	Title and movie id break ties, so remakes sharing a title keep a stable order.
	"""
	return [
		{'$sort': {**order, 'title': 1, '_id': 1}},
		{'$limit': limit},
		{'$project': {'_id': 0}},
	]


def helpfulness_expr() -> Dict[str, Any]:
	# zero-vote groups score 0 instead of dividing by zero
	return {'$cond': [
		{'$eq': ['$totalVotes', 0]},
		0,
		{'$divide': ['$totalHelpfulVotes', '$totalVotes']},
	]}


class QueryBackend(ABC):
	"""
	The ten benchmark queries against one schema variant.
	Every method is read-only and returns rows in the order documented on the method.
	"""

	variant: SchemaVariant

	def __init__(self, db: Database):
		self.db = db

	@abstractmethod
	def latest_reviews_for_title(self, params: LatestReviewsParams) -> List[Document]:
		"""Q1: reviews of movies whose title contains params.title, newest first."""

	@abstractmethod
	def reviews_by_user(self, params: UserReviewsParams) -> List[Document]:
		"""Q2: reviews by user id (preferred) or username, newest first."""

	@abstractmethod
	def reviews_in_rating_window(self, params: RatingWindowParams) -> List[Document]:
		"""Q3: reviews rated >= min_rating within the date window, newest first."""

	@abstractmethod
	def top_rated_movies(self, params: TopRatedParams) -> List[Document]:
		"""Q4: rows {title, avgRating, numReviews} by avgRating desc, numReviews desc."""

	@abstractmethod
	def most_active_reviewers(self, params: ActiveReviewersParams) -> List[Document]:
		"""Q5: rows {userId, username, reviewCount} by reviewCount desc."""

	@abstractmethod
	def search_reviews(self, params: TextSearchParams) -> List[Document]:
		"""Q6: text search results by relevance score desc, then rating desc."""

	@abstractmethod
	def rating_histogram_by_genre(self, params: RatingHistogramParams) -> List[Document]:
		"""Q7: rows {genre, distribution: [{bucket, count}]} sorted by genre."""

	@abstractmethod
	def monthly_trend(self, params: MonthlyTrendParams) -> List[Document]:
		"""Q8: rows {year, month, count, avgRating} in calendar order."""

	@abstractmethod
	def most_helpful_movies(self, params: HelpfulnessParams) -> List[Document]:
		"""Q9: rows {title, avgRating, helpfulnessScore} by helpfulnessScore desc."""

	@abstractmethod
	def cold_start_movies(self, params: ColdStartParams) -> List[Document]:
		"""Q10: rows {title, year, avgRating, numReviews} by year desc, avgRating desc."""


class ModelABackend(QueryBackend):
	"""Denormalized layout: filter and group on fields embedded in reviews_a."""

	variant = SchemaVariant.A

	@property
	def reviews(self):
		return self.db[REVIEWS_A]

	def latest_reviews_for_title(self, params):
		cursor = self.reviews.find({'movie.title': title_pattern(params.title)})
		return list(cursor.sort('review_date', DESCENDING).limit(params.limit))

	def reviews_by_user(self, params):
		if params.user_id:
			query = {'user.id': params.user_id}
		elif params.username:
			# a name may belong to several users, and a renamed user keeps all reviews
			user_ids = self.reviews.distinct('user.id', {'user.name': params.username})
			if not user_ids:
				return []
			query = {'user.id': {'$in': user_ids}}
		else:
			return []
		return list(self.reviews.find(query).sort('review_date', DESCENDING).limit(params.limit))

	def reviews_in_rating_window(self, params):
		cursor = self.reviews.find(rating_window_filter(params))
		return list(cursor.sort('review_date', DESCENDING).limit(params.limit))

	def top_rated_movies(self, params):
		return list(self.reviews.aggregate([
			{'$group': {
				'_id': '$movie.id',
				'title': {'$first': '$movie.title'},
				'avgRating': {'$avg': '$rating'},
				'numReviews': {'$sum': 1},
			}},
			{'$match': {'numReviews': {'$gte': params.min_reviews}}},
			{'$project': {'title': 1, 'avgRating': 1, 'numReviews': 1}},
		] + ranked_movie_stages({'avgRating': -1, 'numReviews': -1}, params.limit)))

	def most_active_reviewers(self, params):
		return list(self.reviews.aggregate([
			{'$group': {'_id': '$user.id', 'username': {'$first': '$user.name'}, 'reviewCount': {'$sum': 1}}},
			{'$project': {'_id': 0, 'userId': '$_id', 'username': 1, 'reviewCount': 1}},
			{'$sort': {'reviewCount': -1, 'userId': 1}},
			{'$limit': params.limit},
		]))

	def search_reviews(self, params):
		# text index covers review_content and movie.title
		cursor = self.reviews.find(
			{'$text': {'$search': params.search_text}},
			{'score': {'$meta': 'textScore'}},
		)
		cursor = cursor.sort([('score', {'$meta': 'textScore'}), ('rating', DESCENDING)])
		return list(cursor.limit(params.limit))

	def rating_histogram_by_genre(self, params):
		return list(self.reviews.aggregate([{'$unwind': '$movie.genres'}] + histogram_stages('$movie.genres')))

	def monthly_trend(self, params):
		return list(self.reviews.aggregate(
			[{'$match': {'movie.title': title_pattern(params.title)}}] + monthly_trend_stages()
		))

	def most_helpful_movies(self, params):
		return list(self.reviews.aggregate([
			{'$match': {'total_votes': {'$gte': params.min_votes}}},
			{'$group': {
				'_id': '$movie.id',
				'title': {'$first': '$movie.title'},
				'avgRating': {'$avg': '$rating'},
				'totalHelpfulVotes': {'$sum': '$helpful_votes'},
				'totalVotes': {'$sum': '$total_votes'},
			}},
			{'$project': {'title': 1, 'avgRating': 1, 'helpfulnessScore': helpfulness_expr()}},
		] + ranked_movie_stages({'helpfulnessScore': -1, 'avgRating': -1}, params.limit)))

	def cold_start_movies(self, params):
		return list(self.reviews.aggregate([
			{'$group': {
				'_id': '$movie.id',
				'title': {'$first': '$movie.title'},
				'year': {'$first': '$movie.year'},
				'avgRating': {'$avg': '$rating'},
				'numReviews': {'$sum': 1},
			}},
			{'$match': {'numReviews': {'$gte': params.min_reviews}, 'avgRating': {'$gte': params.min_rating}}},
			{'$project': {'title': 1, 'year': 1, 'avgRating': 1, 'numReviews': 1}},
		] + ranked_movie_stages({'year': -1, 'avgRating': -1}, params.limit)))


class ModelBBackend(QueryBackend):
	"""
	Normalized layout: reviews_b holds movie_id/user_id references.
	Title and username parameters are resolved against movies_b/users_b first;
	a lookup that finds nothing yields an empty result. Aggregations group
	reviews by reference and then join the referenced movie or user.
	"""

	variant = SchemaVariant.B

	@property
	def reviews(self):
		return self.db[REVIEWS_B]

	@property
	def movies(self):
		return self.db[MOVIES_B]

	@property
	def users(self):
		return self.db[USERS_B]

	def _movie_ids_for_title(self, title: str) -> List[Any]:
		"""Ids of every movie whose title matches; empty on a lookup miss."""
		return [m['_id'] for m in self.movies.find({'title': title_pattern(title)}, {'_id': 1})]

	def _user_ids(self, params: UserReviewsParams) -> List[Any]:
		"""Ids for the requested user; a username may match several users (or none)."""
		if params.user_id:
			return [params.user_id]
		if params.username:
			return [u['_id'] for u in self.users.find({'names': params.username}, {'_id': 1})]
		return []

	def _join_movie(self) -> List[Document]:
		"""Stages attaching the referenced movie (keyed by _id) as 'movie'."""
		return [
			{'$lookup': {'from': MOVIES_B, 'localField': '_id', 'foreignField': '_id', 'as': 'movie'}},
			{'$unwind': '$movie'},
		]

	def latest_reviews_for_title(self, params):
		movie_ids = self._movie_ids_for_title(params.title)
		if not movie_ids:
			return []
		cursor = self.reviews.find({'movie_id': {'$in': movie_ids}})
		return list(cursor.sort('review_date', DESCENDING).limit(params.limit))

	def reviews_by_user(self, params):
		user_ids = self._user_ids(params)
		if not user_ids:
			return []
		cursor = self.reviews.find({'user_id': {'$in': user_ids}})
		return list(cursor.sort('review_date', DESCENDING).limit(params.limit))

	def reviews_in_rating_window(self, params):
		cursor = self.reviews.find(rating_window_filter(params))
		return list(cursor.sort('review_date', DESCENDING).limit(params.limit))

	def top_rated_movies(self, params):
		return list(self.reviews.aggregate([
			{'$group': {'_id': '$movie_id', 'avgRating': {'$avg': '$rating'}, 'numReviews': {'$sum': 1}}},
			{'$match': {'numReviews': {'$gte': params.min_reviews}}},
		] + self._join_movie() + [
			{'$project': {'title': '$movie.title', 'avgRating': 1, 'numReviews': 1}},
		] + ranked_movie_stages({'avgRating': -1, 'numReviews': -1}, params.limit)))

	def most_active_reviewers(self, params):
		return list(self.reviews.aggregate([
			{'$group': {'_id': '$user_id', 'reviewCount': {'$sum': 1}}},
			{'$lookup': {'from': USERS_B, 'localField': '_id', 'foreignField': '_id', 'as': 'user'}},
			{'$unwind': '$user'},
			{'$project': {'_id': 0, 'userId': '$_id', 'username': '$user.name', 'reviewCount': 1}},
			{'$sort': {'reviewCount': -1, 'userId': 1}},
			{'$limit': params.limit},
		]))

	def search_reviews(self, params):
		# text index covers review_content only
		cursor = self.reviews.find(
			{'$text': {'$search': params.search_text}},
			{'score': {'$meta': 'textScore'}},
		)
		cursor = cursor.sort([('score', {'$meta': 'textScore'}), ('rating', DESCENDING)])
		return list(cursor.limit(params.limit))

	def rating_histogram_by_genre(self, params):
		return list(self.reviews.aggregate([
			{'$lookup': {'from': MOVIES_B, 'localField': 'movie_id', 'foreignField': '_id', 'as': 'movie'}},
			{'$unwind': '$movie'},
			{'$unwind': '$movie.genres'},
		] + histogram_stages('$movie.genres')))

	def monthly_trend(self, params):
		movie_ids = self._movie_ids_for_title(params.title)
		if not movie_ids:
			return []
		return list(self.reviews.aggregate(
			[{'$match': {'movie_id': {'$in': movie_ids}}}] + monthly_trend_stages()
		))

	def most_helpful_movies(self, params):
		return list(self.reviews.aggregate([
			{'$match': {'total_votes': {'$gte': params.min_votes}}},
			{'$group': {
				'_id': '$movie_id',
				'avgRating': {'$avg': '$rating'},
				'totalHelpfulVotes': {'$sum': '$helpful_votes'},
				'totalVotes': {'$sum': '$total_votes'},
			}},
		] + self._join_movie() + [
			{'$project': {'title': '$movie.title', 'avgRating': 1, 'helpfulnessScore': helpfulness_expr()}},
		] + ranked_movie_stages({'helpfulnessScore': -1, 'avgRating': -1}, params.limit)))

	def cold_start_movies(self, params):
		return list(self.reviews.aggregate([
			{'$group': {'_id': '$movie_id', 'avgRating': {'$avg': '$rating'}, 'numReviews': {'$sum': 1}}},
			{'$match': {'numReviews': {'$gte': params.min_reviews}, 'avgRating': {'$gte': params.min_rating}}},
		] + self._join_movie() + [
			{'$project': {'title': '$movie.title', 'year': '$movie.year', 'avgRating': 1, 'numReviews': 1}},
		] + ranked_movie_stages({'year': -1, 'avgRating': -1}, params.limit)))
