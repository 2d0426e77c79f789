"""
Parameter records for the benchmark queries.
One pydantic model per query id; request parameters arrive as camelCase strings
(e.g. minReviews=5) and are coerced here, with defaults for anything omitted.
"""

from datetime import date  # Q3 date bounds
from typing import Optional  # optional fields

from pydantic import BaseModel, ConfigDict, Field  # validation and aliasing


class QueryParams(BaseModel):
	"""Base for all query parameter records: camelCase aliases, extra keys ignored, strings stripped before validation."""
	model_config = ConfigDict(populate_by_name=True, extra='ignore', frozen=True, str_strip_whitespace=True)


class LatestReviewsParams(QueryParams):
	"""Q1: latest reviews for a movie title."""
	title: str = Field(..., min_length=1)
	limit: int = Field(20, ge=1)


class UserReviewsParams(QueryParams):
	"""Q2: reviews by one user, addressed by id or by name."""
	user_id: Optional[str] = Field(None, alias='userId')
	username: Optional[str] = None
	limit: int = Field(100, ge=1)


class RatingWindowParams(QueryParams):
	"""Q3: reviews at or above a rating inside a date window (whole days, inclusive)."""
	min_rating: float = Field(0, alias='minRating')
	start_date: Optional[date] = Field(None, alias='startDate')
	end_date: Optional[date] = Field(None, alias='endDate')
	limit: int = Field(100, ge=1)


class TopRatedParams(QueryParams):
	"""Q4: best average rating with a review-count floor."""
	min_reviews: int = Field(50, alias='minReviews', ge=0)
	limit: int = Field(10, ge=1)


class ActiveReviewersParams(QueryParams):
	"""Q5: most prolific reviewers."""
	limit: int = Field(10, ge=1)


class TextSearchParams(QueryParams):
	"""Q6: ranked full-text search."""
	search_text: str = Field(..., alias='searchText', min_length=1)
	limit: int = Field(20, ge=1)


class RatingHistogramParams(QueryParams):
	"""Q7 takes no parameters."""


class MonthlyTrendParams(QueryParams):
	"""Q8: monthly review count and average rating for a title."""
	title: str = Field(..., min_length=1)


class HelpfulnessParams(QueryParams):
	"""Q9: helpfulness ratio over reviews with enough votes."""
	min_votes: int = Field(10, alias='minVotes', ge=0)
	limit: int = Field(10, ge=1)


class ColdStartParams(QueryParams):
	"""Q10: few reviews, high average."""
	min_reviews: int = Field(3, alias='minReviews', ge=0)
	min_rating: float = Field(8.5, alias='minRating')
	limit: int = Field(10, ge=1)
