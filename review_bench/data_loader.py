"""
Data loading and preprocessing module.
Reads the IMDB user-review CSV and cleans each row into a ParsedReview that both
schema variants are rendered from.
"""

# Standard libs for CSV parsing, hashing, dates, typing, and paths
import csv  # read the review dump
import hashlib  # stable derived ids
from datetime import datetime  # review dates
from pathlib import Path  # filesystem-safe paths
from typing import Dict, Iterable, List, Optional  # type hints

# Import our record type shared with ingestion
from .models import ParsedReview  # cleaned review row

# Console logging
from loguru import logger  # console logger

# Date layouts seen in IMDB review dumps, tried in order
DATE_FORMATS = ('%Y-%m-%d', '%Y-%m-%dT%H:%M:%S', '%Y-%m-%d %H:%M:%S', '%d %B %Y', '%B %d, %Y', '%m/%d/%Y')

TRUE_VALUES = {'true', '1', 'yes', 'y', 't'}


class ReviewLoader:
	"""
	Handles loading and cleaning of review rows.
	"""

	# Genre synonym mapping: common spellings in the dump → single standard name
	GENRE_SYNONYMS = {
		'sci-fi': 'Science Fiction',  # map hyphenated to canonical
		'sci fi': 'Science Fiction',  # map spaced form
		'scifi': 'Science Fiction',  # common variant
		'science-fiction': 'Science Fiction',  # map with dash
		'science fiction': 'Science Fiction',  # map with space
		'rom-com': 'Romance',
		'romantic': 'Romance',
		'animated': 'Animation',
		'biographical': 'Biography',
		'sports': 'Sport',
		'film-noir': 'Film Noir',
		'film noir': 'Film Noir',
	}

	def __init__(self):
		"""Initialize the loader and expose the synonyms mapping."""
		self.genre_synonyms = self.GENRE_SYNONYMS  # store mapping for reuse
		self.skipped = 0  # rows rejected by the last load

	def load_reviews_from_csv(self, filepath: str) -> List[ParsedReview]:
		"""
		Load reviews from a CSV file with a header row.
		Rows without a title, content, valid rating, or parseable date are skipped.
		"""
		filepath = Path(filepath)  # normalize path

		# Validate the file presence early to give clear error messages
		if not filepath.exists():
			raise FileNotFoundError(f"Review data file not found: {filepath}")

		logger.info(f"[ReviewLoader] Loading reviews from {filepath}...")  # log action

		with open(filepath, 'r', encoding='utf-8', newline='') as f:
			reviews = self.parse_rows(csv.DictReader(f))

		logger.info(f"[ReviewLoader] Loaded {len(reviews)} reviews, skipped {self.skipped} rows.")  # summary
		return reviews

	def parse_rows(self, rows: Iterable[Dict[str, str]]) -> List[ParsedReview]:
		"""Parse dict rows (CSV header -> value); line numbers start at 2 to account for the header."""
		reviews = []
		self.skipped = 0
		for line_num, row in enumerate(rows, 2):
			try:
				review = self._parse_review(row)
			except ValueError as e:
				logger.warning(f"[ReviewLoader] Skipping row at line {line_num}: {e}")  # bad row
				self.skipped += 1
				continue
			reviews.append(review)
		return reviews

	def _parse_review(self, data: Dict[str, str]) -> ParsedReview:
		"""
		Convert a raw CSV row into a ParsedReview.
		Raises ValueError when a required field is missing or malformed.
		"""
		title = self._clean(data.get('movie_title'))
		content = self._clean(data.get('review_content'))
		if not title:
			raise ValueError("missing movie_title")
		if not content:
			raise ValueError("missing review_content")

		rating = self._parse_int(data.get('rating'))
		if rating is None or not 1 <= rating <= 10:
			raise ValueError(f"invalid rating {data.get('rating')!r}")

		review_date = self._parse_date(data.get('review_date'))
		if review_date is None:
			raise ValueError(f"unparseable review_date {data.get('review_date')!r}")

		year = self._parse_int(data.get('year'))
		# Remakes share a title, so the release year is part of the derived movie key
		movie_key = f"{title} ({year})" if year else title

		# User name falls back to the raw id so every review has an author
		user_id = self._clean(data.get('user_id'))
		username = self._clean(data.get('username')) or user_id or 'anonymous'

		return ParsedReview(
			movie_id=self._clean(data.get('movie_id')) or self.derive_id('m', movie_key),
			movie_title=title,
			user_id=user_id or self.derive_id('u', username),
			username=username,
			rating=rating,
			review_date=review_date,
			review_content=content,
			review_title=self._clean(data.get('review_title')) or 'No Title',
			year=year,
			genres=[self._normalize_genre(g) for g in self._parse_comma_separated(data.get('genres'))],
			directors=self._parse_comma_separated(data.get('directors')),
			stars=self._parse_comma_separated(data.get('stars')),
			imdb_rating=self._parse_float(data.get('imdb_rating')),
			helpful_votes=self._parse_int(data.get('helpful_votes')) or 0,
			total_votes=self._parse_int(data.get('total_votes')) or 0,
			spoiler_tag=self._parse_bool(data.get('spoiler_tag')),
			verified_purchase=self._parse_bool(data.get('verified_purchase')),
		)

	@staticmethod
	def derive_id(prefix: str, value: str) -> str:
		"""Deterministic id from a natural key, so both variants agree on it."""
		digest = hashlib.sha1(value.strip().lower().encode('utf-8')).hexdigest()[:12]
		return f"{prefix}_{digest}"

	def _clean(self, value: Optional[str]) -> str:
		"""Trim whitespace; None becomes empty string."""
		return value.strip() if value else ''

	def _parse_comma_separated(self, value: Optional[str]) -> List[str]:
		"""Split a comma-separated cell into clean, non-empty items."""
		if not value:
			return []
		return [item.strip() for item in value.split(',') if item.strip()]

	def _parse_int(self, value: Optional[str]) -> Optional[int]:
		try:
			return int(float(value))  # tolerate "8.0"
		except (TypeError, ValueError):
			return None

	def _parse_float(self, value: Optional[str]) -> Optional[float]:
		try:
			return float(value)
		except (TypeError, ValueError):
			return None

	def _parse_bool(self, value: Optional[str]) -> bool:
		return self._clean(value).lower() in TRUE_VALUES

	def _parse_date(self, value: Optional[str]) -> Optional[datetime]:
		text = self._clean(value)
		for fmt in DATE_FORMATS:
			try:
				return datetime.strptime(text, fmt)
			except ValueError:
				continue
		return None

	def _normalize_genre(self, genre: str) -> str:
		"""
		Map a raw genre to its canonical form using synonyms; fall back to Title Case.
		"""
		genre_lower = genre.strip().lower()  # prepare for lookup
		if genre_lower in self.genre_synonyms:
			return self.genre_synonyms[genre_lower]
		return genre.strip().title()
