"""
Index management for both schema variants.
Declares each variant's index set and creates or drops it on demand, so the
benchmark can compare indexed and unindexed runs of the same queries.
"""

from dataclasses import dataclass, field  # creation summary
from typing import Dict, List, Optional, Union  # type hints

from pymongo.database import Database  # database handle
from pymongo.errors import OperationFailure  # server-side command errors

from loguru import logger  # console logger

from .database import MOVIES_B, REVIEWS_A, REVIEWS_B, USERS_B, VARIANT_COLLECTIONS
from .errors import IndexCreationWarning
from .models import IndexSpec, SchemaVariant

# Server error codes meaning the index (or an equivalent one) is already there
ALREADY_EXISTS_CODES = {68, 85, 86}  # IndexAlreadyExists, IndexOptionsConflict, IndexKeySpecsConflict
NAMESPACE_NOT_FOUND = 26

INDEX_SPECS: Dict[SchemaVariant, List[IndexSpec]] = {
	SchemaVariant.A: [
		IndexSpec(REVIEWS_A, (('movie.title', 1),)),
		IndexSpec(REVIEWS_A, (('movie.id', 1),)),
		IndexSpec(REVIEWS_A, (('user.id', 1),)),
		IndexSpec(REVIEWS_A, (('user.name', 1),)),
		IndexSpec(REVIEWS_A, (('rating', -1),)),
		IndexSpec(REVIEWS_A, (('review_date', -1),)),
		IndexSpec(REVIEWS_A, (('movie.genres', 1),)),
		IndexSpec(REVIEWS_A, (('helpful_votes', -1),)),
		IndexSpec(REVIEWS_A, (('total_votes', -1),)),
		IndexSpec(
			REVIEWS_A,
			(('review_content', 'text'), ('movie.title', 'text')),
			weights={'review_content': 3, 'movie.title': 2},
		),
	],
	SchemaVariant.B: [
		IndexSpec(REVIEWS_B, (('movie_id', 1),)),
		IndexSpec(REVIEWS_B, (('user_id', 1),)),
		IndexSpec(REVIEWS_B, (('rating', -1),)),
		IndexSpec(REVIEWS_B, (('review_date', -1),)),
		IndexSpec(REVIEWS_B, (('helpful_votes', -1),)),
		IndexSpec(REVIEWS_B, (('total_votes', -1),)),
		IndexSpec(REVIEWS_B, (('movie_id', 1), ('review_date', -1))),
		IndexSpec(REVIEWS_B, (('review_content', 'text'),), weights={'review_content': 1}),
		IndexSpec(MOVIES_B, (('title', 1),)),
		IndexSpec(MOVIES_B, (('year', -1),)),
		IndexSpec(MOVIES_B, (('genres', 1),)),
		IndexSpec(USERS_B, (('names', 1),)),
	],
}


@dataclass
class IndexCreationSummary:
	"""Outcome of one create_indexes call."""
	variant: SchemaVariant
	created: List[str] = field(default_factory=list)
	existing: List[str] = field(default_factory=list)
	warnings: List[IndexCreationWarning] = field(default_factory=list)

	@property
	def ok(self) -> bool:
		return not self.warnings

	def to_dict(self) -> Dict[str, object]:
		return {
			'model': self.variant.value,
			'created': list(self.created),
			'existing': list(self.existing),
			'warnings': [str(w) for w in self.warnings],
		}


class IndexManager:
	"""Creates, drops, and lists the declared indexes of each schema variant."""

	def __init__(self, db: Database, specs: Optional[Dict[SchemaVariant, List[IndexSpec]]] = None):
		self.db = db
		self.specs = specs if specs is not None else INDEX_SPECS

	def create_indexes(self, variant: Union[str, SchemaVariant]) -> IndexCreationSummary:
		"""
		Ensure every declared index for the variant exists.
		An index that already exists is not an error. Any other failure is logged,
		recorded as an IndexCreationWarning, and the remaining specs are still created.
		"""
		model = SchemaVariant.parse(variant)
		summary = IndexCreationSummary(variant=model)
		logger.info(f"[Indexes] Creating indexes for Model {model.value}...")
		for spec in self.specs.get(model, []):
			collection = self.db[spec.collection]
			try:
				collection.create_index(list(spec.keys), **spec.options())
				summary.created.append(f"{spec.collection}.{spec.name}")
			except OperationFailure as e:
				if e.code in ALREADY_EXISTS_CODES:
					logger.debug(f"[Indexes] {spec.collection}.{spec.name} already exists: {e}")
					summary.existing.append(f"{spec.collection}.{spec.name}")
					continue
				self._warn(summary, spec, e)
			except Exception as e:
				self._warn(summary, spec, e)
		logger.info(
			f"[Indexes] Model {model.value}: {len(summary.created)} ensured, "
			f"{len(summary.existing)} already present, {len(summary.warnings)} failed"
		)
		return summary

	def _warn(self, summary: IndexCreationSummary, spec: IndexSpec, error: Exception):
		warning = IndexCreationWarning(spec.collection, spec.name, str(error))
		logger.warning(f"[Indexes] Could not create {warning}")
		summary.warnings.append(warning)

	def drop_indexes(self, variant: Union[str, SchemaVariant]):
		"""Drop every non-_id index on each collection of the variant."""
		model = SchemaVariant.parse(variant)
		logger.info(f"[Indexes] Dropping indexes for Model {model.value}...")
		for name in VARIANT_COLLECTIONS[model]:
			try:
				self.db[name].drop_indexes()
			except OperationFailure as e:
				if e.code == NAMESPACE_NOT_FOUND:
					logger.debug(f"[Indexes] {name} does not exist; nothing to drop")
				else:
					logger.warning(f"[Indexes] Could not drop indexes on {name}: {e}")
		logger.info(f"[Indexes] Indexes dropped for Model {model.value}")

	def list_indexes(self, variant: Union[str, SchemaVariant]) -> Dict[str, List[str]]:
		"""Index names currently present, per collection of the variant."""
		model = SchemaVariant.parse(variant)
		return {name: sorted(self.db[name].index_information()) for name in VARIANT_COLLECTIONS[model]}
