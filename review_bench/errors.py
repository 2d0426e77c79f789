"""
Error taxonomy for the query registry, index manager, and benchmark harness.
"""


class ReviewBenchError(Exception):
	"""Base class for errors raised by this package."""


class UnknownQuery(ReviewBenchError, KeyError):
	"""The query id is not registered, or has no implementation for the variant."""

	def __str__(self):
		# KeyError quotes its argument; keep the plain message
		return str(self.args[0]) if self.args else ''


class InvalidVariant(ReviewBenchError, ValueError):
	"""The schema variant selector is not one of A or B."""


class InvalidQueryParameters(ReviewBenchError, ValueError):
	"""The parameters supplied for a query could not be validated."""


class QueryExecutionFailure(ReviewBenchError):
	"""A query raised while running against the store."""

	def __init__(self, query_id: str, variant: str, message: str):
		super().__init__(f"Query {query_id} (model {variant}) failed: {message}")
		self.query_id = query_id
		self.variant = variant


class IndexCreationWarning(UserWarning):
	"""An index could not be created for a reason other than already existing."""

	def __init__(self, collection: str, index_name: str, message: str):
		super().__init__(f"{collection}.{index_name}: {message}")
		self.collection = collection
		self.index_name = index_name
		self.message = message
