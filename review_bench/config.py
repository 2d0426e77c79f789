"""
Runtime configuration.
Settings are read once from environment variables with local-development defaults.
"""

import os  # environment lookups
import sys  # stderr sink for loguru
from pathlib import Path  # filesystem-safe paths

from loguru import logger  # console logger

# Project root, used to resolve default data/report locations
ROOT = Path(__file__).resolve().parents[1]

# MongoDB connection
MONGODB_URI = os.getenv('MONGODB_URI', 'mongodb://localhost:27017')  # server address
MONGODB_DB = os.getenv('MONGODB_DB', 'imdb_reviews')  # database holding both schema variants

# Input dataset and benchmark report output
REVIEWS_CSV = Path(os.getenv('REVIEWS_CSV', str(ROOT / 'data' / 'imdb_user_reviews.csv')))
BENCHMARK_DIR = Path(os.getenv('BENCHMARK_DIR', str(ROOT / 'benchmarks')))

# Where the dashboard looks for the API
API_URL = os.getenv('API_URL', 'http://localhost:8000')

LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')


def configure_logging(level: str = LOG_LEVEL):
	"""Replace loguru's default sink with a stderr sink at the requested level."""
	logger.remove()  # drop default handler
	logger.add(sys.stderr, level=level.upper())  # single console sink
