"""
Load the review CSV into MongoDB.

This script:
1) Loads and cleans reviews from the configured CSV (REVIEWS_CSV)
2) Inserts them into Model A (embedded), Model B (normalized), or both
3) Recreates the indexes of each loaded variant

Usage:
    python -m scripts.ingest_reviews --model both
    python -m scripts.ingest_reviews --model B --csv data/sample.csv
"""

import argparse  # command-line options
import time  # measure step timings

from loguru import logger  # console logging

from review_bench import config  # settings
from review_bench.data_loader import ReviewLoader  # CSV cleaning
from review_bench.database import close_client, get_database  # storage
from review_bench.ingest import ingest  # batch loaders
from review_bench.models import SchemaVariant  # A/B selector


def parse_args():
	parser = argparse.ArgumentParser(description="Ingest IMDB reviews into MongoDB")
	parser.add_argument('--model', default='both', help="A, B, or both (default: both)")
	parser.add_argument('--csv', default=str(config.REVIEWS_CSV), help="Path to the review CSV")
	parser.add_argument('--batch-size', type=int, default=1000, help="Documents per insert_many call")
	return parser.parse_args()


def main():
	args = parse_args()
	config.configure_logging()

	# Resolve which variants to load; SchemaVariant.parse rejects anything else
	if args.model.lower() == 'both':
		variants = list(SchemaVariant)
	else:
		variants = [SchemaVariant.parse(args.model)]

	logger.info("=" * 60)
	logger.info(f"Ingest reviews into Model(s) {', '.join(v.value for v in variants)}")
	logger.info("=" * 60)

	# 1) Load data
	logger.info("[1/2] Loading reviews...")
	reviews = ReviewLoader().load_reviews_from_csv(args.csv)
	logger.info(f"[OK] Loaded {len(reviews)} reviews")

	# 2) Insert per variant
	db = get_database()
	try:
		for variant in variants:
			logger.info(f"\n[2/2] Ingesting Model {variant.value}...")
			t0 = time.time()
			counts = ingest(db, variant, reviews, batch_size=args.batch_size)
			logger.info(f"[OK] Model {variant.value} done in {time.time() - t0:.2f}s: {counts}")
	finally:
		close_client()

	logger.info("=" * 60)


if __name__ == '__main__':
	main()  # invoke loader
