"""
HTTP tests for the FastAPI app, with the database replaced by a seeded mongomock instance.
"""

import pytest
from fastapi.testclient import TestClient

import api
from review_bench.models import BenchmarkReport, BenchmarkRun, IndexState, QueryId, SchemaVariant

CSV_HEADER = 'movie_title,username,rating,review_date,review_content,genres,year,helpful_votes,total_votes\n'


@pytest.fixture
def client(seeded_db, tmp_path):
	api.app.dependency_overrides[api.get_db] = lambda: seeded_db
	api.app.dependency_overrides[api.get_report_dir] = lambda: tmp_path / 'benchmarks'
	api.app.dependency_overrides[api.get_reviews_csv] = lambda: tmp_path / 'reviews.csv'
	yield TestClient(api.app)
	api.app.dependency_overrides.clear()


def test_root_lists_endpoints(client):
	body = client.get('/').json()
	assert body['endpoints']['queries'] == '/api/v1/queries'


def test_list_queries(client):
	body = client.get('/api/v1/queries').json()
	assert body['success'] is True
	assert [q['queryId'] for q in body['queries']] == [q.value for q in QueryId]


def test_run_query_model_b(client):
	resp = client.get('/api/v1/queries/Q4', params={'model': 'b', 'minReviews': 5})
	assert resp.status_code == 200
	body = resp.json()
	assert body['success'] is True
	assert body['queryId'] == 'Q4'
	assert body['model'] == 'B'
	assert body['result'] == {
		'docsReturned': 1,
		'data': [{'title': 'Inception', 'avgRating': 9.0, 'numReviews': 5}],
	}
	assert body['timing']['elapsedMs'] >= 0
	assert body['timing']['startedAt'] <= body['timing']['endedAt']


@pytest.mark.parametrize('params', [{}, {'model': 'C'}, {'model': ''}])
def test_bad_model_is_client_error(client, params):
	resp = client.get('/api/v1/queries/Q1', params={'title': 'Inception', **params})
	assert resp.status_code == 400
	assert resp.json()['success'] is False
	assert 'model' in resp.json()['error']


def test_unknown_query_is_not_found(client):
	resp = client.get('/api/v1/queries/Q11', params={'model': 'A'})
	assert resp.status_code == 404
	assert resp.json() == {'success': False, 'error': 'Query Q11 not found'}


def test_invalid_parameters_are_client_error(client):
	resp = client.get('/api/v1/queries/Q4', params={'model': 'A', 'limit': 'many'})
	assert resp.status_code == 400
	assert resp.json()['success'] is False


def test_lookup_miss_is_empty_success(client):
	resp = client.get('/api/v1/queries/Q1', params={'model': 'B', 'title': 'Nonexistent Film'})
	assert resp.status_code == 200
	assert resp.json()['result'] == {'docsReturned': 0, 'data': []}


def test_documents_are_json_safe(client):
	resp = client.get('/api/v1/queries/Q1', params={'model': 'A', 'title': 'paddington'})
	rows = resp.json()['result']['data']
	assert len(rows) == 3
	assert all(isinstance(r['_id'], str) for r in rows)
	assert rows[0]['review_date'].startswith('2023-07-07')
	assert rows[0]['movie']['title'] == 'Paddington 2'


def test_benchmark_endpoint_saves_report(client, monkeypatch, tmp_path):
	class FakeRunner:
		def __init__(self, registry, index_manager):
			pass

		def run(self):
			report = BenchmarkReport(timestamp='2024-05-01T12:00:00+00:00', environment={'python': 'test'})
			report.record(BenchmarkRun(
				QueryId.Q1, SchemaVariant.A, IndexState.WITH_INDEXES, [2.0, 1.0, 3.0], median=2.0, min=1.0, max=3.0,
			))
			return report

	monkeypatch.setattr(api, 'BenchmarkRunner', FakeRunner)

	assert client.get('/api/v1/benchmarks/latest').status_code == 404

	body = client.get('/api/v1/benchmarks').json()
	assert body['success'] is True
	assert body['reportPath'].endswith('benchmarks-2024-05-01.json')
	assert body['results']['withIndexes']['modelA']['Q1']['median'] == 2.0
	assert body['timing']['totalDurationMs'] >= 0
	assert (tmp_path / 'benchmarks' / 'benchmarks-2024-05-01.json').exists()

	latest = client.get('/api/v1/benchmarks/latest').json()
	assert latest['results'] == body['results']


def test_benchmark_failure_is_server_error(client, monkeypatch):
	class FailingRunner:
		def __init__(self, registry, index_manager):
			pass

		def run(self):
			raise RuntimeError('store unavailable')

	monkeypatch.setattr(api, 'BenchmarkRunner', FailingRunner)
	resp = client.get('/api/v1/benchmarks')
	assert resp.status_code == 500
	assert resp.json() == {'success': False, 'error': 'store unavailable'}


def test_stats(client):
	body = client.get('/api/v1/stats').json()
	assert body['collections'] == {
		'modelA': {'reviews_a': 12},
		'modelB': {'reviews_b': 12, 'movies_b': 3, 'users_b': 4},
	}


def test_indexes(client):
	body = client.get('/api/v1/indexes', params={'model': 'B'}).json()
	assert set(body['indexes']) == {'reviews_b', 'movies_b', 'users_b'}
	assert '_id_' in body['indexes']['users_b']
	assert client.get('/api/v1/indexes', params={'model': 'X'}).status_code == 400


def test_ingest_replaces_variant_data(client, tmp_path, seeded_db):
	(tmp_path / 'reviews.csv').write_text(
		CSV_HEADER
		+ 'Alien,ripley,9,2020-05-01,In space no one can hear you scream,Sci-Fi,1979,3,4\n'
		+ 'Alien,ash,8,2020-05-02,Perfect horror,"Sci-Fi, Horror",1979,0,0\n'
		+ 'Alien,ash,not-a-number,2020-05-03,Broken row,Horror,1979,0,0\n',
		encoding='utf-8',
	)
	resp = client.post('/api/v1/ingest', params={'model': 'B'})
	assert resp.status_code == 200
	body = resp.json()
	assert body['counts'] == {'reviews': 2, 'movies': 1, 'users': 2}
	assert seeded_db['reviews_a'].count_documents({}) == 12  # other variant untouched

	rows = client.get('/api/v1/queries/Q7', params={'model': 'B'}).json()['result']['data']
	assert [r['genre'] for r in rows] == ['Horror', 'Science Fiction']


def test_ingest_missing_file_is_server_error(client):
	resp = client.post('/api/v1/ingest', params={'model': 'A'})
	assert resp.status_code == 500
	assert 'not found' in resp.json()['error']


def test_movie_statistics(client):
	body = client.get('/api/v1/stats/movie/dark knight').json()
	assert body['success'] is True
	(movie,) = body['movies']
	assert movie['movieId'] == 'm_the_dark_knight'
	assert movie['title'] == 'The Dark Knight'
	assert movie['total_reviews'] == 4
	assert movie['average_rating'] == 8.5
	assert movie['rating_distribution']['8'] == 1
	assert movie['first_review_date'].startswith('2021-02-10')


def test_movie_statistics_misses(client):
	resp = client.get('/api/v1/stats/movie/Nonexistent')
	assert resp.status_code == 404
	assert resp.json()['success'] is False
	assert client.get('/api/v1/stats/movie/%20%20').status_code == 400


def test_user_statistics(client):
	body = client.get('/api/v1/stats/user/user_bob').json()
	assert body['user']['userId'] == 'user_bob'
	assert body['user']['names'] == ['bob']
	assert body['user']['total_reviews'] == 3
	assert body['user']['average_rating'] == 9.0
	assert client.get('/api/v1/stats/user/nobody').status_code == 404
