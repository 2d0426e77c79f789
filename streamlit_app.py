"""
Streamlit dashboard for the review benchmark.
Calls the FastAPI server (default http://localhost:8000) to run single queries
against either schema variant and to run or display benchmark reports.

Run API:   uvicorn api:app --reload
Run UI:    streamlit run streamlit_app.py
"""

# HTTP client to call the API
import requests  # make web requests to the FastAPI server
# Streamlit framework to build a simple interactive UI
import streamlit as st  # UI primitives
# Typing to make function signatures clearer
from typing import Any, Dict, List, Optional  # type hints

# Default URL comes from the same settings module the API uses
from review_bench.config import API_URL  # default API base URL
from review_bench.models import QueryId  # table row order

# Configure Streamlit page (title and layout width)
st.set_page_config(page_title="Review Bench", layout="wide")  # wide layout

# Main page title
st.title("Review Bench: embedded vs normalized MongoDB schemas")  # header


def fetch_queries(api_url: str) -> List[Dict[str, Any]]:
	"""Registered queries from the API, or an empty list if unreachable."""
	try:
		resp = requests.get(f"{api_url}/api/v1/queries", timeout=5)
		resp.raise_for_status()
		return resp.json().get('queries', [])
	except requests.RequestException as e:
		st.sidebar.error(f"API not reachable: {e}")
		return []


def median_table(report: Dict[str, Any]) -> List[Dict[str, Any]]:
	"""Flatten a report into one row per query with the four median columns."""
	rows = []
	for query_id in QueryId:
		row: Dict[str, Any] = {'query': query_id.value}
		for state in ('withIndexes', 'withoutIndexes'):
			for label in ('modelA', 'modelB'):
				cell: Optional[Dict[str, Any]] = report.get(state, {}).get(label, {}).get(query_id.value)
				row[f"{state}/{label}"] = cell['median'] if cell else None
		rows.append(row)
	return rows


# Sidebar contains configuration controls
with st.sidebar:
	st.header("Settings")  # section label
	api_url = st.text_input("API URL", API_URL)  # where the API lives
	model = st.radio("Schema variant", ["A", "B"], horizontal=True)  # which layout to query

queries = fetch_queries(api_url)  # populate the query picker

tab_query, tab_bench = st.tabs(["Run a query", "Benchmarks"])

with tab_query:
	if queries:
		labels = {f"{q['queryId']}: {q['intent']}": q for q in queries}
		choice = labels[st.selectbox("Query", list(labels))]

		# One text input per declared parameter, prefilled with its default
		params: Dict[str, str] = {}
		for name, default in choice['parameters'].items():
			placeholder = '' if default in (None, 'required') else str(default)
			value = st.text_input(name, value=placeholder, help="required" if default == 'required' else None)
			if value.strip():
				params[name] = value.strip()

		if st.button("Run query", type="primary"):
			with st.spinner("Running..."):
				try:
					resp = requests.get(
						f"{api_url}/api/v1/queries/{choice['queryId']}",
						params={'model': model, **params},
						timeout=120,
					)
					payload = resp.json()
					if payload.get('success'):
						st.success(
							f"{payload['result']['docsReturned']} documents in {payload['timing']['elapsedMs']} ms"
						)
						st.dataframe(payload['result']['data'])  # tabular view of rows
					else:
						st.error(payload.get('error', 'Query failed'))
				except requests.RequestException as e:  # network/API errors
					st.error(f"API request failed: {e}")
	else:
		st.info("Start the API with `uvicorn api:app --reload` to run queries.")

with tab_bench:
	col1, col2 = st.columns([1, 3])
	with col1:
		run_btn = st.button("Run full benchmark")  # slow: 40 cells
	with col2:
		st.caption("Drops and recreates indexes on both variants; do not ingest while it runs.")

	report: Optional[Dict[str, Any]] = None
	try:
		if run_btn:
			with st.spinner("Benchmarking (this can take a while)..."):
				resp = requests.get(f"{api_url}/api/v1/benchmarks", timeout=3600)
				payload = resp.json()
				if payload.get('success'):
					report = payload['results']
					st.success(f"Report saved to {payload['reportPath']}")
				else:
					st.error(payload.get('error', 'Benchmark failed'))
		else:
			resp = requests.get(f"{api_url}/api/v1/benchmarks/latest", timeout=10)
			if resp.ok:
				report = resp.json().get('results')
	except requests.RequestException as e:
		st.error(f"API request failed: {e}")

	if report:
		st.caption(f"Run at {report.get('timestamp')} | {report.get('environment')}")
		st.dataframe(median_table(report))  # medians in ms
	else:
		st.info("No benchmark report yet.")
