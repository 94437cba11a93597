import json
from datetime import date, datetime, timedelta, timezone

import pytest
import requests
import responses

from git_traffic_stats.cache import ResponseCache
from git_traffic_stats.errors import DataQualityWarning, FetchError
from git_traffic_stats.github import API_BASE, GitHubTrafficClient
from git_traffic_stats.models import MetricKind

NOW = datetime(2023, 1, 20, 12, 0, tzinfo=timezone.utc)
VIEWS_URL = f"{API_BASE}/repos/acme/widget/traffic/views"
CLONES_URL = f"{API_BASE}/repos/acme/widget/traffic/clones"


class Clock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return Clock(NOW)


@pytest.fixture
def client(tmp_path, clock):
    return GitHubTrafficClient("test-token", cache=ResponseCache(tmp_path / "cache"),
                               rate_limit=0, clock=clock)


@responses.activate
def test_fetch_views(client, views_payload):
    responses.add(responses.GET, VIEWS_URL, json=views_payload, status=200)

    metrics = client.fetch("acme/widget", MetricKind.VIEWS)

    assert [(m.day, m.count, m.uniques) for m in metrics] == [
        (date(2023, 1, 1), 5, 3),
        (date(2023, 1, 2), 0, 0),
    ]
    assert all(m.repo == "acme/widget" and m.kind is MetricKind.VIEWS for m in metrics)

    request = responses.calls[0].request
    assert request.headers["Authorization"] == "Bearer test-token"
    assert "per=day" in request.url


@responses.activate
def test_fetch_clones(client, clones_payload):
    responses.add(responses.GET, CLONES_URL, json=clones_payload, status=200)

    metrics = client.fetch("acme/widget", MetricKind.CLONES)

    assert len(metrics) == 1
    assert metrics[0].kind is MetricKind.CLONES


@responses.activate
def test_fresh_cache_skips_network(client, views_payload):
    responses.add(responses.GET, VIEWS_URL, json=views_payload, status=200)

    first = client.fetch("acme/widget", MetricKind.VIEWS)
    second = client.fetch("acme/widget", MetricKind.VIEWS)

    assert first == second
    assert len(responses.calls) == 1


@responses.activate
def test_stale_cache_refetches(client, clock, views_payload):
    responses.add(responses.GET, VIEWS_URL, json=views_payload, status=200)
    client.fetch("acme/widget", MetricKind.VIEWS)

    clock.now = NOW + timedelta(hours=1, minutes=1)
    client.fetch("acme/widget", MetricKind.VIEWS)

    assert len(responses.calls) == 2


@responses.activate
def test_failed_fetch_is_not_cached(client, tmp_path, views_payload):
    responses.add(responses.GET, VIEWS_URL, json={"message": "Server Error"}, status=500)
    responses.add(responses.GET, VIEWS_URL, json=views_payload, status=200)

    with pytest.raises(FetchError):
        client.fetch("acme/widget", MetricKind.VIEWS)

    assert len(client.fetch("acme/widget", MetricKind.VIEWS)) == 2


@responses.activate
def test_auth_failure_raises_fetch_error(client):
    responses.add(responses.GET, VIEWS_URL, json={"message": "Bad credentials"}, status=401)

    with pytest.raises(FetchError) as excinfo:
        client.fetch("acme/widget", MetricKind.VIEWS)

    assert excinfo.value.repo == "acme/widget"
    assert excinfo.value.kind is MetricKind.VIEWS
    assert "401" in str(excinfo.value)


@responses.activate
def test_network_error_raises_fetch_error(client):
    responses.add(responses.GET, VIEWS_URL, body=requests.ConnectionError("connection refused"))

    with pytest.raises(FetchError, match="connection refused"):
        client.fetch("acme/widget", MetricKind.VIEWS)


@pytest.mark.parametrize("body", [
    "not json",
    json.dumps({"count": 1}),
    json.dumps({"views": [{"timestamp": "yesterday", "count": 1, "uniques": 1}]}),
    json.dumps({"views": [{"timestamp": "2023-01-01T00:00:00Z", "count": -1, "uniques": 0}]}),
])
@responses.activate
def test_malformed_response_raises_fetch_error(client, body):
    responses.add(responses.GET, VIEWS_URL, body=body, status=200)

    with pytest.raises(FetchError, match="malformed"):
        client.fetch("acme/widget", MetricKind.VIEWS)


@responses.activate
def test_uniques_above_count_are_clamped(client):
    payload = {"views": [{"timestamp": "2023-01-01T00:00:00Z", "count": 2, "uniques": 5}]}
    responses.add(responses.GET, VIEWS_URL, json=payload, status=200)

    with pytest.warns(DataQualityWarning):
        metrics = client.fetch("acme/widget", MetricKind.VIEWS)

    assert (metrics[0].count, metrics[0].uniques) == (2, 2)


@responses.activate
def test_fetch_without_cache(clock, views_payload):
    client = GitHubTrafficClient("test-token", cache=None, rate_limit=0, clock=clock)
    responses.add(responses.GET, VIEWS_URL, json=views_payload, status=200)

    client.fetch("acme/widget", MetricKind.VIEWS)
    client.fetch("acme/widget", MetricKind.VIEWS)

    assert len(responses.calls) == 2


@responses.activate
def test_list_user_repositories_follows_pagination(client):
    page_two = f"{API_BASE}/user/42/repos?page=2"
    responses.add(
        responses.GET, f"{API_BASE}/users/acme/repos",
        json=[{"full_name": "acme/widget"}, {"full_name": "acme/gadget"}],
        headers={"Link": f'<{page_two}>; rel="next", <{page_two}>; rel="last"'},
        status=200,
    )
    responses.add(
        responses.GET, f"{API_BASE}/user/42/repos",
        json=[{"full_name": "acme/sprocket"}],
        status=200,
    )

    repos = client.list_user_repositories("acme")

    assert repos == ["acme/widget", "acme/gadget", "acme/sprocket"]
    assert "per_page=100" in responses.calls[0].request.url


@responses.activate
def test_list_user_repositories_error(client):
    responses.add(responses.GET, f"{API_BASE}/users/acme/repos", json={"message": "Not Found"}, status=404)

    with pytest.raises(FetchError):
        client.list_user_repositories("acme")
