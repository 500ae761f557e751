import pytest
import requests

from domains.redmine.core.error import FetchError
from domains.redmine.core.models import AnalysisRequest, ProjectRef
from domains.redmine.services.analysis_fetcher import AnalysisFetcher
from utils.redmine.error import RedmineApiRequestError, RedmineQueryError, RedmineResolveError, RedmineUploadError
from utils.redmine.redmine_api_client import RedmineApiClient
from utils.redmine.redmine_assistant import RedmineAssistant
from utils.redmine.redmine_resolver import RedmineResolver


class DummyResponse:
    def __init__(self, status_code=200, payload=None, url="https://redmine.example.com/x.json"):
        self.status_code = status_code
        self._payload = payload
        self.url = url
        self.headers = {"Content-Type": "application/json; charset=utf-8"} if payload is not None else {}
        self.content = b"{}" if payload is not None else b""
        self.text = ""

    def json(self):
        if self._payload is None:
            raise ValueError("no body")
        return self._payload

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error", response=self)


def html_page(status_code=200):
    response = DummyResponse(status_code=status_code)
    response.headers = {"Content-Type": "text/html; charset=utf-8"}
    response.content = b"<html><body>Login</body></html>"
    return response


class RecordingTransport:
    """Replaces requests.request and answers from a queue of responses."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def __call__(self, method, url, **kwargs):
        self.calls.append({"method": method, "url": url, **kwargs})
        return self.responses.pop(0)


@pytest.fixture
def client():
    return RedmineApiClient("https://redmine.example.com/", "secret-key", timeout=5)


def test_get_sends_api_key_and_timeout(client, monkeypatch):
    transport = RecordingTransport(DummyResponse(payload={"projects": []}))
    monkeypatch.setattr(requests, "request", transport)

    assert client.get("projects.json", params={"limit": 100}) == {"projects": []}

    call = transport.calls[0]
    assert call["method"] == "GET"
    assert call["url"] == "https://redmine.example.com/projects.json"
    assert call["headers"]["X-Redmine-API-Key"] == "secret-key"
    assert call["timeout"] == 5


def test_empty_body_returns_none(client, monkeypatch):
    monkeypatch.setattr(requests, "request", RecordingTransport(DummyResponse(status_code=204)))

    assert client.put("issues/1.json", {"issue": {"notes": "x"}}) is None


def test_upload_sends_octet_stream(client, monkeypatch):
    transport = RecordingTransport(DummyResponse(status_code=201, payload={"upload": {"token": "abc"}}))
    monkeypatch.setattr(requests, "request", transport)

    client.upload("uploads.json", b"data", params={"filename": "r.csv"})

    call = transport.calls[0]
    assert call["headers"]["Content-Type"] == "application/octet-stream"
    assert call["data"] == b"data"


def test_http_error_is_wrapped_with_status(client, monkeypatch):
    failure = DummyResponse(status_code=422, payload={"errors": ["Name is invalid"]})
    monkeypatch.setattr(requests, "request", RecordingTransport(failure))

    with pytest.raises(RedmineApiRequestError) as excinfo:
        client.post("projects/1/files.json", {"file": {}})

    assert excinfo.value.status_code == 422
    assert "Name is invalid" in str(excinfo.value)


def test_time_entries_without_dates_ask_for_every_date(client, monkeypatch):
    transport = RecordingTransport(DummyResponse(payload={"time_entries": [{"id": 1}], "total_count": 1}))
    monkeypatch.setattr(requests, "request", transport)

    entries, total = RedmineAssistant(client).list_time_entries(3)

    assert (len(entries), total) == (1, 1)
    assert transport.calls[0]["params"] == {"project_id": 3, "limit": 100, "offset": 0, "spent_on": "*"}


def test_time_entries_with_dates(client, monkeypatch):
    transport = RecordingTransport(DummyResponse(payload={"time_entries": [], "total_count": 0}))
    monkeypatch.setattr(requests, "request", transport)

    RedmineAssistant(client).list_time_entries(3, "2025-01-01", "2025-01-31", offset=200)

    params = transport.calls[0]["params"]
    assert params["from"] == "2025-01-01" and params["to"] == "2025-01-31"
    assert "spent_on" not in params
    assert params["offset"] == 200


@pytest.mark.parametrize(
    "call",
    [
        lambda assistant: assistant.list_time_entries(3),
        lambda assistant: assistant.search_issues(3),
        lambda assistant: assistant.list_projects(),
        lambda assistant: assistant.list_versions(3),
    ],
)
def test_listing_without_collection_is_an_error(client, monkeypatch, call):
    monkeypatch.setattr(requests, "request", RecordingTransport(html_page()))

    with pytest.raises(RedmineQueryError) as excinfo:
        call(RedmineAssistant(client))

    assert "Login" in excinfo.value.metadata["body"]


def test_html_page_aborts_the_fetch(client, monkeypatch):
    monkeypatch.setattr(requests, "request", RecordingTransport(html_page(), html_page()))
    request = AnalysisRequest(project=ProjectRef(id=3, name="Alpha", identifier="alpha"))
    assistant = RedmineAssistant(client)

    with pytest.raises(FetchError):
        AnalysisFetcher(assistant, RedmineResolver(assistant)).fetch(request)


def test_missing_wiki_page_returns_none(client, monkeypatch):
    monkeypatch.setattr(requests, "request", RecordingTransport(DummyResponse(status_code=404, payload={})))

    assert RedmineAssistant(client).get_wiki_page(1, "Reports") is None


def test_upload_without_token_fails(client, monkeypatch):
    monkeypatch.setattr(requests, "request", RecordingTransport(DummyResponse(status_code=201, payload={})))

    with pytest.raises(RedmineUploadError):
        RedmineAssistant(client).upload_file(b"x", "r.csv")


def test_dmsf_upload_then_commit(client, monkeypatch):
    transport = RecordingTransport(
        DummyResponse(payload={"upload": {"token": "tok"}}),
        DummyResponse(payload={"dmsf_files": [{"id": 9, "name": "r.xlsx"}]}),
    )
    monkeypatch.setattr(requests, "request", transport)

    document = RedmineAssistant(client).dmsf_create_file(1, b"x", "r.xlsx", "Title", "Desc", folder_id=4)

    assert document["id"] == 9
    assert transport.calls[0]["url"].endswith("/projects/1/dmsf/upload.json")
    commit = transport.calls[1]["json"]["attachments"]
    assert commit["folder_id"] == 4
    assert commit["uploaded_file"]["token"] == "tok"
    assert commit["uploaded_file"]["title"] == "Title"


class ProjectsOnly:
    def __init__(self, projects):
        self.projects = projects

    def list_projects(self):
        return self.projects

    def list_versions(self, project_id):
        return [{"id": 10, "name": "Release 1"}, {"id": 11, "name": "Release 10"}]


def test_resolver_matches_exact_then_partial():
    resolver = RedmineResolver(
        ProjectsOnly([{"id": 1, "name": "Web Shop", "identifier": "shop"}, {"id": 2, "name": "Shop API", "identifier": "api"}])
    )

    assert resolver.resolve_project("42") == 42
    assert resolver.resolve_project("SHOP") == 1
    assert resolver.resolve_project("api") == 2
    assert resolver.resolve_version(1, "release 1") == 10


def test_resolver_reports_ambiguity_and_misses():
    resolver = RedmineResolver(
        ProjectsOnly([{"id": 1, "name": "Web Shop", "identifier": "web"}, {"id": 2, "name": "Shop API", "identifier": "api"}])
    )

    with pytest.raises(RedmineResolveError) as excinfo:
        resolver.resolve_project("shop")
    assert "Web Shop (ID: 1)" in str(excinfo.value)

    with pytest.raises(RedmineResolveError):
        resolver.resolve_project("billing")
