import json

import requests
from requests.structures import CaseInsensitiveDict

from brandkit.workflows.page_fetch import FetchConfig, FetchResult, PageFetcher
from brandkit.workflows.rate_limiter import InMemoryStore, RateLimiter
from brandkit.workflows.service import ExtractionService, cache_control_for

PAGE = (
    '<link rel="icon" href="/favicon.ico">'
    '<img src="data:image/png;base64,AAAA" class="logo" alt="Acme">'
    "<script>track()</script>"
    '<a href="javascript:steal()">x</a>'
)


def _ok_result(url, text=PAGE, content_type="text/html; charset=utf-8", status=200):
    return FetchResult(
        url=url,
        domain="acme.test",
        status=status,
        content_type=content_type,
        text=text,
        fetched_at="now",
    )


class _StubFetcher:
    def __init__(self, result=None, error=None):
        self.result = result
        self.error = error
        self.stylesheets = []

    def fetch(self, url, *, accept=None):
        if self.error is not None:
            return FetchResult(url, "acme.test", -1, "", "", "now", error=self.error)
        return self.result or _ok_result(url)

    def load_stylesheet(self, url):
        self.stylesheets.append(url)
        return None


def _limiter(max_requests=100):
    return RateLimiter(InMemoryStore(), max_requests=max_requests, window_ms=3_600_000)


def test_extract_url_success():
    service = ExtractionService(_StubFetcher(), _limiter())
    outcome = service.extract_url("https://acme.test/")
    assert outcome.success is True
    assert outcome.error is None
    assert outcome.domain == "acme.test"
    urls = [logo.url for logo in outcome.assets.logos]
    assert urls == ["https://acme.test/favicon.ico", "data:image/png;base64,AAAA"]
    payload = outcome.to_dict()
    assert payload["rate_limit"]["remaining"] == 99
    assert payload["assets"]["logos"][0]["source_kind"] == "link-reference"


def test_extract_url_rate_limited():
    service = ExtractionService(_StubFetcher(), _limiter(max_requests=1))
    assert service.extract_url("https://acme.test/", identity="ip").success
    outcome = service.extract_url("https://acme.test/", identity="ip")
    assert outcome.success is False
    assert outcome.error == "Too many requests. Please try again later."
    assert outcome.rate_limit.limited is True
    assert outcome.assets is None


def test_extract_url_fetch_failure_and_bad_status():
    outcome = ExtractionService(_StubFetcher(error="ConnectTimeout: boom")).extract_url("https://acme.test/")
    assert outcome.success is False
    assert outcome.error == "Failed to fetch website content"

    missing = ExtractionService(_StubFetcher(result=_ok_result("https://acme.test/", status=404)))
    outcome = missing.extract_url("https://acme.test/")
    assert outcome.error == "Website returned 404"


def test_proxy_sanitizes_by_purpose():
    service = ExtractionService(_StubFetcher(), _limiter())
    strict = service.proxy("https://acme.test/", "ip")
    assert strict.status == 200
    assert "track()" not in strict.body
    assert "data:image/png" not in strict.body
    assert "javascript:" not in strict.body
    assert strict.headers["Cache-Control"] == "public, max-age=300"
    assert strict.headers["X-RateLimit-Remaining"] == "99"

    preserving = service.proxy("https://acme.test/", "ip", purpose="asset-extraction")
    assert "track()" not in preserving.body
    assert "javascript:" not in preserving.body
    assert 'src="data:image/png;base64,AAAA"' in preserving.body


def test_proxy_rate_limited_returns_429():
    service = ExtractionService(_StubFetcher(), _limiter(max_requests=0))
    response = service.proxy("https://acme.test/", "ip")
    assert response.status == 429
    assert json.loads(response.body)["error"] == "Too many requests. Please try again later."
    assert response.headers["X-RateLimit-Remaining"] == "0"
    assert response.headers["Content-Type"] == "application/json"


def test_proxy_transport_error_and_upstream_status():
    response = ExtractionService(_StubFetcher(error="ConnectionError: refused")).proxy("https://acme.test/", "ip")
    assert response.status == 502
    assert "details" in json.loads(response.body)

    upstream = ExtractionService(_StubFetcher(result=_ok_result("https://acme.test/", status=503)))
    assert upstream.proxy("https://acme.test/", "ip").status == 503


def test_proxy_passes_non_html_through():
    css = "body{color:red}/* <script> */"
    service = ExtractionService(_StubFetcher(result=_ok_result("https://acme.test/a.css", css, "text/css")))
    response = service.proxy("https://acme.test/a.css", "ip")
    assert response.body == css
    assert response.headers["Cache-Control"] == "public, max-age=86400"


def test_cache_control_for():
    assert cache_control_for("text/html") == "public, max-age=300"
    assert cache_control_for("image/png") == "public, max-age=86400"
    assert cache_control_for("application/json") == "public, max-age=3600"


class _FakeResponse:
    def __init__(self, url, content, content_type, status_code=200):
        self.url = url
        self.content = content
        self.status_code = status_code
        self.headers = CaseInsensitiveDict({"Content-Type": content_type})


class _FakeSession:
    def __init__(self, response=None, exc=None):
        self.response = response
        self.exc = exc
        self.calls = []

    def get(self, url, headers=None, timeout=None):
        self.calls.append((url, headers, timeout))
        if self.exc is not None:
            raise self.exc
        return self.response


def test_page_fetcher_decodes_and_follows_final_url():
    session = _FakeSession(
        _FakeResponse("https://www.acme.test/home", "<p>Café</p>".encode("utf-8"), "text/html; charset=utf-8")
    )
    fetcher = PageFetcher(FetchConfig(timeout=3.0, user_agent="ua-test"), session=session)
    result = fetcher.fetch("https://acme.test/")
    assert result.ok
    assert result.url == "https://www.acme.test/home"
    assert result.domain == "www.acme.test"
    assert result.text == "<p>Café</p>"
    url, headers, timeout = session.calls[0]
    assert headers["User-Agent"] == "ua-test"
    assert timeout == 3.0


def test_page_fetcher_transport_error():
    fetcher = PageFetcher(session=_FakeSession(exc=requests.ConnectionError("refused")))
    result = fetcher.fetch("https://acme.test/")
    assert result.status == -1
    assert result.ok is False
    assert result.error.startswith("ConnectionError")
    assert fetcher.load_stylesheet("https://acme.test/site.css") is None


def test_page_fetcher_truncates_large_bodies():
    session = _FakeSession(_FakeResponse("https://acme.test/", b"a" * 50, "text/plain; charset=ascii"))
    fetcher = PageFetcher(FetchConfig(max_bytes=10), session=session)
    result = fetcher.fetch("https://acme.test/")
    assert result.text == "a" * 10
    assert result.metadata["truncated"] is True
