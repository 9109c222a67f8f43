"""Tests for the source fetcher."""

import pytest


requests = pytest.importorskip("requests")

from dither_studio.errors import InvalidConfiguration, SourceUnavailable
from dither_studio.infrastructure.network import SourceFetcher, validate_source_url


class FakeResponse:
    def __init__(self, content=b"", status=200):
        self.content = content
        self.status_code = status

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")


class FakeSession:
    def __init__(self, responses):
        self.headers = {}
        self.calls = []
        self._responses = list(responses)

    def get(self, url, timeout=None):
        self.calls.append((url, timeout))
        outcome = self._responses.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def make_fetcher(responses, retries=2):
    session = FakeSession(responses)
    fetcher = SourceFetcher(lambda: session, retries=retries, timeout=3.0, backoff=0)
    return fetcher, session


def test_fetch_bytes_returns_content_and_sets_user_agent():
    fetcher, session = make_fetcher([FakeResponse(b"payload")])

    assert fetcher.fetch_bytes("http://example.com/a.png") == b"payload"
    assert session.calls == [("http://example.com/a.png", 3.0)]
    assert session.headers["User-Agent"].startswith("dither-studio/")


def test_fetch_bytes_retries_until_success():
    fetcher, session = make_fetcher(
        [requests.ConnectionError("down"), FakeResponse(status=503), FakeResponse(b"ok")]
    )

    assert fetcher.fetch_bytes("https://example.com/img") == b"ok"
    assert len(session.calls) == 3


def test_fetch_bytes_gives_up_after_retries():
    fetcher, session = make_fetcher([requests.Timeout("slow"), requests.Timeout("slow")], retries=1)

    with pytest.raises(SourceUnavailable) as excinfo:
        fetcher.fetch_bytes("http://example.com/img")

    assert isinstance(excinfo.value, RuntimeError)
    assert "slow" in str(excinfo.value)
    assert len(session.calls) == 2


def test_fetch_image_decodes_the_payload(gradient_png, gradient):
    fetcher, _ = make_fetcher([FakeResponse(gradient_png)])
    buffer = fetcher.fetch_image("http://example.com/gradient.png")
    assert buffer.data == gradient.data


@pytest.mark.parametrize("url", ["ftp://example.com/a.png", "/local/path.png", "example.com/a.png"])
def test_validate_source_url_rejects_non_http(url):
    with pytest.raises(InvalidConfiguration):
        validate_source_url(url)


def test_fetch_bytes_sleeps_only_between_attempts(monkeypatch):
    sleeps = []
    monkeypatch.setattr("dither_studio.infrastructure.network.time.sleep", sleeps.append)
    session = FakeSession([requests.Timeout("slow")] * 3)
    fetcher = SourceFetcher(lambda: session, retries=2, timeout=3.0, backoff=0.5)

    with pytest.raises(SourceUnavailable):
        fetcher.fetch_bytes("http://example.com/img")

    assert sleeps == [0.5, 1.0]
    assert len(session.calls) == 3


def test_allowed_hosts_limit_source_urls():
    session = FakeSession([FakeResponse(b"ok")])
    fetcher = SourceFetcher(lambda: session, retries=0, backoff=0, allowed_hosts=["Images.example.com"])

    with pytest.raises(InvalidConfiguration, match="internal.local"):
        fetcher.fetch_bytes("http://internal.local/secret.png")
    assert session.calls == []

    assert fetcher.fetch_bytes("https://images.example.com/a.png") == b"ok"
