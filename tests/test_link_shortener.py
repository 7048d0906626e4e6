import httpx

from file_extraction.services import link_shortener


class _FakeClient:
    responses: list[tuple[int, object]] = []
    calls: list[dict] = []

    def __init__(self, *args, **kwargs):
        del args, kwargs

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        del exc_type, exc, tb
        return False

    def post(self, url: str, headers: dict, json: dict):
        type(self).calls.append({"url": url, "headers": headers, "json": json})
        status_code, payload = type(self).responses.pop(0)
        return httpx.Response(status_code=status_code, json=payload, request=httpx.Request("POST", url))


def _install(monkeypatch, responses):
    _FakeClient.responses = list(responses)
    _FakeClient.calls = []
    monkeypatch.setattr(link_shortener.httpx, "Client", _FakeClient)
    monkeypatch.setattr(link_shortener.time, "sleep", lambda _seconds: None)
    monkeypatch.setattr(link_shortener.random, "uniform", lambda _a, _b: 0.0)


def test_shorten_url_returns_bitly_link(monkeypatch):
    _install(monkeypatch, [(200, {"link": "https://bit.ly/abc"})])

    result = link_shortener.shorten_url(
        long_url="https://bucket.s3.amazonaws.com/processed/a.pdf.txt?sig=1",
        access_token="token",
        base_url="https://api-ssl.bitly.com/v4",
    )

    assert result == "https://bit.ly/abc"
    call = _FakeClient.calls[0]
    assert call["url"] == "https://api-ssl.bitly.com/v4/shorten"
    assert call["headers"]["Authorization"] == "Bearer token"
    assert call["json"] == {"long_url": "https://bucket.s3.amazonaws.com/processed/a.pdf.txt?sig=1"}


def test_shorten_url_retries_transient_status(monkeypatch):
    _install(monkeypatch, [(503, {"message": "busy"}), (200, {"link": "https://bit.ly/ok"})])

    result = link_shortener.shorten_url(long_url="https://long", access_token="token", base_url="https://bitly")

    assert result == "https://bit.ly/ok"
    assert len(_FakeClient.calls) == 2


def test_shorten_url_falls_back_to_long_url_on_client_error(monkeypatch):
    _install(monkeypatch, [(403, {"message": "FORBIDDEN"})])

    result = link_shortener.shorten_url(long_url="https://long", access_token="bad", base_url="https://bitly")

    assert result == "https://long"
    assert len(_FakeClient.calls) == 1


def test_shorten_url_falls_back_when_link_missing(monkeypatch):
    _install(monkeypatch, [(200, {"id": "bit.ly/x"})])

    result = link_shortener.shorten_url(long_url="https://long", access_token="token", base_url="https://bitly")

    assert result == "https://long"


def test_shorten_url_falls_back_when_payload_is_not_an_object(monkeypatch):
    _install(monkeypatch, [(200, ["https://bit.ly/x"])])

    result = link_shortener.shorten_url(long_url="https://long", access_token="token", base_url="https://bitly")

    assert result == "https://long"
