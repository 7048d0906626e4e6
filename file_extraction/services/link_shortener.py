import logging
import random
import time

import httpx

logger = logging.getLogger(__name__)

_TRANSIENT_STATUS_CODES = {429, 500, 502, 503, 504}
_MAX_SHORTEN_RETRIES = 3


def request_short_link(
    *,
    long_url: str,
    access_token: str,
    base_url: str,
) -> str:
    """Call Bitly `/shorten`; raise on any failure after transient retries."""
    with httpx.Client(timeout=10.0) as client:
        for attempt in range(1, _MAX_SHORTEN_RETRIES + 1):
            try:
                response = client.post(
                    f"{base_url.rstrip('/')}/shorten",
                    headers={
                        "Authorization": f"Bearer {access_token}",
                        "Content-Type": "application/json",
                    },
                    json={"long_url": long_url},
                )
                response.raise_for_status()
                payload = response.json()
                link = payload.get("link") if isinstance(payload, dict) else None
                if not isinstance(link, str) or not link.strip():
                    raise RuntimeError("Bitly response has no link")
                return link.strip()
            except httpx.HTTPStatusError as exc:
                status_code = exc.response.status_code
                if status_code not in _TRANSIENT_STATUS_CODES or attempt >= _MAX_SHORTEN_RETRIES:
                    raise
                _sleep_before_retry(attempt=attempt, retry_after=exc.response.headers.get("retry-after"))
            except httpx.RequestError:
                if attempt >= _MAX_SHORTEN_RETRIES:
                    raise
                _sleep_before_retry(attempt=attempt, retry_after=None)

    raise RuntimeError("Bitly shorten failed after retries")


def shorten_url(
    *,
    long_url: str,
    access_token: str,
    base_url: str,
) -> str:
    """Short link for `long_url`, or `long_url` itself when shortening fails."""
    try:
        return request_short_link(long_url=long_url, access_token=access_token, base_url=base_url)
    except (httpx.HTTPError, RuntimeError, ValueError) as exc:
        logger.warning("Link shortening failed, using long URL: %s", exc)
        return long_url


def _sleep_before_retry(*, attempt: int, retry_after: str | None) -> None:
    delay = _parse_retry_after(retry_after)
    if delay is None:
        delay = min(4.0, 0.5 * (2 ** (attempt - 1)))
    delay += random.uniform(0, 0.2)
    time.sleep(delay)


def _parse_retry_after(retry_after: str | None) -> float | None:
    if retry_after is None:
        return None
    stripped = retry_after.strip()
    if not stripped:
        return None
    try:
        parsed = float(stripped)
    except ValueError:
        return None
    return max(0.0, min(parsed, 5.0))
