import logging
import time

import requests

import config
from platforms.errors import MaxRetriesExceeded, UpstreamError

logger = logging.getLogger(__name__)


def fetch_with_retry(url, method="GET", max_retries=None, delay=None, **kwargs):
    """Send a request, retrying only when the transport times out.

    Any HTTP response, including 4xx/5xx, is returned as-is on the first
    attempt. Timeouts are retried after a fixed ``delay`` up to
    ``max_retries`` attempts in total, then MaxRetriesExceeded is raised.
    """
    if max_retries is None:
        max_retries = config.FETCH_MAX_RETRIES
    if delay is None:
        delay = config.FETCH_RETRY_DELAY
    kwargs.setdefault("timeout", config.HTTP_TIMEOUT)

    last_error = None
    for attempt in range(1, max_retries + 1):
        try:
            return requests.request(method, url, **kwargs)
        except requests.Timeout as e:
            last_error = e
            if attempt < max_retries:
                logger.warning(
                    "Request to %s timed out (attempt %d/%d). Retrying in %ss...",
                    _redact(url), attempt, max_retries, delay,
                )
                time.sleep(delay)

    raise MaxRetriesExceeded(
        f"Max retries reached ({max_retries}) for {_redact(url)}"
    ) from last_error


def extract_error_message(response, fallback=""):
    """Pull the platform's own error message out of an error response."""
    try:
        payload = response.json()
    except ValueError:
        payload = None

    if isinstance(payload, dict):
        err = payload.get("error")
        if isinstance(err, dict):
            if err.get("message"):
                return str(err["message"])
            errors = err.get("errors")
            if isinstance(errors, list) and errors and errors[0].get("message"):
                return str(errors[0]["message"])
        elif isinstance(err, str) and err:
            return err
        # X v2 problem details
        if payload.get("detail"):
            return str(payload["detail"])
        errors = payload.get("errors")
        if isinstance(errors, list) and errors and isinstance(errors[0], dict):
            if errors[0].get("message"):
                return str(errors[0]["message"])
        if payload.get("message"):
            return str(payload["message"])

    if fallback:
        return fallback
    raw = response.text.strip()
    return raw[:600] if raw else f"HTTP {response.status_code}"


def check_response(response, fallback):
    """Raise UpstreamError unless the response is 2xx. Returns the JSON body."""
    if not response.ok:
        message = extract_error_message(response, fallback)
        logger.error("Upstream error %s: %s", response.status_code, message)
        raise UpstreamError(message, status_code=response.status_code)
    try:
        return response.json()
    except ValueError:
        return {}


def _redact(url):
    return url.split("?", 1)[0]
