"""Helpers shared by the Facebook and Instagram clients (Meta Graph API)."""

import logging

import config
from platforms.errors import PublishError, UpstreamError
from services.http import check_response, fetch_with_retry
from services.polling import wait_for_ready

logger = logging.getLogger(__name__)


def graph_url(path):
    return f"{config.GRAPH_API_BASE}/{path.lstrip('/')}"


def graph_post(path, fallback, data=None, json=None):
    """POST to a Graph endpoint. Returns the JSON body or raises UpstreamError."""
    resp = fetch_with_retry(graph_url(path), method="POST", data=data, json=json)
    return check_response(resp, fallback)


def graph_get(path, fallback, params=None):
    resp = fetch_with_retry(graph_url(path), method="GET", params=params)
    return check_response(resp, fallback)


def require_id(payload, what):
    """Returns ``payload["id"]``; a 2xx body without one raises UpstreamError."""
    if not payload.get("id"):
        raise UpstreamError(f"{what} was created but no ID was returned. Response: {payload}")
    return payload["id"]


def get_page_access_token(page_id, user_access_token):
    """Exchange a user token for the page token. Falls back to the given token."""
    if not page_id or page_id == "0":
        logger.info("No page id, using the provided token as the page token")
        return user_access_token

    try:
        data = graph_get(
            page_id,
            "Failed to look up page access token",
            params={"fields": "access_token,name", "access_token": user_access_token},
        )
    except PublishError as e:
        logger.warning("Page token lookup failed, falling back to the provided token: %s", e)
        return user_access_token

    if data.get("access_token"):
        logger.info("Using page access token for %s", data.get("name", page_id))
        return data["access_token"]
    logger.warning("Could not retrieve a page-specific access token, using the provided token")
    return user_access_token


def container_status(container_id, access_token):
    """One status check of an Instagram media container for the poller."""
    data = graph_get(
        container_id,
        "Failed to check container status",
        params={"fields": "status_code,status", "access_token": access_token},
    )
    state = data.get("status_code") or data.get("status") or ""
    return state or "IN_PROGRESS", None, data.get("status") or state


def wait_for_container(container_id, access_token, max_attempts=None):
    if max_attempts is None:
        max_attempts = config.POLL_MAX_ATTEMPTS
    logger.info("Waiting for container %s to finish processing", container_id)
    return wait_for_ready(
        lambda cid: container_status(cid, access_token),
        container_id,
        max_attempts=max_attempts,
        default_delay=config.GRAPH_POLL_DEFAULT_DELAY,
    )


def publish_container(account_id, container_id, access_token, fallback="Failed to publish post"):
    return graph_post(
        f"{account_id}/media_publish",
        fallback,
        data={"creation_id": container_id, "access_token": access_token},
    )
