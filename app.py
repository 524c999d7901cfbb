import logging

from flask import Flask, jsonify, request

import config
from platforms import PLATFORMS, get_platform
from platforms.base import MediaItem, NormalizedPost, TargetAccount
from platforms.errors import PublishError, ValidationError
from platforms.linkedin_client import list_accounts
from services.coordinator import publish_to_platforms
from services.scheduling import parse_scheduled_at

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

if not config.x_configured():
    logger.warning("X_API_KEY/X_API_SECRET not set, X video uploads will be rejected")

app = Flask(__name__)

ACCOUNT_ID_KEYS = ("accountId", "pageId", "instagramId", "organizationId", "openId", "author")
OPTION_KEYS = {
    "facebookVideoType": "facebook_video_type",
    "xText": "x_text",
    "title": "title",
    "privacy": "privacy",
    "tags": "tags",
    "categoryId": "category_id",
    "madeForKids": "made_for_kids",
}


def _parse_media(items):
    media = []
    for item in items or []:
        if isinstance(item, str):
            media.append(MediaItem(url=item))
            continue
        if not item.get("url"):
            raise ValidationError("Every media item needs a url")
        media.append(
            MediaItem(
                url=item["url"],
                is_video=bool(item.get("isVideo", False)),
                thumbnail_url=item.get("thumbnailUrl") or "",
                name=item.get("name") or "",
                mime_type=item.get("type") or "",
            )
        )
    return media


def _parse_account(data):
    account_id = next((str(data[k]) for k in ACCOUNT_ID_KEYS if data.get(k)), "")
    account_type = data.get("accountType", "")
    if not account_type and data.get("organizationId"):
        account_type = "organization"
    return TargetAccount(
        access_token=data.get("accessToken", ""),
        account_id=account_id,
        oauth_token=data.get("oauthAccessToken") or data.get("oauthToken", ""),
        oauth_token_secret=data.get("oauthTokenSecret", ""),
        account_type=account_type,
    )


def _parse_post(data, account):
    options = {key: data[src] for src, key in OPTION_KEYS.items() if src in data}
    options.update(data.get("options") or {})
    return NormalizedPost(
        message=data.get("message") or data.get("content") or "",
        target=account,
        media=_parse_media(data.get("media", data.get("imageUrls"))),
        scheduled_at=parse_scheduled_at(data.get("scheduledAt")),
        options=options,
    )


def _single_platform_response(platform, data, **client_kwargs):
    try:
        account = _parse_account(data)
        post = _parse_post(data, account)
    except PublishError as e:
        return jsonify({"error": str(e)}), e.http_status

    client = get_platform(platform, **client_kwargs)
    result = client.publish(post)
    if result.success:
        return jsonify(result.response or result.to_dict()), 200
    return jsonify({"error": result.error}), result.http_status


@app.route("/api/platforms/createpost", methods=["POST"])
def create_post_all():
    data = request.get_json(silent=True) or {}
    platforms = data.get("platforms") or []
    if not platforms:
        return jsonify({"error": "No platforms selected"}), 400

    accounts = data.get("accounts") or {}
    try:
        targets = {name: _parse_account(accounts.get(name) or {}) for name in platforms}
        post = _parse_post(data, TargetAccount(access_token=""))
    except PublishError as e:
        return jsonify({"error": str(e)}), e.http_status

    logger.info("Publishing post to %s", ", ".join(platforms))
    results = publish_to_platforms(post, targets)
    return jsonify({
        "message": "Post published successfully.",
        "results": [r.to_dict() for r in results],
        "successfulPlatforms": [r.platform for r in results if r.success],
    }), 200


@app.route("/api/<platform>/createpost", methods=["POST"])
def create_post(platform):
    if platform not in PLATFORMS:
        return jsonify({"error": f"Unknown platform: {platform}"}), 404
    data = request.get_json(silent=True) or {}
    kwargs = {"caption_required": True} if platform == "instagram" else {}
    return _single_platform_response(platform, data, **kwargs)


@app.route("/api/instagram/story", methods=["POST"])
def instagram_story():
    return _single_platform_response("instagram_story", request.get_json(silent=True) or {})


@app.route("/api/facebook/story", methods=["POST"])
def facebook_story():
    return _single_platform_response("facebook_story", request.get_json(silent=True) or {})


@app.route("/api/linkedin/accounts", methods=["POST"])
def linkedin_accounts():
    data = request.get_json(silent=True) or {}
    access_token = data.get("accessToken", "")
    if not access_token:
        return jsonify({"error": "Access token is required"}), 400
    try:
        return jsonify(list_accounts(access_token)), 200
    except PublishError as e:
        return jsonify({"error": str(e)}), e.http_status


if __name__ == "__main__":
    app.run(host="127.0.0.1", port=5555, debug=True)
