import logging

from platforms.base import PlatformClient
from platforms.errors import MediaTransferError, PublishError, UpstreamError, ValidationError
from services.http import check_response, fetch_with_retry
from services.media import download_media

logger = logging.getLogger(__name__)

API_URL = "https://api.linkedin.com/v2"
UPLOAD_MECHANISM = "com.linkedin.digitalmedia.uploading.MediaUploadHttpRequest"


def _headers(access_token):
    return {
        "Authorization": f"Bearer {access_token}",
        "X-Restli-Protocol-Version": "2.0.0",
    }


def author_urn(account):
    if account.account_id.startswith("urn:"):
        return account.account_id
    kind = "organization" if account.account_type == "organization" else "person"
    return f"urn:li:{kind}:{account.account_id}"


def list_accounts(access_token):
    """Personal profile plus the organizations the token can administer."""
    personal = None
    resp = fetch_with_retry(f"{API_URL}/userinfo", headers=_headers(access_token))
    if resp.ok:
        info = resp.json()
        personal = {
            "id": info.get("sub", ""),
            "name": info.get("name", ""),
            "type": "personal",
        }
    else:
        logger.warning("LinkedIn userinfo lookup failed: %s", resp.status_code)

    acls = check_response(
        fetch_with_retry(
            f"{API_URL}/organizationalEntityAcls",
            params={"q": "roleAssignee", "role": "ADMINISTRATOR", "state": "APPROVED"},
            headers=_headers(access_token),
        ),
        "Failed to list LinkedIn organizations",
    )

    organizations = []
    for element in acls.get("elements", []):
        urn = element.get("organizationalTarget") or element.get("organization", "")
        org_id = urn.rsplit(":", 1)[-1]
        if not org_id:
            continue
        try:
            org = check_response(
                fetch_with_retry(f"{API_URL}/organizations/{org_id}", headers=_headers(access_token)),
                f"Failed to load organization {org_id}",
            )
        except PublishError as e:
            logger.warning("Skipping organization %s: %s", org_id, e)
            continue
        organizations.append({
            "id": org_id,
            "name": org.get("localizedName", ""),
            "urn": urn,
            "type": "organization",
            "vanityName": org.get("vanityName", ""),
        })

    return {"personal_account": personal, "organizations": organizations}


class LinkedInClient(PlatformClient):
    name = "linkedin"
    char_limit = 3000

    def validate(self, post):
        if not post.target.access_token:
            raise ValidationError("LinkedIn access token is required")
        if not post.target.account_id:
            raise ValidationError("LinkedIn author id is required")
        if len(post.message or "") > self.char_limit:
            raise ValidationError(f"LinkedIn posts are limited to {self.char_limit} characters")
        if post.has_video and post.has_image:
            raise ValidationError("Cannot mix videos and images in the same LinkedIn post.")
        if post.video_count > 1:
            raise ValidationError("LinkedIn supports only one video per post.")

    def _publish(self, post):
        token = post.target.access_token
        author = author_urn(post.target)
        content = {
            "shareCommentary": {"text": post.message or ""},
            "shareMediaCategory": "NONE",
        }
        if post.media:
            content["shareMediaCategory"] = "VIDEO" if post.media[0].is_video else "IMAGE"
            content["media"] = [self._upload_asset(token, author, item) for item in post.media]

        body = {
            "author": author,
            "lifecycleState": "PUBLISHED",
            "specificContent": {"com.linkedin.ugc.ShareContent": content},
            "visibility": {"com.linkedin.ugc.MemberNetworkVisibility": "PUBLIC"},
        }
        resp = fetch_with_retry(
            f"{API_URL}/ugcPosts",
            method="POST",
            json=body,
            headers=_headers(token),
        )
        data = check_response(resp, "Failed to create LinkedIn post")
        post_id = data.get("id") or resp.headers.get("x-restli-id", "")
        return post_id, data

    def _upload_asset(self, token, author, item):
        recipe = (
            "urn:li:digitalmediaRecipe:feedshare-video"
            if item.is_video
            else "urn:li:digitalmediaRecipe:feedshare-image"
        )
        register = check_response(
            fetch_with_retry(
                f"{API_URL}/assets?action=registerUpload",
                method="POST",
                json={
                    "registerUploadRequest": {
                        "recipes": [recipe],
                        "owner": author,
                        "serviceRelationships": [
                            {
                                "relationshipType": "OWNER",
                                "identifier": "urn:li:userGeneratedContent",
                            }
                        ],
                    }
                },
                headers=_headers(token),
            ),
            "Failed to register upload",
        )
        try:
            value = register["value"]
            upload_url = value["uploadMechanism"][UPLOAD_MECHANISM]["uploadUrl"]
            asset = value["asset"]
        except (KeyError, TypeError) as e:
            raise UpstreamError(f"Unexpected registerUpload response: {register}") from e

        media = download_media(item.url)
        resp = fetch_with_retry(
            upload_url,
            method="PUT",
            data=media.data,
            headers={
                "Authorization": f"Bearer {token}",
                "Content-Type": media.mime_type,
            },
        )
        if resp.status_code != 201:
            raise MediaTransferError(f"Failed to upload media: {resp.status_code}")
        logger.info("LinkedIn asset %s uploaded", asset)

        return {
            "status": "READY",
            "media": asset,
            "title": {"text": item.name or "LinkedIn Share"},
        }
