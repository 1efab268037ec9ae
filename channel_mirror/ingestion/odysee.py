"""
Odysee collaborators: channel listing and direct media URL resolution.

The listing goes through the public JSON-RPC proxy (``claim_search``), which
returns claims ordered by release time, newest first. The rest of the package
relies on that ordering: the cutoff and the lookahead stop both assume it.

The media URL comes from the JSON-LD ``VideoObject`` block embedded in each
item's web page.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Optional

import requests
from bs4 import BeautifulSoup

from channel_mirror.logger import log_function
from channel_mirror.models import ChannelItem, coerce_timestamp

logger = logging.getLogger(__name__)

API_URL = "https://api.na-backend.odysee.com/api/v1/proxy"
SITE_URL = "https://odysee.com"
USER_AGENT = "Mozilla/5.0 (compatible; channel-mirror/0.1.0)"
REQUEST_TIMEOUT = 30


class MirrorError(Exception):
    """Base class for collaborator failures."""


class ListingError(MirrorError):
    """The channel listing could not be fetched. Fatal for the rest of the run."""


class ResolutionError(MirrorError):
    """No direct media URL could be resolved for one item."""


@dataclass
class ResolvedMedia:
    """Direct content URL plus the JSON-LD block it came from."""

    content_url: Optional[str]
    raw: dict[str, Any]


def item_page_url(channel_name: str, claim_name: str) -> str:
    return f"{SITE_URL}/{channel_name}/{claim_name}"


@log_function(logger_name=__name__, log_args=True)
def fetch_channel_page(
    channel_name: str, page: int, page_size: int, session: Optional[requests.Session] = None
) -> list[ChannelItem]:
    """
    Fetch one page of a channel's playable streams, newest first.

    Args:
        channel_name: Channel handle, e.g. "@SomeChannel"
        page: 1-based page number
        page_size: Number of items per page

    Returns:
        The page's items in listing order. An empty list means the channel
        is exhausted.

    Raises:
        ListingError: On transport errors, HTTP errors, JSON-RPC errors or an
            unexpected response shape
    """
    if page < 1 or page_size < 1:
        raise ValueError(f"invalid page request: page={page} page_size={page_size}")

    payload = {
        "jsonrpc": "2.0",
        "method": "claim_search",
        "params": {
            "channel": channel_name,
            "page": page,
            "page_size": page_size,
            "order_by": ["release_time"],
            "claim_type": ["stream"],
            "no_totals": True,
            "has_source": True,
        },
    }
    http = session or requests
    try:
        response = http.post(API_URL, json=payload, timeout=REQUEST_TIMEOUT)
        response.raise_for_status()
        body = response.json()
    except requests.RequestException as e:
        raise ListingError(f"listing request failed: {e}") from e
    except ValueError as e:
        raise ListingError(f"listing response is not JSON: {e}") from e

    if not isinstance(body, dict):
        raise ListingError(f"unexpected listing response: {body!r}")
    if body.get("error"):
        raise ListingError(f"listing API error: {body['error']}")

    result = body.get("result")
    items = result.get("items") if isinstance(result, dict) else None
    if not isinstance(items, list):
        raise ListingError("listing response has no result.items")

    return parse_claims(channel_name, items)


def parse_claims(channel_name: str, claims: list[Any]) -> list[ChannelItem]:
    """Turn raw claim objects into ChannelItems, dropping entries without a name."""
    channel_items = []
    for claim in claims:
        name = claim.get("name") if isinstance(claim, dict) else None
        if not name:
            logger.warning(f"Skipping listing entry without a name: {claim!r}")
            continue

        timestamp = claim.get("timestamp")
        try:
            published_at = (
                coerce_timestamp(int(timestamp)) if timestamp is not None else None
            )
        except (TypeError, ValueError, OverflowError):
            logger.warning(f"Ignoring bad timestamp {timestamp!r} for {name}")
            published_at = None

        channel_items.append(
            ChannelItem(
                title=name,
                published_at=published_at,
                source_url=item_page_url(channel_name, name),
            )
        )
    return channel_items


@log_function(logger_name=__name__, log_args=True)
def resolve_media_url(
    page_url: str, session: Optional[requests.Session] = None
) -> ResolvedMedia:
    """
    Fetch an item page and extract the direct media URL from its JSON-LD.

    Args:
        page_url: Full item page URL

    Returns:
        ResolvedMedia with the VideoObject's contentUrl and the raw block

    Raises:
        ResolutionError: If the page cannot be fetched or has no VideoObject
    """
    if not page_url or not isinstance(page_url, str):
        raise ResolutionError("a valid item page URL is required")

    http = session or requests
    try:
        response = http.get(
            page_url, headers={"User-Agent": USER_AGENT}, timeout=REQUEST_TIMEOUT
        )
        response.raise_for_status()
    except requests.RequestException as e:
        raise ResolutionError(f"failed to fetch page {page_url}: {e}") from e

    video_object = find_video_object(response.text)
    if video_object is None:
        raise ResolutionError(f"VideoObject JSON-LD not found on {page_url}")

    return ResolvedMedia(content_url=video_object.get("contentUrl"), raw=video_object)


def find_video_object(html: str) -> Optional[dict[str, Any]]:
    """Return the first JSON-LD VideoObject with a contentUrl, ignoring malformed blocks."""
    soup = BeautifulSoup(html, "html.parser")
    for script in soup.find_all("script", type="application/ld+json"):
        try:
            data = json.loads(script.string or "")
        except ValueError:
            continue
        if (
            isinstance(data, dict)
            and data.get("@type") == "VideoObject"
            and data.get("contentUrl")
        ):
            return data
    return None
