import logging
import re
import time
from typing import Callable, Optional
from urllib.parse import urlparse

import requests
from django.conf import settings
from django.core.files.base import ContentFile
from django.core.files.storage import default_storage

from .capture_differ import FIRST_CAPTURE, DiffResult, decode_image, diff_images, to_png
from .models import Capture, Route

logger = logging.getLogger(__name__)

Fetcher = Callable[[str], bytes]


class ScreenshotFetchError(Exception):
    pass


def _slug(value: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", str(value or "").lower()).strip("-")
    return slug or "screen"


def _storage_name_from_url(url: str) -> Optional[str]:
    media_url = settings.MEDIA_URL or "/media/"
    path = urlparse(url).path
    if path.startswith(media_url):
        return path[len(media_url):]
    return None


def fetch_image(url: str, timeout: Optional[int] = None) -> bytes:
    """Default fetch capability: HTTP(S) URLs via requests, media URLs via storage."""
    parsed = urlparse(url)
    if parsed.scheme in ("http", "https"):
        try:
            response = requests.get(url, timeout=timeout or settings.SCREENSHOT_FETCH_TIMEOUT)
            response.raise_for_status()
        except requests.RequestException as exc:
            raise ScreenshotFetchError(f"GET {url} failed: {exc}") from exc
        return response.content

    name = _storage_name_from_url(url)
    if not name:
        raise ScreenshotFetchError(f"unsupported screenshot url: {url}")
    try:
        with default_storage.open(name, "rb") as fh:
            return fh.read()
    except OSError as exc:
        raise ScreenshotFetchError(f"reading {name} failed: {exc}") from exc


def previous_capture(route: Route) -> Optional[Capture]:
    return route.captures.order_by("-captured_at", "-id").first()


def diff_against_previous(
    route: Route,
    new_bytes: bytes,
    fetch: Fetcher = fetch_image,
    threshold: Optional[float] = None,
) -> DiffResult:
    """Compare a fresh screenshot with the route's latest stored capture.

    A previous screenshot that cannot be fetched or decoded is logged and
    treated as a first capture. Raises ``ImageDecodeError`` only when the new
    screenshot itself is not an image.
    """
    if threshold is None:
        threshold = settings.SCREENSHOT_DIFF_THRESHOLD

    new_image = decode_image(new_bytes)

    previous = previous_capture(route)
    if previous is None:
        logger.info("First capture for route=%s path=%s", route.id, route.path)
        return FIRST_CAPTURE

    try:
        previous_image = decode_image(fetch(previous.screenshot_url))
    except Exception as exc:
        logger.warning(
            "Could not compare with previous screenshot route=%s capture=%s url=%s error=%s",
            route.id, previous.id, previous.screenshot_url, exc,
        )
        return FIRST_CAPTURE

    result = diff_images(new_image, previous_image, threshold)
    if result.has_changes:
        logger.info("Changes detected route=%s summary=%s", route.id, result.change_summary)
    else:
        logger.info("No significant changes route=%s diff=%.2f", route.id, result.diff_percentage)
    return result


def store_screenshot(route: Route, data: bytes) -> str:
    filename = "screenshots/{product}-{name}-{ts}.png".format(
        product=route.product_id,
        name=_slug(route.name),
        ts=int(time.time() * 1000),
    )
    saved_name = default_storage.save(filename, ContentFile(to_png(data)))
    return default_storage.url(saved_name)


def record_capture(
    route: Route,
    new_bytes: bytes,
    *,
    fetch: Fetcher = fetch_image,
    detect_changes_only: bool = False,
) -> Optional[Capture]:
    """Diff, store and persist a new capture for ``route``.

    With ``detect_changes_only`` an unchanged screenshot of a route that
    already has a baseline is dropped and ``None`` is returned.
    """
    has_baseline = route.captures.exists()
    result = diff_against_previous(route, new_bytes, fetch=fetch)

    if detect_changes_only and has_baseline and not result.has_changes:
        logger.info("No significant changes route=%s, capture skipped", route.id)
        return None

    screenshot_url = store_screenshot(route, new_bytes)
    capture = Capture.objects.create(
        route=route,
        screenshot_url=screenshot_url,
        has_changes=result.has_changes,
        diff_percentage=result.diff_percentage,
        change_summary=result.change_summary,
    )
    logger.info(
        "Captured route=%s capture=%s has_changes=%s diff=%.2f",
        route.id, capture.id, capture.has_changes, capture.diff_percentage,
    )
    return capture
