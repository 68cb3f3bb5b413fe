"""
Source image fetch and edited image upload.

Functions:
    fetch_image_bytes: Obtain the raw bytes of a source image URL
    upload_image_bytes: Publish edited image bytes and return the public URL

Classes:
    ImageFetchError: The source image could not be obtained
    UploadError: The edited image could not be published
    ImageHostClient: Callable wrappers bound to a RemoteConfig
"""

import base64
import binascii
import logging
import time
from pathlib import Path
from typing import Any, Optional
from urllib.parse import quote, unquote, urlparse

import requests

from ERP_Libs.RemoteLib.remote_config import RemoteConfig
from ERP_Libs.constants import EXPORT_FILENAME_PREFIX

logger = logging.getLogger(__name__)


class ImageFetchError(OSError):
    """Raised when a source image cannot be fetched."""


class UploadError(OSError):
    """Raised when an edited image cannot be uploaded."""


def _proxied(url: str, proxy: str) -> str:
    return f"{proxy}{quote(url, safe='')}" if proxy else url


def fetch_image_bytes(
    url: str,
    config: Optional[RemoteConfig] = None,
    session: Optional[requests.Session] = None,
) -> bytes:
    """
    Fetch the raw bytes of a source image.

    Supports http(s) URLs (through the configured proxy prefix), data: URIs,
    file:// URLs and plain local paths.

    Raises:
        ImageFetchError: On any network, status or file error
    """
    config = config or RemoteConfig()
    if not url:
        raise ImageFetchError("No image URL given")

    if url.startswith("data:"):
        try:
            _, encoded = url.split(",", 1)
            return base64.b64decode(encoded, validate=True)
        except (ValueError, binascii.Error) as exc:
            raise ImageFetchError(f"Invalid data URI: {exc}") from exc

    parsed = urlparse(url)
    if parsed.scheme in ("http", "https"):
        http = session or requests
        try:
            resp = http.get(_proxied(url, config.cors_proxy), timeout=config.fetch_timeout_s)
        except requests.RequestException as exc:
            raise ImageFetchError(f"Failed to fetch {url}: {exc}") from exc
        if resp.status_code >= 400:
            raise ImageFetchError(f"Failed to fetch {url}: HTTP {resp.status_code}")
        return resp.content

    path = Path(unquote(parsed.path)) if parsed.scheme == "file" else Path(url)
    try:
        return path.read_bytes()
    except OSError as exc:
        raise ImageFetchError(f"Failed to read {path}: {exc}") from exc


def _public_url(data: Any, image_host: str) -> Optional[str]:
    if isinstance(data, list) and data and isinstance(data[0], dict) and data[0].get("src"):
        return f"{image_host.rstrip('/')}{data[0]['src']}"
    if isinstance(data, dict) and data.get("url"):
        return str(data["url"])
    return None


def upload_image_bytes(
    image_bytes: bytes,
    config: Optional[RemoteConfig] = None,
    session: Optional[requests.Session] = None,
    filename: Optional[str] = None,
) -> str:
    """
    Upload an edited JPEG to the image host.

    Returns:
        The public URL of the uploaded image

    Raises:
        UploadError: On network errors, error statuses or responses without a URL
    """
    config = config or RemoteConfig()
    filename = filename or f"{EXPORT_FILENAME_PREFIX}{int(time.time() * 1000)}.jpg"
    http = session or requests

    try:
        resp = http.post(
            _proxied(config.upload_url, config.cors_proxy),
            files={"file": (filename, image_bytes, "image/jpeg")},
            timeout=config.upload_timeout_s,
        )
    except requests.RequestException as exc:
        raise UploadError(f"Upload failed: {exc}") from exc

    if resp.status_code >= 400:
        raise UploadError(f"Upload failed: HTTP {resp.status_code}")

    try:
        data = resp.json()
    except ValueError as exc:
        raise UploadError("Upload response is not JSON") from exc

    url = _public_url(data, config.image_host)
    if not url:
        raise UploadError("Upload response did not contain a URL")

    logger.info(f"Uploaded {len(image_bytes)} bytes to {url}")
    return url


class ImageHostClient:
    """Fetch/upload callables bound to one config and HTTP session."""

    def __init__(self, config: Optional[RemoteConfig] = None, session: Optional[requests.Session] = None):
        self.config = config or RemoteConfig()
        self.session = session or requests.Session()

    def fetch(self, url: str) -> bytes:
        return fetch_image_bytes(url, self.config, self.session)

    def upload(self, image_bytes: bytes) -> str:
        return upload_image_bytes(image_bytes, self.config, self.session)
