"""Byte sources for notification icons.

An icon reference may be raw bytes, a path on disk, an http(s) URL or the
name of an image bundled under ``eventclient/resources``.
"""
import logging
import os
from importlib import resources
from typing import Optional, Union

import requests

from eventclient import config
from eventclient.exceptions import EncodingError

logger = logging.getLogger(__name__)

IconRef = Union[bytes, bytearray, str, os.PathLike]


def _fetch_url(url: str, timeout: float) -> bytes:
    logger.info(f"[ICON] Fetching icon from {url}...")
    try:
        response = requests.get(url, timeout=timeout)
        response.raise_for_status()
    except requests.RequestException as e:
        raise EncodingError(f"Could not fetch icon {url}: {e}") from e
    return response.content


def _read_bundled(name: str) -> Optional[bytes]:
    resource = resources.files('eventclient').joinpath('resources').joinpath(os.path.basename(name))
    if not resource.is_file():
        return None
    return resource.read_bytes()


def load_icon(icon_ref: Optional[IconRef], timeout: float = config.ICON_FETCH_TIMEOUT) -> bytes:
    """
    Returns the raw image bytes for an icon reference.

    Raises:
        EncodingError: no reference given, or the image cannot be read.
    """
    if icon_ref is None:
        raise EncodingError("Custom icon requested without an icon reference")

    if isinstance(icon_ref, (bytes, bytearray)):
        return bytes(icon_ref)

    try:
        ref = os.fspath(icon_ref)
    except TypeError as e:
        raise EncodingError(f"Unsupported icon reference: {icon_ref!r}") from e
    if ref.startswith(('http://', 'https://')):
        return _fetch_url(ref, timeout)

    if os.path.isfile(ref):
        try:
            with open(ref, 'rb') as f:
                data = f.read()
        except OSError as e:
            raise EncodingError(f"Could not read icon {ref}: {e}") from e
        logger.debug(f"[ICON] Loaded {len(data)} bytes from {ref}")
        return data

    data = _read_bundled(ref)
    if data is None:
        raise EncodingError(f"Icon not found: {ref}")
    logger.debug(f"[ICON] Loaded bundled icon {ref} ({len(data)} bytes)")
    return data
