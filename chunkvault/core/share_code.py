"""Share code generation and decoding.

A share code is base64 text wrapping JSON with the passphrase, the ordered
chunk URLs and the file name. The key travels in cleartext: anyone holding
the code can decrypt the file.
"""

import base64
import binascii
import json
from typing import Iterable

from ..common.types import ShareCode
from ..utils import InvalidContent, InvalidFormat

KEY_FIELD = "encryptionKey"
URLS_FIELD = "chunkUrls"
NAME_FIELD = "fileName"


def generate(key: str, blob_urls: Iterable[str], file_name: str) -> str:
    """
    Build a share code.

    Args:
        key: Encryption passphrase
        blob_urls: Chunk URLs in byte order
        file_name: Original file name

    Returns:
        Base64 share code
    """
    payload = {KEY_FIELD: key, URLS_FIELD: list(blob_urls), NAME_FIELD: file_name}
    data = json.dumps(payload, ensure_ascii=False, separators=(",", ":"))
    return base64.b64encode(data.encode("utf-8")).decode("ascii")


def decode(code: str) -> ShareCode:
    """
    Parse a share code.

    Raises:
        InvalidFormat: If the code is not base64-encoded JSON object
        InvalidContent: If a required field is absent or has the wrong shape
    """
    try:
        raw = base64.b64decode(code.strip(), validate=True)
        payload = json.loads(raw.decode("utf-8"))
    except (binascii.Error, ValueError, AttributeError) as exc:
        raise InvalidFormat("Invalid share code format.") from exc
    if not isinstance(payload, dict):
        raise InvalidFormat("Invalid share code format.")

    key = payload.get(KEY_FIELD)
    urls = payload.get(URLS_FIELD)
    file_name = payload.get(NAME_FIELD)
    if not isinstance(key, str) or not key:
        raise InvalidContent("Share code has no encryption key.")
    if not isinstance(urls, list) or not all(isinstance(url, str) and url for url in urls):
        raise InvalidContent("Share code chunk URLs are missing or malformed.")
    if not isinstance(file_name, str) or not file_name:
        raise InvalidContent("Share code has no file name.")
    return ShareCode(key=key, blob_urls=urls, file_name=file_name)
