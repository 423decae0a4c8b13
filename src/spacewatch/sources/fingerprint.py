"""Fingerprint computation for normalized items."""

from __future__ import annotations

import hashlib
import io
import json
import re
import unicodedata
from typing import Any

import imagehash
from PIL import Image


def _normalize_text(text: str) -> str:
    """Normalize text for stable hashing.

    - Unicode NFC normalization
    - Collapse all whitespace (spaces, tabs, newlines) to single spaces
    - Strip leading/trailing whitespace
    """
    text = unicodedata.normalize("NFC", text)
    text = re.sub(r"\s+", " ", text)
    return text.strip()


def canonical_json(value: Any) -> str:
    """Serialize *value* with sorted keys and no insignificant whitespace."""
    return json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False, default=str)


def compute_fingerprint(source_id: str, content: Any) -> str:
    """Compute a SHA-256 fingerprint of *content* scoped to *source_id*.

    Strings are text-normalized first; any other value is serialized as
    canonical JSON. The source id and content are joined with a null byte
    separator to avoid ambiguous concatenations.
    """
    if isinstance(content, str):
        body = _normalize_text(content)
    else:
        body = canonical_json(content)
    combined = f"{source_id}\0{body}"
    return hashlib.sha256(combined.encode("utf-8")).hexdigest()


def perceptual_hash(image_bytes: bytes, hash_size: int = 8) -> str:
    """Return the pHash of an encoded image as a hex string.

    Re-encoding an unchanged picture (JPEG quality, metadata) leaves the hash
    equal or within a few bits; visible changes move it much further.
    Raises ValueError if the bytes are not a decodable image.
    """
    try:
        with Image.open(io.BytesIO(image_bytes)) as image:
            image.load()
            return str(imagehash.phash(image, hash_size=hash_size))
    except (OSError, SyntaxError) as exc:
        raise ValueError(f"Not a decodable image: {exc}") from exc


def hash_distance(first: str, second: str) -> int:
    """Hamming distance between two perceptual hashes in hex form."""
    return imagehash.hex_to_hash(first) - imagehash.hex_to_hash(second)
