from __future__ import annotations

from typing import Optional

from flask import current_app

OBJECT_MARKER = "/storage/v1/object/"


def _bucket() -> str:
    return current_app.config.get("STORAGE_BUCKET", "File")


def extract_object_path(url: Optional[str]) -> Optional[str]:
    """Object path inside the bucket for a stored-photo url.

    Handles public urls (including rows saved with a doubled bucket prefix),
    signed urls and bare object urls. Query strings are dropped.
    """
    if not url or OBJECT_MARKER not in url:
        return None
    path = url.split(OBJECT_MARKER, 1)[1].split("?", 1)[0]
    for prefix in ("public/", "sign/", "authenticated/"):
        if path.startswith(prefix):
            path = path[len(prefix):]
            break
    bucket = _bucket() + "/"
    while path.startswith(bucket):
        path = path[len(bucket):]
    return path or None


def public_url_for(path: str) -> str:
    base = (current_app.config.get("STORAGE_PUBLIC_BASE_URL") or "").rstrip("/")
    return f"{base}/{_bucket()}/{path.lstrip('/')}"


def to_public_url(url: Optional[str]) -> Optional[str]:
    """Rewrite a signed or malformed storage url to its stable public form.

    Urls that do not point at object storage are returned unchanged.
    """
    if not url:
        return url
    path = extract_object_path(url)
    if path is None or not current_app.config.get("STORAGE_PUBLIC_BASE_URL"):
        return url
    return public_url_for(path)


def resolve_image_url(url: Optional[str] = None, path: Optional[str] = None) -> Optional[str]:
    """Public url to fetch for the image proxy, or None if nothing usable was given.

    Only object-storage locations are resolved; arbitrary urls are refused.
    """
    if not current_app.config.get("STORAGE_PUBLIC_BASE_URL"):
        return None
    if url:
        path = extract_object_path(url)
    if not path or ".." in path.split("/"):
        return None
    return public_url_for(path)
