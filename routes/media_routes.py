from __future__ import annotations

import requests
from flask import Blueprint, Response, current_app, jsonify, request

from utils import admin_required
from utils.cache import get_cache
from utils.storage import resolve_image_url

media_bp = Blueprint("media", __name__, url_prefix="/api")

ONE_DAY = 86400


@media_bp.route("/image-proxy", methods=["GET"])
@admin_required
def image_proxy():
    """Fetch a stored photo from object storage and relay it to the browser."""
    url = request.args.get("url")
    path = request.args.get("path")
    if not url and not path:
        return jsonify({"error": "Either URL or file path is required"}), 400
    target = resolve_image_url(url=url, path=path)
    if not target:
        return jsonify({"error": "Could not determine file path"}), 400

    timeout = current_app.config.get("IMAGE_PROXY_TIMEOUT", 20)
    try:
        upstream = requests.get(target, timeout=timeout)
    except requests.RequestException as exc:
        current_app.logger.warning("Image fetch failed for %s: %s", target, exc)
        return jsonify({"error": "Failed to fetch image"}), 502
    if upstream.status_code != 200:
        current_app.logger.warning("Image fetch for %s returned %s", target, upstream.status_code)
        return jsonify({"error": "Failed to fetch image"}), 502

    return Response(
        upstream.content,
        status=200,
        mimetype=upstream.headers.get("Content-Type", "application/octet-stream"),
        headers={"Cache-Control": f"public, max-age={ONE_DAY}"},
    )


@media_bp.route("/cache", methods=["GET"])
@admin_required
def cache_stats():
    cache = get_cache()
    removed = cache.cleanup()
    stats = cache.stats()
    stats["expiredRemoved"] = removed
    return jsonify(stats)


@media_bp.route("/cache", methods=["DELETE"])
@admin_required
def clear_cache():
    get_cache().clear()
    current_app.logger.info("Data cache cleared")
    return jsonify({"success": True, "message": "Cache cleared"})
