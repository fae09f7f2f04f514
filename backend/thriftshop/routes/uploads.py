# Overview: Serves locally stored product images.

from flask import Blueprint, current_app, send_from_directory, abort

from ..services.storage_service import LocalStorage

uploads_bp = Blueprint("uploads", __name__)


@uploads_bp.get("/uploads/<path:filename>")
def serve_upload(filename: str):
    """Public image files written by the local storage backend."""
    storage = current_app.extensions["storage"]
    if not isinstance(storage, LocalStorage):
        abort(404)
    return send_from_directory(storage.root, filename)
