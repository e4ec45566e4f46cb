# campus_hub/routes/upload.py

"""
Event asset uploads
"""

from pathlib import PurePosixPath

from flask import abort, current_app, jsonify, request, send_from_directory
from flask_login import current_user, login_required
from werkzeug.utils import secure_filename

from campus_hub.extensions import get_storage
from campus_hub.integrations.storage import LocalStorage

ALLOWED_CONTENT_TYPES = ("image/", "application/pdf")


def sanitize_object_key(file_name):
    """Make a client-supplied name safe to use as a storage key; None when nothing usable remains"""
    parts = [secure_filename(part) for part in PurePosixPath(file_name.replace("\\", "/")).parts]
    parts = [part for part in parts if part]
    return "/".join(parts) or None


def register_upload_routes(app):
    """Register upload routes"""

    @app.route("/api/upload", methods=["POST"])
    @login_required
    def upload_asset():
        upload = request.files.get("file")
        file_name = request.form.get("fileName") or (upload.filename if upload else None)
        if upload is None or not file_name:
            return jsonify({"error": "File and fileName are required"}), 400

        storage = get_storage()
        bucket = request.form.get("bucket") or storage.bucket
        if bucket != storage.bucket:
            return jsonify({"error": f"Uploads are only accepted for the {storage.bucket} bucket"}), 400

        content_type = upload.mimetype or ""
        if not content_type.startswith(ALLOWED_CONTENT_TYPES):
            return jsonify({"error": f"Unsupported file type '{content_type or 'unknown'}'"}), 415

        key = sanitize_object_key(file_name)
        if key is None:
            return jsonify({"error": "Invalid fileName"}), 400

        url = storage.upload(key, upload.read(), content_type=content_type)
        current_app.logger.info(f"User {current_user.id} uploaded {key} to {bucket}")
        return jsonify({"url": url}), 200

    @app.route("/uploads/<bucket>/<path:key>", methods=["GET"])
    def serve_local_upload(bucket, key):
        """Serve objects kept by the local storage backend"""
        storage = get_storage()
        if not isinstance(storage, LocalStorage) or bucket != storage.bucket:
            abort(404)
        return send_from_directory(storage.root, key)
