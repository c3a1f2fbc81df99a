#!/usr/bin/env python3
"""routes_main.py

General (non-identity) routes: the landing page, stored uploads, image
uploads for posts and avatars, and the optional health check.

Uploaded images are written flat into the configured upload directory and
handed back as ``/uploads/<filename>`` references. Those references are what
posts, replies and avatars store.
"""

from __future__ import annotations

import logging
import os

from flask import jsonify, request, send_from_directory
from werkzeug.exceptions import RequestEntityTooLarge

from constants import APP_VERSION, normalize_username
from realtime.errors import MediaCleanupFailure
from realtime.media import UploadRejected


def register_main_routes(app, settings, state, limiter=None):
    media = state.media
    document_root = os.path.abspath(settings.get("document_root") or "www")
    too_large = f"File too large. Maximum size is {media.max_bytes // (1024 * 1024)}MB."

    def _limit(rule: str):
        """Decorate a route with a rate limit if a Limiter is active."""
        if limiter is not None:
            return limiter.limit(rule)

        def _decorator(fn):
            return fn
        return _decorator

    @app.errorhandler(RequestEntityTooLarge)
    def _upload_too_large(_exc):
        return jsonify({"error": too_large}), 400

    @app.route("/")
    def index():
        if os.path.isfile(os.path.join(document_root, "index.html")):
            return send_from_directory(document_root, "index.html")
        return f"""
        <h1>{settings.get('server_name') or 'CampusFeed'}</h1>
        <p>Socket.IO endpoint is up. Put your client in <code>{document_root}/index.html</code>.</p>
        """

    @app.route("/uploads/<path:filename>")
    def uploaded_file(filename):
        return send_from_directory(media.upload_dir, filename)

    # Health check is optional and safe for unauthenticated probes.
    if settings.get("enable_health_check_endpoint", False):
        endpoint = settings.get("health_check_endpoint") or "/health"

        @app.route(endpoint, methods=["GET"])
        def health_check():
            return jsonify({"status": "ok", "version": APP_VERSION, **state.counts()})

    @app.route("/api/upload-avatar", methods=["POST"])
    @_limit(settings.get("rate_limit_upload") or "20 per minute")
    def upload_avatar():
        file = request.files.get("avatar")
        if file is None or not file.filename:
            return jsonify({"error": "No file uploaded"}), 400

        try:
            url = media.save_image(file)
        except UploadRejected as exc:
            return jsonify({"error": exc.message}), 400

        username = normalize_username(request.form.get("username"))
        with state.lock:
            if not username or not state.directory.contains(username):
                # Don't keep files for identities that don't exist.
                try:
                    media.discard(url)
                except MediaCleanupFailure as exc:
                    logging.error("[MEDIA] %s", exc.message)
                return jsonify({"error": "Invalid user"}), 400
            previous = state.directory.update_avatar(username, url)

        if previous and previous != url:
            try:
                media.discard(previous)
            except MediaCleanupFailure as exc:
                logging.error("[MEDIA] old avatar: %s", exc.message)

        logging.info("[AVATAR] @%s -> %s", username, url)
        return jsonify({"success": True, "avatar": url})

    @app.route("/api/upload-post-image", methods=["POST"])
    @_limit(settings.get("rate_limit_upload") or "20 per minute")
    def upload_post_image():
        file = request.files.get("image")
        if file is None or not file.filename:
            return jsonify({"error": "No file uploaded"}), 400

        try:
            url = media.save_image(file)
        except UploadRejected as exc:
            return jsonify({"error": exc.message}), 400

        return jsonify({"success": True, "imageUrl": url})
