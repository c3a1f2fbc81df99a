#!/usr/bin/env python3
"""routes_auth.py

Identity HTTP endpoints:

  - GET  /api/check-username/<username>   availability + rule check
  - POST /api/register                    create an identity (JSON or form)
  - GET  /api/user/<username>             public profile

The registration token is random and is never checked again; Socket.IO
authentication only needs a registered username.
"""

from __future__ import annotations

import logging
import secrets

from flask import jsonify, request

from constants import normalize_username, validate_username
from realtime.schemas import User


def register_auth_routes(app, settings, state, limiter=None):
    min_len = int(settings.get("username_min_length") or 3)
    max_len = int(settings.get("username_max_length") or 20)

    def _limit(rule: str):
        """Decorate a route with a rate limit if a Limiter is active."""
        if limiter is not None:
            return limiter.limit(rule)

        def _decorator(fn):
            return fn
        return _decorator

    @app.route("/api/check-username/<username>", methods=["GET"])
    def check_username(username):
        username = normalize_username(username)
        ok, err = validate_username(username, min_len, max_len)
        if not ok:
            return jsonify({"available": False, "message": err})

        with state.lock:
            available = not state.directory.contains(username)
        return jsonify({
            "available": available,
            "message": "Username available" if available else "Username already taken",
        })

    @app.route("/api/register", methods=["POST"])
    @_limit(settings.get("rate_limit_register") or "10 per minute")
    def register():
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            data = request.form.to_dict()

        raw_username = data.get("username")
        username = normalize_username(raw_username)
        ok, err = validate_username(username, min_len, max_len)
        if not ok:
            return jsonify({"error": err}), 400

        school = data.get("school")
        with state.lock:
            if state.directory.contains(username):
                return jsonify({"error": "Username already taken"}), 400
            if not state.is_valid_school(school):
                return jsonify({"error": "Invalid school selection"}), 400

            user = state.directory.put(
                User(
                    username=username,
                    # Keep the original casing for display
                    display_name=raw_username.strip(),
                    school=school.strip().lower(),
                )
            )

        token = secrets.token_hex(32)
        logging.info("[REGISTER] @%s (%s)", user.username, user.school)
        return jsonify({"success": True, "token": token, "user": user.public()})

    @app.route("/api/user/<username>", methods=["GET"])
    def get_user(username):
        with state.lock:
            user = state.directory.lookup(username)
        if user is None:
            return jsonify({"error": "User not found"}), 404
        return jsonify(user.public())
