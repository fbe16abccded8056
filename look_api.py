#!/usr/bin/env python3
"""
Look API - HTTP surface for look submission and polling.

POST /api/look          {"plan": {...}} -> {"ok": true, "job_id", "cached"}
GET  /api/look/<job_id> -> job polling payload
GET  /api/health        -> {"ok": true}
"""
import logging
from typing import Optional

from flask import Flask, jsonify, request

import config
from contracts.errors import FatalPlanError, JobNotFound
from services.look_service import LookService, get_look_service

logger = logging.getLogger(__name__)


def create_app(service: Optional[LookService] = None) -> Flask:
    """Build the Flask app around a LookService (the global one by default)."""
    app = Flask(__name__)
    service = service or get_look_service()

    @app.route('/api/look', methods=['POST'])
    def submit_look():
        """
        Submit a style plan. Returns immediately with the job id; a cached
        look for an identical plan is reported with `cached: true`.
        """
        if not request.is_json:
            return jsonify({"ok": False, "error": "Expected application/json body."}), 415

        body = request.get_json(silent=True)
        if not isinstance(body, dict) or not body.get("plan"):
            return jsonify({"ok": False, "error": "Missing plan."}), 400

        try:
            response = service.submit(body["plan"])
        except FatalPlanError as e:
            logger.info(f"[Look API] Rejected plan: {e}")
            return jsonify({"ok": False, "error": str(e)}), 400

        return jsonify({"ok": True, "job_id": response.job_id, "cached": response.cached})

    @app.route('/api/look/<job_id>', methods=['GET'])
    def poll_look(job_id: str):
        """Polling payload; stalled jobs are restarted as a side effect."""
        try:
            payload = service.poll(job_id)
        except JobNotFound:
            return jsonify({"ok": False, "error": "Job not found."}), 404

        return jsonify({"ok": True, **payload})

    @app.route('/api/health', methods=['GET'])
    def health():
        return jsonify({"ok": True})

    return app


app = create_app()


if __name__ == '__main__':
    logger.info(f"[Look API] Starting on {config.API_HOST}:{config.API_PORT}")
    app.run(host=config.API_HOST, port=config.API_PORT, debug=False)
