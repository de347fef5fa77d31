"""Flask REST API exposing the budget ledger."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, Optional

import simplejson
from flask import Flask, Response, jsonify, request
from flask.json.provider import DefaultJSONProvider
from flask_cors import CORS

from ledger.exceptions import ValidationError
from ledger.services import LedgerStore
from ledger.storage import JSONFileStore, KeyValueStore


class _BadRequest(Exception):
    """Raised when the request body is not a JSON object."""


class DecimalJSONProvider(DefaultJSONProvider):
    """JSON provider writing and reading Decimal amounts without float rounding."""

    def dumps(self, obj: Any, **kwargs: Any) -> str:
        kwargs.setdefault("default", self.default)
        kwargs.setdefault("ensure_ascii", self.ensure_ascii)
        kwargs.setdefault("sort_keys", self.sort_keys)
        return simplejson.dumps(obj, use_decimal=True, **kwargs)

    def loads(self, s: Any, **kwargs: Any) -> Any:
        return simplejson.loads(s, use_decimal=True, **kwargs)


def create_app(
    data_dir: Optional[Path] = None, store: Optional[KeyValueStore] = None
) -> Flask:
    app = Flask(__name__)
    app.json = DecimalJSONProvider(app)

    env_name = os.getenv("BUDGET_TRACKER_ENV", "prod").lower()
    if env_name in {"dev", "development"}:
        CORS(app, resources={r"/*": {"origins": "*"}}, supports_credentials=True)
    else:
        allowed_origins = os.getenv("BUDGET_TRACKER_ALLOWED_ORIGINS")
        if allowed_origins:
            origins = [origin.strip() for origin in allowed_origins.split(",") if origin.strip()]
            CORS(app, resources={r"/*": {"origins": origins}}, supports_credentials=True)
        else:
            CORS(app)

    if store is None:
        store = JSONFileStore(Path(data_dir or os.getenv("BUDGET_TRACKER_DATA_DIR", "data")))
    ledger = LedgerStore(store)
    app.extensions["ledger"] = ledger

    def _success(payload: Any, status: int = 200):
        if status == 204:
            return ("", status)
        return jsonify(payload), status

    @app.errorhandler(ValidationError)
    def handle_validation_error(exc: ValidationError):
        app.logger.error("Validation error: %s", exc)
        errors = {name: error.to_dict() for name, error in exc.errors.items()}
        return jsonify({"error": "Validation error", "errors": errors}), 400

    def _json_body() -> Dict[str, Any]:
        data = request.get_json(silent=True) if request.is_json else None
        if not isinstance(data, dict):
            app.logger.error("Rejected request body for %s", request.path)
            raise _BadRequest("Request content must be a JSON object")
        return data

    @app.errorhandler(_BadRequest)
    def handle_bad_request(exc: _BadRequest):
        return jsonify({"error": str(exc)}), 400

    def _persistence_flag() -> Dict[str, bool]:
        return {"persisted": ledger.last_persist_error is None}

    @app.get("/entries")
    def list_entries():
        newest_first = request.args.get("order", "newest") == "newest"
        entries = ledger.list(newest_first=newest_first)
        return _success({"items": [entry.to_dict() for entry in entries]})

    @app.post("/entries")
    def create_entry():
        payload = _json_body()
        entry = ledger.add(payload)
        return _success({**entry.to_dict(), **_persistence_flag()}, 201)

    @app.post("/entries/validate")
    def validate_entry():
        result = ledger.validate(_json_body())
        return _success({"valid": result.is_valid, "errors": result.to_dict()})

    @app.delete("/entries/<int:entry_id>")
    def delete_entry(entry_id: int):
        ledger.delete(entry_id)
        if ledger.last_persist_error is not None:
            return _success(_persistence_flag())
        return _success({}, 204)

    @app.get("/totals")
    def totals():
        return _success(ledger.compute_totals().to_dict())

    @app.get("/report")
    def report():
        breakdown = ledger.compute_category_breakdown()
        return _success({
            "categories": [
                {"category": name, **amounts.to_dict()} for name, amounts in breakdown.items()
            ],
            "totals": ledger.compute_totals().to_dict(),
            "statistics": ledger.compute_statistics().to_dict(),
        })

    @app.get("/export")
    def export():
        filename = ledger.export_filename()
        return Response(
            ledger.export_snapshot(),
            mimetype="application/json",
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )

    return app