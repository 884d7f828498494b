"""
HTTP gateway for the tenancy core (Flask).
- /org/*: tenant create / get / rename / credentials / delete; delete requires a Bearer token
  issued for the same tenant.
- /admin/login: email + password -> token.
Unified error body: { code, message, details, requestId }; status comes from the error kind.
Every request gets a trace id, a JSON log line and an operation-audit record.
"""
from __future__ import annotations

import json
import logging
import time
import uuid
from typing import Optional

from flask import Flask, Response, g, jsonify, request

from ..core import TenantPlatform, get_platform
from ..errors import TenancyError, ValidationError
from .audit_log import AuditLog

logger = logging.getLogger("gateway")


def _json_log(level: str, msg: str, trace_id: str, **kwargs) -> None:
    log_obj = {"level": level, "message": msg, "trace_id": trace_id, **kwargs}
    logging.getLogger("gateway").log(
        logging.ERROR if level == "error" else logging.INFO, json.dumps(log_obj, ensure_ascii=False)
    )


def _request_id() -> str:
    return request.headers.get("X-Request-ID", "") if request else ""


def _error_response(code: str, message: str, details: str, status: int) -> Response:
    body = {"code": code, "message": message, "details": details, "requestId": _request_id()}
    return Response(json.dumps(body, ensure_ascii=False), status=status, mimetype="application/json; charset=utf-8")


def _json_body() -> dict:
    if not request.is_json:
        raise ValidationError("Content-Type: application/json")
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        raise ValidationError("request body must be a JSON object")
    return body


def _field(body: dict, key: str) -> str:
    value = body.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValidationError(f"{key} must be a string")
    return value


def _bearer_token() -> Optional[str]:
    auth = (request.headers.get("Authorization") or "").strip()
    if not auth.lower().startswith("bearer "):
        return None
    return auth[7:].strip() or None


def create_app(platform: Optional[TenantPlatform] = None, audit: Optional[AuditLog] = None) -> Flask:
    """
    Build the gateway app.
    - platform: wired tenancy core; defaults to the process singleton.
    - audit: operation audit log; defaults to one under settings.audit_dir (memory only if unset).
    """
    app = Flask(__name__)
    app.json.ensure_ascii = False
    core = platform or get_platform()
    audit_log = audit or AuditLog(core.settings.audit_dir)
    app.extensions["tenancy_platform"] = core
    app.extensions["tenancy_audit"] = audit_log

    @app.before_request
    def before():
        g.trace_id = request.headers.get("X-Trace-Id") or request.headers.get("X-Request-ID") or uuid.uuid4().hex
        g.start_time = time.perf_counter()
        g.admin_id = ""

    @app.after_request
    def after(resp):
        resp.headers["X-Content-Type-Options"] = "nosniff"
        start = getattr(g, "start_time", None)
        if start is None:
            return resp
        duration_ms = int((time.perf_counter() - start) * 1000)
        trace_id = getattr(g, "trace_id", "")
        resp.headers["X-Response-Time"] = str(duration_ms)
        resp.headers["X-Trace-Id"] = trace_id
        _json_log("info", "request", trace_id, method=request.method, path=request.path,
                  status=resp.status_code, duration_ms=duration_ms)
        if request.path != "/health":
            body = request.get_json(silent=True) if request.is_json else None
            tenant = request.args.get("organization_name") or ""
            if not tenant and isinstance(body, dict) and isinstance(body.get("organization_name"), str):
                tenant = body["organization_name"]
            audit_log.append(request.method, request.path, resp.status_code, duration_ms,
                             trace_id=trace_id, tenant=tenant, admin_id=getattr(g, "admin_id", ""),
                             ip=request.remote_addr or "")
        return resp

    @app.errorhandler(TenancyError)
    def handle_tenancy_error(e: TenancyError):
        if e.status >= 500:
            _json_log("error", "request_failed", getattr(g, "trace_id", ""), code=e.code, error=e.message,
                      details=e.details)
        return _error_response(e.code, e.message, e.details, e.status)

    @app.route("/health")
    def health():
        return jsonify({"status": "up", "service": "tenancy"}), 200

    @app.route("/org/create", methods=["POST"])
    def org_create():
        """body: { organization_name, email, password }"""
        body = _json_body()
        meta = core.create_tenant(_field(body, "organization_name"), _field(body, "email"), _field(body, "password"))
        return jsonify(meta.to_dict()), 201

    @app.route("/org/get", methods=["GET"])
    def org_get():
        name = (request.args.get("organization_name") or "").strip()
        if not name:
            raise ValidationError("organization_name required")
        meta = core.get_tenant(name)
        if meta is None:
            return _error_response("NOT_FOUND", "organization not found", name, 404)
        return jsonify(meta.to_dict()), 200

    @app.route("/org/update", methods=["PUT"])
    def org_update():
        """body: { organization_name, new_organization_name, email?, password? }"""
        body = _json_body()
        email, password = _field(body, "email"), _field(body, "password")
        if bool(email.strip()) != bool(password.strip()):
            raise ValidationError("email and password must be given together")
        if email.strip():
            meta = core.rename_tenant(_field(body, "organization_name"), _field(body, "new_organization_name"),
                                      email=email, password=password)
        else:
            meta = core.rename_tenant(_field(body, "organization_name"), _field(body, "new_organization_name"))
        return jsonify(meta.to_dict()), 200

    @app.route("/org/credentials", methods=["PUT"])
    def org_credentials():
        """body: { organization_name, email, password }"""
        body = _json_body()
        meta = core.update_tenant_credentials(_field(body, "organization_name"), _field(body, "email"), _field(body, "password"))
        return jsonify(meta.to_dict()), 200

    @app.route("/org/delete", methods=["DELETE"])
    def org_delete():
        name = (request.args.get("organization_name") or "").strip()
        if not name:
            raise ValidationError("organization_name required")
        token = _bearer_token()
        if not token:
            return _error_response("UNAUTHORIZED", "Authorization header required", "", 401)
        g.admin_id = core.delete_tenant(name, token)
        return jsonify({"message": "organization deleted", "organizationName": name}), 200

    @app.route("/admin/login", methods=["POST"])
    def admin_login():
        """body: { email, password } -> { token }"""
        body = _json_body()
        token = core.issue_token(_field(body, "email"), _field(body, "password"))
        return jsonify({"token": token, "expiresIn": core.tokens.lifetime_sec}), 200

    return app


if __name__ == "__main__":
    import os

    logging.basicConfig(level=logging.INFO)
    create_app().run(host="0.0.0.0", port=int(os.environ.get("GATEWAY_PORT", "8000")))
