from flask import jsonify
from werkzeug.exceptions import HTTPException

from extensions import db


class ApiError(Exception):
    """Erro de domínio com tipo e status HTTP associados."""

    kind = "internal"
    status_code = 500

    def __init__(self, message: str = "", detail=None):
        super().__init__(message or self.kind)
        self.message = message or self.kind
        self.detail = detail

    def to_payload(self) -> dict:
        payload = {"error_kind": self.kind, "message": self.message}
        if self.detail is not None:
            payload["detail"] = self.detail
        return payload


class InvalidArgument(ApiError):
    kind = "invalid_argument"
    status_code = 400


class Unauthenticated(ApiError):
    kind = "unauthenticated"
    status_code = 401


class PermissionDenied(ApiError):
    kind = "permission_denied"
    status_code = 403


class NotFound(ApiError):
    kind = "not_found"
    status_code = 404


class Conflict(ApiError):
    kind = "conflict"
    status_code = 409


class Internal(ApiError):
    kind = "internal"
    status_code = 500


_HTTP_KINDS = {
    400: "invalid_argument",
    401: "unauthenticated",
    403: "permission_denied",
    404: "not_found",
    405: "method_not_allowed",
    409: "conflict",
    422: "invalid_argument",
    429: "rate_limited",
}


def error_response(kind: str, message: str, status: int, detail=None):
    payload = {"error_kind": kind, "message": message}
    if detail is not None:
        payload["detail"] = detail
    return jsonify(payload), status


def register_error_handlers(app):
    """Registra handlers globais de erro para retornar JSON padronizado."""

    @app.errorhandler(ApiError)
    def api_error(e: ApiError):
        if e.status_code >= 500:
            app.logger.error("%s: %s", e.kind, e.message)
        return jsonify(e.to_payload()), e.status_code

    @app.errorhandler(HTTPException)
    def http_error(e: HTTPException):
        kind = _HTTP_KINDS.get(e.code, "internal")
        return error_response(kind, e.description or e.name, e.code)

    @app.errorhandler(Exception)
    def unhandled_exception(e):
        # loga no console para debug (não expõe stack trace no cliente)
        app.logger.exception("Unhandled Exception: %s", e)
        db.session.rollback()
        err = Internal("Internal Server Error")
        return jsonify(err.to_payload()), err.status_code
