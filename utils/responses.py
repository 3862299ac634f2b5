from __future__ import annotations

from flask import Response, jsonify, request

from utils.errors import InvalidArgument


def json_body() -> dict:
    """Corpo JSON da requisição; ausente -> {}, não-objeto -> InvalidArgument."""
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise InvalidArgument("JSON object esperado")
    return data


def ok(data, status: int = 200):
    return jsonify(data), status


def created(data):
    return jsonify(data), 201


def no_content():
    return Response(status=204)
