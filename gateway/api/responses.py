"""
API response helpers.

Successful responses carry the resource itself as the JSON body; errors
always use ``{"success": false, "error": "<message>"}``.
"""

from typing import Any

from flask import jsonify, Response


def api_json(data: Any, status_code: int = 200) -> tuple[Response, int]:
    """
    Return ``data`` as the JSON body.

    Args:
        data: Serializable body (dict or list)
        status_code: HTTP status code

    Returns:
        Tuple of (response, status_code)
    """
    return jsonify(data), status_code


def api_no_content() -> tuple[str, int]:
    return "", 204


def api_error(message: str, status_code: int = 400, details: Any = None) -> tuple[Response, int]:
    """
    Create a standardized error API response.

    Args:
        message: Error message, safe to show to the caller
        status_code: HTTP status code
        details: Optional error details

    Returns:
        Tuple of (response, status_code)
    """
    response = {"success": False, "error": message}
    if details:
        response["details"] = details
    return jsonify(response), status_code
