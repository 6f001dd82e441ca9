"""Standardized API response helpers.

Envelope: ``{"success": bool, "data"?: ..., "error"?: str, "code"?: str}``
"""

from flask import jsonify


def api_success(data=None, status_code=200, include_null=False):
    """Create a standardized success response.

    Args:
        data: Response data (optional)
        status_code: HTTP status code (default: 200)
        include_null: Emit ``"data": null`` when data is None

    Returns:
        Tuple of (JSON response, status code)

    Example:
        return api_success(data={"sent": True})
        # Returns: ({"success": True, "data": {"sent": True}}, 200)
    """
    response = {"success": True}

    if data is not None or include_null:
        response["data"] = data

    return jsonify(response), status_code


def api_error(message, code=None, status_code=400):
    """Create a standardized error response.

    Args:
        message: Error message (required)
        code: Error code like "VALIDATION_ERROR", "NOT_FOUND" (optional)
        status_code: HTTP status code (default: 400)

    Returns:
        Tuple of (JSON response, status code)

    Example:
        return api_error("Email not found", code="NOT_FOUND", status_code=404)
        # Returns: ({"success": False, "error": "Email not found", "code": "NOT_FOUND"}, 404)
    """
    response = {"success": False, "error": message}

    if code:
        response["code"] = code

    return jsonify(response), status_code
