# Overview: Maps service-layer errors to JSON error responses for all blueprints.

from flask import current_app, jsonify

from ..services.catalog_service import InsufficientStockError
from ..services.order_status import ReturnDetailRequired
from ..validation import ConflictError, NotFoundError, PersistenceError, ValidationError


def json_error(exc: Exception, action: str):
    """
    Translate an exception raised while performing `action` into (body, status).

    Order matters: ReturnDetailRequired is a ValidationError and
    InsufficientStockError is a ConflictError.
    """
    if isinstance(exc, ReturnDetailRequired):
        return jsonify({
            "error": str(exc),
            "needs_return_detail": True,
            "from_status": exc.from_status,
            "to_status": exc.to_status,
            "prefill": exc.prefill.to_dict(),
        }), 422
    if isinstance(exc, InsufficientStockError):
        return jsonify({
            "error": str(exc),
            "product_id": exc.product_id,
            "stock": exc.stock,
            "requested": -exc.delta,
        }), 409
    if isinstance(exc, ConflictError):
        return jsonify({"error": str(exc)}), 409
    if isinstance(exc, NotFoundError):
        return jsonify({"error": str(exc)}), 404
    if isinstance(exc, ValidationError):
        return jsonify({"error": str(exc)}), 400
    if isinstance(exc, PersistenceError):
        current_app.logger.error("Failed to %s: %s", action, exc)
        return jsonify({"error": "Could not save changes; nothing was applied"}), 503

    current_app.logger.exception("Failed to %s", action)
    return jsonify({"error": "Internal server error"}), 500
