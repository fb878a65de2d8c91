from __future__ import annotations

import logging
from functools import wraps

from flask import jsonify

from ..core.exceptions import ConflictError, DomainError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)


def json_errors(view):
    """Map domain errors to JSON error responses; nothing escapes as a crash."""

    @wraps(view)
    def wrapper(*args, **kwargs):
        try:
            return view(*args, **kwargs)
        except ValidationError as e:
            return jsonify({"success": False, "message": str(e)}), 400
        except NotFoundError as e:
            return jsonify({"success": False, "message": str(e)}), 404
        except ConflictError as e:
            return jsonify({"success": False, "message": str(e)}), 409
        except DomainError as e:
            return jsonify({"success": False, "message": str(e)}), 422
        except Exception:
            logger.exception("Unhandled error in %s", view.__name__)
            return jsonify({"success": False, "message": "Internal server error"}), 500

    return wrapper
