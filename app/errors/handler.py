# coding: utf8
import traceback

from flask import jsonify
from flask_jwt_extended.exceptions import JWTExtendedException
from jwt.exceptions import PyJWTError
from sqlalchemy.orm.exc import StaleDataError
from werkzeug.exceptions import HTTPException

from app.errors.exceptions import ApiError, ConcurrencyError
from app.extensions import db
from app.lib.logger import logger


def build_error_response(error):
    if isinstance(error, StaleDataError):
        db.session.rollback()
        error = ConcurrencyError()

    if isinstance(error, ApiError):
        if error.status >= 500:
            logger.error(f"{error.__class__.__name__}: {error.message}")
        return error.to_dict(), error.status

    if isinstance(error, HTTPException):
        return {"success": False, "message": error.description, "data": {}}, error.code

    db.session.rollback()
    logger.error(f"Unhandled exception: {error}\n{traceback.format_exc()}")
    return {"success": False, "message": "Internal Server Error", "data": {}}, 500


def api_error_handler(error):
    body, status = build_error_response(error)
    return jsonify(body), status


def restx_error_handler(error):
    # Token errors belong to the JWTManager callbacks registered on the app.
    if isinstance(error, (JWTExtendedException, PyJWTError)):
        raise error
    return build_error_response(error)
