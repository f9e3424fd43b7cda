# coding: utf8
from functools import wraps

from flask import request
from jsonschema import FormatChecker, validate
from jsonschema.exceptions import ValidationError as SchemaValidationError

from app.errors.exceptions import ForbiddenError, ValidationError
from app.services.auth import AuthService


def roles_required(*roles):
    """Reject the request with 403 unless the token role is one of ``roles``.

    Must sit below ``@jwt_required()`` so the token is already verified.
    """

    def wrapper(fn):
        @wraps(fn)
        def decorator(*args, **kwargs):
            actor = AuthService.get_current_actor()
            if actor.role not in roles:
                raise ForbiddenError(
                    message=f"Role '{actor.role}' is not allowed to access this resource"
                )
            return fn(*args, **kwargs)

        return decorator

    return wrapper


def parameters(**schema):
    def decorated(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            req_args = request.args.to_dict()
            if request.method in ("POST", "PUT", "PATCH", "DELETE") and request.is_json:
                body = request.get_json(silent=True)
                if body is None:
                    body = {}
                if not isinstance(body, dict):
                    raise ValidationError(message="Request body must be a JSON object")
                req_args.update(body)

            req_args = {
                k: v for k, v in req_args.items() if k in schema["properties"].keys()
            }

            for field in schema.get("required", []):
                if field not in req_args or req_args[field] in (None, ""):
                    raise ValidationError(message="{} is required".format(field))

            try:
                validate(
                    instance=req_args, schema=schema, format_checker=FormatChecker()
                )
            except SchemaValidationError as exp:
                field = ".".join(str(p) for p in exp.absolute_path) or None
                valid_values = exp.schema.get("enum", []) if isinstance(exp.schema, dict) else []
                if field:
                    message = f"Field '{field}' is not valid."
                else:
                    message = "Request parameters are invalid."
                if valid_values:
                    message += " Valid values: {}.".format(
                        ", ".join(str(v) for v in valid_values)
                    )
                raise ValidationError(message=message, errors=exp.message)

            new_args = args + (req_args,)
            return func(*new_args, **kwargs)

        return wrapper

    return decorated
