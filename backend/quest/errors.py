"""Error taxonomy shared by the game services and the HTTP layer.

Services raise these; blueprints translate them into JSON responses via
``error_response``. Nothing here knows about Socket.IO.
"""

from typing import Any

from flask import jsonify


class GameError(Exception):
    status_code = 400
    code = 'game_error'

    def __init__(self, message: str, details: Any = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        return build_error_payload(code=self.code, message=self.message, details=self.details)


class ValidationError(GameError):
    status_code = 400
    code = 'validation_error'


class AuthorizationError(GameError):
    status_code = 403
    code = 'forbidden'


class NotFoundError(GameError):
    status_code = 404
    code = 'not_found'


class ConflictError(GameError):
    status_code = 409
    code = 'conflict'


class InternalError(GameError):
    status_code = 500
    code = 'internal_error'


def build_error_payload(*, code: str, message: str, details: Any = None) -> dict:
    payload = {
        'success': False,
        'code': str(code).strip() or 'unknown_error',
        'message': str(message).strip() or 'Unknown error.',
        'details': details if details is not None else {},
    }
    # Older clients read "error"
    payload['error'] = payload['message']
    return payload


def error_response(exc: GameError):
    return jsonify(exc.to_dict()), int(exc.status_code)
