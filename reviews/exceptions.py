import enum
import logging
from http import HTTPStatus

from rest_framework import exceptions, status
from rest_framework.response import Response
from rest_framework.settings import api_settings
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)

INVALID_BODY_MESSAGE = 'Invalid request body'


class ErrorCode(str, enum.Enum):
    TEAM_EXISTS = 'TEAM_EXISTS'
    PR_EXISTS = 'PR_EXISTS'
    PR_MERGED = 'PR_MERGED'
    NOT_ASSIGNED = 'NOT_ASSIGNED'
    NO_CANDIDATE = 'NO_CANDIDATE'
    NOT_FOUND = 'NOT_FOUND'
    VALIDATION_ERROR = 'VALIDATION_ERROR'
    DEADLINE_EXCEEDED = 'DEADLINE_EXCEEDED'
    INTERNAL_ERROR = 'INTERNAL_ERROR'


class ReviewServiceError(Exception):
    """
    Базовая ошибка сервисов ревью

    Каждый наследник соответствует одному коду ошибки и HTTP статусу.
    """
    code = ErrorCode.INTERNAL_ERROR
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = 'Internal server error'

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)


class TeamExists(ReviewServiceError):
    code = ErrorCode.TEAM_EXISTS
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = 'team_name already exists'


class PRExists(ReviewServiceError):
    code = ErrorCode.PR_EXISTS
    status_code = status.HTTP_409_CONFLICT
    default_message = 'PR id already exists'


class PRMerged(ReviewServiceError):
    code = ErrorCode.PR_MERGED
    status_code = status.HTTP_409_CONFLICT
    default_message = 'cannot reassign on merged PR'


class NotAssigned(ReviewServiceError):
    code = ErrorCode.NOT_ASSIGNED
    status_code = status.HTTP_409_CONFLICT
    default_message = 'reviewer is not assigned to this PR'


class NoCandidate(ReviewServiceError):
    code = ErrorCode.NO_CANDIDATE
    status_code = status.HTTP_409_CONFLICT
    default_message = 'no active replacement candidate in team'


class NotFound(ReviewServiceError):
    code = ErrorCode.NOT_FOUND
    status_code = status.HTTP_404_NOT_FOUND
    default_message = 'resource not found'


class DeadlineExceeded(ReviewServiceError):
    code = ErrorCode.DEADLINE_EXCEEDED
    status_code = status.HTTP_504_GATEWAY_TIMEOUT
    default_message = 'operation deadline exceeded'


class InternalError(ReviewServiceError):
    """Сбой хранилища. Сообщение никогда не содержит деталей исходной ошибки"""

    def __init__(self, message=None):
        super().__init__(None)


def error_body(code, message):
    return {
        'error': {
            'code': code.value if isinstance(code, ErrorCode) else code,
            'message': message,
        }
    }


def error_response(code, message, http_status):
    return Response(error_body(code, message), status=http_status)


def review_exception_handler(exc, context):
    """
    Обработчик исключений DRF: любая ошибка отдается как {"error": {"code", "message"}}

    Ошибки сервисов несут свой код и статус. Ошибки валидации и разбора тела
    становятся VALIDATION_ERROR, остальные исключения DRF сохраняют свой статус.
    Все прочее - INTERNAL_ERROR без деталей.
    """
    if isinstance(exc, ReviewServiceError):
        if isinstance(exc, InternalError):
            logger.error("Internal error on %s: %r", _request_path(context), exc.__cause__)
        return error_response(exc.code, exc.message, exc.status_code)

    response = exception_handler(exc, context)
    if response is not None:
        response.data = _drf_error_body(exc, response.status_code)
        return response

    logger.error("Unhandled error on %s", _request_path(context), exc_info=exc)
    return error_response(
        ErrorCode.INTERNAL_ERROR,
        InternalError.default_message,
        status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


def _drf_error_body(exc, status_code):
    if isinstance(exc, exceptions.ValidationError):
        return error_body(ErrorCode.VALIDATION_ERROR, describe_validation_errors(exc.detail))
    if status_code == status.HTTP_400_BAD_REQUEST:
        return error_body(ErrorCode.VALIDATION_ERROR, INVALID_BODY_MESSAGE)
    if status_code == status.HTTP_404_NOT_FOUND:
        return error_body(ErrorCode.NOT_FOUND, NotFound.default_message)

    code = getattr(exc, 'default_code', 'error').upper()
    return error_body(code, HTTPStatus(status_code).phrase)


def describe_validation_errors(detail):
    """
    Первая ошибка валидации в виде 'members.1.username: This field is required.'

    Ошибка уровня всего тела (например, JSON не объект) - INVALID_BODY_MESSAGE.
    """
    found = _first_error(detail, ())
    if found is None:
        return INVALID_BODY_MESSAGE

    path, message = found
    if not path:
        return INVALID_BODY_MESSAGE
    return f"{'.'.join(path)}: {message}"


def _first_error(detail, path):
    if isinstance(detail, dict):
        for key, value in detail.items():
            key_path = path if key == api_settings.NON_FIELD_ERRORS_KEY else path + (str(key),)
            found = _first_error(value, key_path)
            if found is not None:
                return found
        return None

    if isinstance(detail, list):
        for index, value in enumerate(detail):
            item_path = path + (str(index),) if isinstance(value, (dict, list)) else path
            found = _first_error(value, item_path)
            if found is not None:
                return found
        return None

    return path, str(detail)


def _request_path(context):
    request = context.get('request') if context else None
    return request.path if request is not None else '<unknown>'
