import time

from django.conf import settings


def request_deadline():
    """Монотонный дедлайн текущего запроса, из REQUEST_TIMEOUT_SECONDS"""
    return time.monotonic() + settings.REQUEST_TIMEOUT_SECONDS


def validated(serializer_class, data):
    """
    Валидирует входные данные запроса

    Невалидные данные (в том числе тело, не являющееся JSON объектом)
    поднимают ValidationError, которая отдается как VALIDATION_ERROR.
    """
    serializer = serializer_class(data=data)
    serializer.is_valid(raise_exception=True)
    return serializer.validated_data
