from rest_framework.decorators import api_view
from rest_framework.response import Response

from ..serializers import PullRequestShortSerializer, SetIsActiveInputSerializer, UserIdInputSerializer, UserSerializer
from ..services import UserService
from .common import request_deadline, validated


@api_view(['POST'])
def user_set_active(request):
    """POST /users/setIsActive - Установить флаг активности пользователя"""
    data = validated(SetIsActiveInputSerializer, request.data)

    user = UserService().set_user_active_status(data['user_id'], data['is_active'], deadline=request_deadline())
    serializer = UserSerializer(user)

    return Response({
        'user': serializer.data
    })


@api_view(['GET'])
def users_get_review(request):
    """GET /users/getReview - Получить PR'ы, где пользователь назначен ревьювером"""
    data = validated(UserIdInputSerializer, request.query_params)

    assigned_prs = UserService().get_user_review_assignments(data['user_id'], deadline=request_deadline())
    serializer = PullRequestShortSerializer(assigned_prs, many=True)

    return Response({
        'user_id': data['user_id'],
        'pull_requests': serializer.data
    })
