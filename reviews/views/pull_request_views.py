from rest_framework import status
from rest_framework.decorators import api_view
from rest_framework.response import Response

from ..serializers import (
    PullRequestCreateInputSerializer,
    PullRequestIdInputSerializer,
    PullRequestSerializer,
    ReassignInputSerializer,
)
from ..services import PullRequestService
from .common import request_deadline, validated


@api_view(['POST'])
def pullrequest_create(request):
    """POST /pullRequest/create - Создать PR"""
    data = validated(PullRequestCreateInputSerializer, request.data)

    pr = PullRequestService().create_pull_request(
        data['pull_request_id'], data['pull_request_name'], data['author_id'],
        deadline=request_deadline(),
    )
    serializer = PullRequestSerializer(pr)

    return Response({
        'pr': serializer.data
    }, status=status.HTTP_201_CREATED)


@api_view(['GET'])
def pullrequest_get(request):
    """GET /pullRequest/get - Получить PR с ревьюверами"""
    data = validated(PullRequestIdInputSerializer, request.query_params)

    pr = PullRequestService().get_pull_request(data['pull_request_id'], deadline=request_deadline())
    serializer = PullRequestSerializer(pr)

    return Response({
        'pr': serializer.data
    })


@api_view(['POST'])
def pullrequest_merge(request):
    """POST /pullRequest/merge - Пометить PR как MERGED"""
    data = validated(PullRequestIdInputSerializer, request.data)

    pr = PullRequestService().merge_pull_request(data['pull_request_id'], deadline=request_deadline())
    serializer = PullRequestSerializer(pr)

    return Response({
        'pr': serializer.data
    })


@api_view(['POST'])
def pullrequest_reassign(request):
    """POST /pullRequest/reassign - Переназначить ревьювера"""
    data = validated(ReassignInputSerializer, request.data)

    pr, new_reviewer_id = PullRequestService().reassign_reviewer(
        data['pull_request_id'], data['old_user_id'], deadline=request_deadline()
    )
    serializer = PullRequestSerializer(pr)

    return Response({
        'pr': serializer.data,
        'replaced_by': new_reviewer_id
    })
