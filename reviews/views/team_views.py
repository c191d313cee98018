from rest_framework import status
from rest_framework.decorators import api_view
from rest_framework.response import Response

from ..serializers import (
    BulkDeactivateInputSerializer,
    BulkDeactivateResultSerializer,
    TeamAddInputSerializer,
    TeamNameInputSerializer,
    TeamSerializer,
)
from ..services import TeamService
from .common import request_deadline, validated


@api_view(['POST'])
def team_add(request):
    """POST /team/add - Создать команду с участниками"""
    data = validated(TeamAddInputSerializer, request.data)

    team = TeamService().create_team_with_members(
        data['team_name'], data.get('members', []), deadline=request_deadline()
    )
    serializer = TeamSerializer(team)

    return Response({
        'team': serializer.data
    }, status=status.HTTP_201_CREATED)


@api_view(['GET'])
def team_get(request):
    """GET /team/get - Получить команду с участниками"""
    data = validated(TeamNameInputSerializer, request.query_params)

    team = TeamService().get_team_with_members(data['team_name'], deadline=request_deadline())
    serializer = TeamSerializer(team)

    return Response(serializer.data)


@api_view(['POST'])
def team_bulk_deactivate(request):
    """POST /team/bulkDeactivate - Деактивировать участников и переназначить их открытые ревью"""
    data = validated(BulkDeactivateInputSerializer, request.data)

    result = TeamService().bulk_deactivate_team_members(
        data['team_name'], data.get('user_ids'), deadline=request_deadline()
    )

    return Response(BulkDeactivateResultSerializer(result).data)
