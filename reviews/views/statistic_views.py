from rest_framework.decorators import api_view
from rest_framework.response import Response

from ..serializers import StatsSerializer
from ..services import StatsService
from .common import request_deadline


@api_view(['GET'])
def stats_overview(request):
    """GET /statistic - Статистика назначений по пользователям и PR"""
    stats = StatsService().get_review_stats(deadline=request_deadline())
    return Response(StatsSerializer(stats).data)
