"""
Dashboard endpoints.

``summary`` is computed live (cached for a minute); ``daily-stats``
returns the end-of-day snapshots written by ``snapshot_daily_stats``.
"""
from __future__ import annotations

from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from clinic.models import DailyStats
from clinic.services.dashboard import dashboard_summary, format_daily_stats


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def summary(request):
    return Response({'ok': True, 'data': dashboard_summary()})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def daily_stats(request):
    try:
        days = min(max(int(request.query_params.get('days', 30)), 1), 366)
    except ValueError:
        days = 30
    rows = DailyStats.objects.order_by('-date')[:days]
    return Response({'ok': True, 'data': [format_daily_stats(r) for r in rows]})
