# accounting/api/views/accounts.py

from __future__ import annotations

from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.generics import GenericAPIView
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from accounting.api.serializers import AccountSerializer
from accounting.models.account import Account
from accounting.services.account_resolver import get_active_chart
from accounting.services.exceptions import AccountResolutionError


class ActiveChartAccountsView(GenericAPIView):
    """
    Accounts of the active chart (read-only master data).
    """

    permission_classes = [IsAuthenticated]
    serializer_class = AccountSerializer

    @extend_schema(tags=["accounting"], responses=AccountSerializer(many=True))
    def get(self, request):
        try:
            chart = get_active_chart()
        except AccountResolutionError as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)

        qs = Account.objects.filter(chart=chart, is_active=True).order_by("code")
        return Response(AccountSerializer(qs, many=True).data, status=status.HTTP_200_OK)
