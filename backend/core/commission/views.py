from __future__ import annotations

import logging
from decimal import Decimal

from django.db import models
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response
from rest_framework.views import APIView

from commission.models import PolicyCommission
from commission.serializers import (
    CommissionQuoteRequestSerializer,
    CommissionQuoteResponseSerializer,
    PolicyCommissionSerializer,
    RecalculateRequestSerializer,
    ResyncRequestSerializer,
)
from commission.services.commission_engine import (
    calculate_commission_quote,
    recalculate_policy_commission,
    resync_commissions,
)
from commission.services.types import CommissionLookupError, NoRuleFound
from insurance_core.models import InsuranceProduct, Insurer, Policy
from insurance_core.selectors.policy_selector import get_policy
from partners.models import CommissionTier
from tenancy.permissions import IsTenantRoleAllowed


logger = logging.getLogger(__name__)

_TOTAL_FIELDS = (
    "premium_amount",
    "insurer_commission",
    "agent_commission",
    "misp_commission",
    "employee_commission",
    "reporting_employee_commission",
    "broker_share",
)


def _zero_quote(error: str, *, unmatched: bool) -> dict:
    return {
        "commissionAmount": "0.00",
        "rateUsed": "0.0000",
        "unmatched": unmatched,
        "error": error,
    }


class CommissionCalculationView(APIView):
    permission_classes = [IsTenantRoleAllowed]
    tenant_resource_key = "commission_calculations"

    def post(self, request):
        serializer = CommissionQuoteRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            quote = calculate_commission_quote(request.organization, serializer.validated_data)
        except (Insurer.DoesNotExist, InsuranceProduct.DoesNotExist, CommissionTier.DoesNotExist) as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)
        except NoRuleFound as exc:
            return Response(_zero_quote(str(exc), unmatched=True), status=status.HTTP_404_NOT_FOUND)
        except CommissionLookupError as exc:
            logger.warning(
                "commission.quote.failed organization_id=%s error=%s",
                request.organization.id,
                exc,
            )
            return Response(
                _zero_quote(str(exc), unmatched=False),
                status=status.HTTP_503_SERVICE_UNAVAILABLE,
            )

        return Response(CommissionQuoteResponseSerializer(quote).data, status=status.HTTP_200_OK)


class PolicyCommissionViewSet(viewsets.ReadOnlyModelViewSet):
    serializer_class = PolicyCommissionSerializer
    permission_classes = [IsTenantRoleAllowed]
    tenant_resource_key = "policy_commissions"

    def get_queryset(self):
        organization = getattr(self.request, "organization", None)
        if organization is None:
            return PolicyCommission.objects.none()

        queryset = (
            PolicyCommission.all_objects.filter(organization=organization)
            .select_related("policy")
            .order_by("-calc_date", "-id")
        )

        params = self.request.query_params
        product_type = (params.get("product_type") or "").strip()
        if product_type:
            queryset = queryset.filter(product_type__iexact=product_type)

        provider = (params.get("provider") or "").strip()
        if provider:
            queryset = queryset.filter(provider__icontains=provider)

        source_type = (params.get("source_type") or "").strip().lower()
        if source_type:
            queryset = queryset.filter(source_type=source_type)

        status_filter = (params.get("status") or "").strip().upper()
        if status_filter:
            queryset = queryset.filter(commission_status=status_filter)

        search = (params.get("search") or "").strip()
        if search:
            queryset = queryset.filter(
                models.Q(policy__policy_number__icontains=search) | models.Q(provider__icontains=search)
            )

        return queryset

    @action(detail=False, methods=["post"], url_path="recalculate")
    def recalculate(self, request):
        serializer = RecalculateRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            policy = get_policy(
                organization=request.organization,
                policy_id=serializer.validated_data["policy_id"],
            )
        except Policy.DoesNotExist:
            return Response({"detail": "Policy not found."}, status=status.HTTP_404_NOT_FOUND)

        record = recalculate_policy_commission(policy)
        return Response(self.get_serializer(record).data, status=status.HTTP_200_OK)

    @action(detail=False, methods=["post"], url_path="resync")
    def resync(self, request):
        serializer = ResyncRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        summary = resync_commissions(
            request.organization,
            policy_ids=serializer.validated_data.get("policy_ids"),
        )
        return Response(
            {
                "scanned": summary.scanned,
                "calculated": summary.calculated,
                "unmatched": summary.unmatched,
                "failed": summary.failed,
            },
            status=status.HTTP_200_OK,
        )

    @action(detail=False, methods=["get"], url_path="totals")
    def totals(self, request):
        aggregates = self.get_queryset().aggregate(
            count=models.Count("id"),
            **{f"total_{name}": models.Sum(name) for name in _TOTAL_FIELDS},
        )
        payload = {"count": aggregates.pop("count")}
        for key, value in aggregates.items():
            payload[key] = str(value if value is not None else Decimal("0.00"))
        return Response(payload, status=status.HTTP_200_OK)
