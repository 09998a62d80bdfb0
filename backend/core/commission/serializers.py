from __future__ import annotations

from rest_framework import serializers

from commission.models import PolicyCommission


class PolicyDetailsInputSerializer(serializers.Serializer):
    lineOfBusiness = serializers.CharField(source="line_of_business", max_length=60, required=False, allow_blank=True)
    premiumAmount = serializers.DecimalField(
        source="premium_amount", max_digits=14, decimal_places=2, min_value=0
    )
    odPremium = serializers.DecimalField(
        source="od_premium", max_digits=14, decimal_places=2, min_value=0, required=False
    )
    tpPremium = serializers.DecimalField(
        source="tp_premium", max_digits=14, decimal_places=2, min_value=0, required=False
    )
    vehicleType = serializers.CharField(source="vehicle_type", required=False, allow_blank=True)
    policyTerm = serializers.IntegerField(source="policy_term", min_value=0, required=False)
    premiumPaymentTerm = serializers.IntegerField(
        source="premium_payment_term", min_value=0, required=False
    )
    planType = serializers.CharField(source="plan_type", required=False, allow_blank=True)
    paymentFrequency = serializers.CharField(source="payment_frequency", required=False, allow_blank=True)
    sumAssured = serializers.DecimalField(
        source="sum_assured", max_digits=16, decimal_places=2, min_value=0, required=False
    )
    productCategory = serializers.CharField(source="product_category", required=False, allow_blank=True)


class CommissionQuoteRequestSerializer(serializers.Serializer):
    insurerId = serializers.IntegerField(source="insurer_id")
    productId = serializers.IntegerField(source="product_id", required=False, allow_null=True)
    agentTierId = serializers.IntegerField(source="agent_tier_id", required=False, allow_null=True)
    isRenewal = serializers.BooleanField(source="is_renewal", default=False)
    evaluationDate = serializers.DateField(source="evaluation_date", required=False, allow_null=True)
    policyDetails = PolicyDetailsInputSerializer(source="policy_details")

    def validate(self, attrs):
        details = attrs.get("policy_details") or {}
        if not details.get("line_of_business") and not attrs.get("product_id"):
            raise serializers.ValidationError(
                {"policyDetails": "lineOfBusiness is required when productId is not given."}
            )
        return attrs


class CommissionQuoteResponseSerializer(serializers.Serializer):
    commissionAmount = serializers.DecimalField(
        source="commission_amount", max_digits=14, decimal_places=2
    )
    rateUsed = serializers.DecimalField(source="rate_used", max_digits=9, decimal_places=4)
    ruleId = serializers.SerializerMethodField()
    gridTable = serializers.CharField(source="row.table")
    breakdown = serializers.SerializerMethodField()

    def get_ruleId(self, obj) -> str:
        return str(obj.row.row_id)

    def get_breakdown(self, obj) -> dict:
        return obj.breakdown.as_dict()


class PolicyCommissionSerializer(serializers.ModelSerializer):
    policy_number = serializers.CharField(source="policy.policy_number", read_only=True)
    unmatched = serializers.SerializerMethodField()

    class Meta:
        model = PolicyCommission
        fields = (
            "id",
            "policy",
            "policy_number",
            "product_type",
            "provider",
            "source_type",
            "premium_amount",
            "commission_rate",
            "reward_rate",
            "bonus_rate",
            "total_rate",
            "commission_amount",
            "insurer_commission",
            "agent_commission",
            "misp_commission",
            "employee_commission",
            "reporting_employee_commission",
            "broker_share",
            "agent",
            "misp",
            "posp",
            "employee",
            "reporting_employee",
            "percentage_source",
            "channel_percentage",
            "grid_table",
            "grid_id",
            "commission_status",
            "unmatched",
            "error_message",
            "breakdown",
            "calc_date",
        )
        read_only_fields = fields

    def get_unmatched(self, obj) -> bool:
        return obj.commission_status == PolicyCommission.Status.UNMATCHED


class RecalculateRequestSerializer(serializers.Serializer):
    policy_id = serializers.IntegerField()


class ResyncRequestSerializer(serializers.Serializer):
    policy_ids = serializers.ListField(
        child=serializers.IntegerField(),
        required=False,
        allow_empty=False,
    )
