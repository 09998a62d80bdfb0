from decimal import Decimal
from unittest import mock

from django.db import DatabaseError
from django.test import TestCase

from commission.models import MotorPayoutGrid, PolicyCommission
from commission.services.commission_engine import recalculate_policy_commission
from commission.tests.helpers import (
    create_insurer,
    create_member,
    create_organization,
    create_policy,
    create_product,
)
from organizations.models import OrganizationMembership
from partners.models import CommissionTier


CALCULATE_URL = "/api/commission/calculate/"
COMMISSIONS_URL = "/api/commission/policy-commissions/"


class CommissionApiTestBase(TestCase):
    def setUp(self):
        self.organization = create_organization("acme")
        self.member = create_member(self.organization, "member", OrganizationMembership.ROLE_MEMBER)
        self.manager = create_member(self.organization, "manager", OrganizationMembership.ROLE_MANAGER)
        self.insurer = create_insurer(self.organization)
        self.product = create_product(self.insurer)
        self.grid = MotorPayoutGrid.all_objects.create(
            organization=self.organization,
            provider="Acko",
            first_year_rate=Decimal("10"),
        )

    def post(self, url, payload, *, user=None):
        self.client.force_login(user or self.member)
        return self.client.post(
            url,
            payload,
            content_type="application/json",
            HTTP_X_ORG_ID="acme",
        )

    def get(self, url, params=None, *, user=None):
        self.client.force_login(user or self.member)
        return self.client.get(url, params or {}, HTTP_X_ORG_ID="acme")


class CommissionCalculationApiTests(CommissionApiTestBase):
    def motor_quote(self, **overrides):
        payload = {
            "insurerId": self.insurer.id,
            "isRenewal": False,
            "policyDetails": {
                "lineOfBusiness": "Motor",
                "premiumAmount": "10000.00",
                "odPremium": "8000.00",
                "tpPremium": "2000.00",
            },
        }
        payload.update(overrides)
        return payload

    def test_quote_for_motor_policy(self):
        response = self.post(CALCULATE_URL, self.motor_quote())

        self.assertEqual(response.status_code, 200)
        payload = response.json()
        self.assertEqual(payload["commissionAmount"], "800.00")
        self.assertEqual(payload["rateUsed"], "10.0000")
        self.assertEqual(payload["ruleId"], str(self.grid.id))
        self.assertEqual(payload["gridTable"], "motor_payout_grid")
        self.assertEqual(payload["breakdown"]["odCommission"], "800.00")
        self.assertEqual(payload["breakdown"]["tpCommission"], "0.00")
        self.assertEqual(payload["breakdown"]["baseCommission"], "800.00")

    def test_line_of_business_defaults_from_product(self):
        payload = self.motor_quote(productId=self.product.id)
        del payload["policyDetails"]["lineOfBusiness"]

        response = self.post(CALCULATE_URL, payload)

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["commissionAmount"], "800.00")

    def test_line_of_business_or_product_is_required(self):
        payload = self.motor_quote()
        del payload["policyDetails"]["lineOfBusiness"]

        response = self.post(CALCULATE_URL, payload)

        self.assertEqual(response.status_code, 400)

    def test_no_matching_rule_returns_zero_quote(self):
        payload = self.motor_quote()
        payload["policyDetails"]["lineOfBusiness"] = "Health"

        response = self.post(CALCULATE_URL, payload)

        self.assertEqual(response.status_code, 404)
        body = response.json()
        self.assertEqual(body["commissionAmount"], "0.00")
        self.assertEqual(body["rateUsed"], "0.0000")
        self.assertTrue(body["unmatched"])
        self.assertTrue(body["error"])

    def test_rule_storage_failure_returns_503(self):
        with mock.patch(
            "commission.services.resolver._candidate_queryset",
            side_effect=DatabaseError("connection refused"),
        ):
            with self.assertLogs("commission", level="WARNING"):
                response = self.post(CALCULATE_URL, self.motor_quote())

        self.assertEqual(response.status_code, 503)
        body = response.json()
        self.assertFalse(body["unmatched"])
        self.assertEqual(body["commissionAmount"], "0.00")

    def test_insurer_of_another_organization_is_rejected(self):
        other = create_insurer(create_organization("globex"), name="Globex Assurance")

        response = self.post(CALCULATE_URL, self.motor_quote(insurerId=other.id))

        self.assertEqual(response.status_code, 400)

    def test_unknown_agent_tier_is_rejected(self):
        response = self.post(CALCULATE_URL, self.motor_quote(agentTierId=999999))

        self.assertEqual(response.status_code, 400)

    def test_known_agent_tier_is_accepted(self):
        tier = CommissionTier.all_objects.create(
            organization=self.organization,
            name="Gold",
            base_percentage=Decimal("75"),
        )

        response = self.post(CALCULATE_URL, self.motor_quote(agentTierId=tier.id))

        self.assertEqual(response.status_code, 200)

    def test_quote_does_not_persist_anything(self):
        self.post(CALCULATE_URL, self.motor_quote())

        self.assertFalse(PolicyCommission.all_objects.exists())

    def test_requires_authentication(self):
        response = self.client.post(
            CALCULATE_URL,
            self.motor_quote(),
            content_type="application/json",
            HTTP_X_ORG_ID="acme",
        )

        self.assertIn(response.status_code, (401, 403))


class PolicyCommissionApiTests(CommissionApiTestBase):
    def setUp(self):
        super().setUp()
        self.motor_policy = create_policy(
            self.insurer,
            product=self.product,
            od_premium=Decimal("8000.00"),
            tp_premium=Decimal("2000.00"),
        )

    def test_list_and_filter(self):
        recalculate_policy_commission(self.motor_policy)
        health_policy = create_policy(self.insurer, line_of_business="Health")
        recalculate_policy_commission(health_policy)

        response = self.get(COMMISSIONS_URL)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.json()), 2)

        response = self.get(COMMISSIONS_URL, {"status": "unmatched"})
        rows = response.json()
        self.assertEqual(len(rows), 1)
        self.assertEqual(rows[0]["policy"], health_policy.id)
        self.assertTrue(rows[0]["unmatched"])

        response = self.get(COMMISSIONS_URL, {"product_type": "motor"})
        self.assertEqual([row["policy"] for row in response.json()], [self.motor_policy.id])

        response = self.get(COMMISSIONS_URL, {"search": self.motor_policy.policy_number})
        self.assertEqual(len(response.json()), 1)

    def test_other_organization_records_are_hidden(self):
        other = create_organization("globex")
        other_policy = create_policy(create_insurer(other), line_of_business="Motor")
        recalculate_policy_commission(other_policy)

        response = self.get(COMMISSIONS_URL)

        self.assertEqual(response.json(), [])

    def test_manager_can_recalculate(self):
        response = self.post(
            f"{COMMISSIONS_URL}recalculate/",
            {"policy_id": self.motor_policy.id},
            user=self.manager,
        )

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["insurer_commission"], "800.00")
        self.assertEqual(response.json()["commission_status"], "CALCULATED")

    def test_member_cannot_recalculate(self):
        response = self.post(f"{COMMISSIONS_URL}recalculate/", {"policy_id": self.motor_policy.id})

        self.assertEqual(response.status_code, 403)
        self.assertFalse(PolicyCommission.all_objects.exists())

    def test_organization_override_lets_member_recalculate(self):
        self.organization.rbac_overrides = {"policy_commissions": {"POST": ["MEMBER", "MANAGER"]}}
        self.organization.save()

        response = self.post(f"{COMMISSIONS_URL}recalculate/", {"policy_id": self.motor_policy.id})

        self.assertEqual(response.status_code, 200)
        self.assertTrue(PolicyCommission.all_objects.filter(policy=self.motor_policy).exists())

    def test_recalculate_unknown_policy(self):
        response = self.post(
            f"{COMMISSIONS_URL}recalculate/",
            {"policy_id": 999999},
            user=self.manager,
        )

        self.assertEqual(response.status_code, 404)

    def test_resync(self):
        create_policy(self.insurer, line_of_business="Health")

        response = self.post(f"{COMMISSIONS_URL}resync/", {}, user=self.manager)

        self.assertEqual(response.status_code, 200)
        self.assertEqual(
            response.json(),
            {"scanned": 2, "calculated": 1, "unmatched": 1, "failed": 0},
        )

    def test_member_cannot_resync(self):
        response = self.post(f"{COMMISSIONS_URL}resync/", {})

        self.assertEqual(response.status_code, 403)

    def test_totals(self):
        recalculate_policy_commission(self.motor_policy)

        response = self.get(f"{COMMISSIONS_URL}totals/")

        self.assertEqual(response.status_code, 200)
        payload = response.json()
        self.assertEqual(payload["count"], 1)
        self.assertEqual(Decimal(payload["total_insurer_commission"]), Decimal("800"))
        self.assertEqual(Decimal(payload["total_broker_share"]), Decimal("800"))
        self.assertEqual(Decimal(payload["total_agent_commission"]), Decimal("0"))

    def test_records_are_read_only(self):
        record = recalculate_policy_commission(self.motor_policy)
        self.client.force_login(self.manager)

        response = self.client.delete(f"{COMMISSIONS_URL}{record.id}/", HTTP_X_ORG_ID="acme")

        self.assertIn(response.status_code, (403, 405))
