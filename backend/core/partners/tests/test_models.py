from decimal import Decimal

from django.test import TestCase

from commission.tests.helpers import create_organization
from partners.models import Agent, CommissionTier, Employee, Misp, Posp
from partners.selectors import get_channel_partner, get_commission_tier, get_employee


class ChannelPartnerTermsTests(TestCase):
    def setUp(self):
        self.organization = create_organization("acme")
        self.manager = Employee.all_objects.create(
            organization=self.organization,
            name="Priya Raman",
            employee_code="EMP-001",
        )
        self.tier = CommissionTier.all_objects.create(
            organization=self.organization,
            name="Gold",
            base_percentage=Decimal("65.00"),
        )

    def test_agent_terms(self):
        agent = Agent.all_objects.create(
            organization=self.organization,
            name="Ravi Kumar",
            code="AG-1",
            override_percentage=Decimal("80.00"),
            base_percentage=Decimal("70.00"),
            commission_tier=self.tier,
            reporting_employee=self.manager,
        )

        terms = agent.to_terms()

        self.assertEqual(terms.partner_id, agent.id)
        self.assertEqual(terms.override_percentage, Decimal("80.00"))
        self.assertEqual(terms.base_percentage, Decimal("70.00"))
        self.assertEqual(terms.tier_percentage, Decimal("65.00"))
        self.assertEqual(terms.remainder_employee_id, self.manager.id)

    def test_misp_without_tier_or_hierarchy(self):
        misp = Misp.all_objects.create(organization=self.organization, name="Dealer Co", code="MS-1")

        terms = misp.to_terms()

        self.assertIsNone(terms.tier_percentage)
        self.assertIsNone(terms.remainder_employee_id)

    def test_associated_employee_backs_missing_reporting_employee(self):
        agent = Agent.all_objects.create(
            organization=self.organization,
            name="Ravi Kumar",
            code="AG-2",
            employee=self.manager,
        )

        self.assertEqual(agent.to_terms().remainder_employee_id, self.manager.id)

    def test_posp_terms_carry_only_the_partner(self):
        posp = Posp.all_objects.create(organization=self.organization, name="Kiran", code="PS-1")

        terms = posp.to_terms()

        self.assertEqual(terms.partner_id, posp.id)
        self.assertIsNone(terms.base_percentage)
        self.assertIsNone(terms.remainder_employee_id)


class PartnerSelectorTests(TestCase):
    def setUp(self):
        self.organization = create_organization("acme")
        self.other = create_organization("globex")

    def test_channel_partner_is_scoped_to_organization(self):
        agent = Agent.all_objects.create(organization=self.other, name="Elsewhere", code="AG-9")

        self.assertIsNone(
            get_channel_partner(organization=self.organization, channel="agent", partner_id=agent.id)
        )
        self.assertEqual(
            get_channel_partner(organization=self.other, channel="agent", partner_id=agent.id),
            agent,
        )

    def test_unknown_channel_or_missing_id(self):
        self.assertIsNone(get_channel_partner(organization=self.organization, channel="direct", partner_id=1))
        self.assertIsNone(get_channel_partner(organization=self.organization, channel="agent", partner_id=None))

    def test_employee_lookup(self):
        employee = Employee.all_objects.create(
            organization=self.organization,
            name="Priya Raman",
            employee_code="EMP-001",
        )

        self.assertEqual(get_employee(organization=self.organization, employee_id=employee.id), employee)
        self.assertIsNone(get_employee(organization=self.other, employee_id=employee.id))
        self.assertIsNone(get_employee(organization=self.organization, employee_id=None))

    def test_commission_tier_lookup_raises_for_other_organization(self):
        tier = CommissionTier.all_objects.create(organization=self.other, name="Gold")

        with self.assertRaises(CommissionTier.DoesNotExist):
            get_commission_tier(organization=self.organization, tier_id=tier.id)
