from django.urls import include, path
from rest_framework.routers import DefaultRouter

from commission.views import CommissionCalculationView, PolicyCommissionViewSet

router = DefaultRouter()
router.register(r"policy-commissions", PolicyCommissionViewSet, basename="policy-commission")

urlpatterns = [
    path("calculate/", CommissionCalculationView.as_view(), name="commission-calculate"),
    path("", include(router.urls)),
]
