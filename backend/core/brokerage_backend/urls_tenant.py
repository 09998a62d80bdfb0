from django.http import JsonResponse
from django.urls import include, path
from rest_framework.authtoken.views import obtain_auth_token


def healthz(_request):
    return JsonResponse({"status": "ok"})


urlpatterns = [
    path("healthz/", healthz, name="healthz"),
    # Auth tables live in the public schema and are shared by every organization.
    path("api/auth/token/", obtain_auth_token, name="api-token-auth"),
    path("api/commission/", include("commission.urls")),
]
