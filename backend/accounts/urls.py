"""
Accounts app URL configuration.

Included in the project-level ``urls.py`` as::

    path('api/profile/', include('accounts.urls')),

Endpoint Map
------------
    POST   /bootstrap/   → ProfileViewSet.bootstrap
    GET    /me/          → ProfileViewSet.me
    PATCH  /area/        → ProfileViewSet.area
    PATCH  /location/    → ProfileViewSet.location
    POST   /fcm/         → ProfileViewSet.fcm
"""

from django.urls import include, path
from rest_framework.routers import SimpleRouter

from .views import ProfileViewSet

app_name = "accounts"

router = SimpleRouter()
router.register(r"", ProfileViewSet, basename="profile")

urlpatterns = [
    path("", include(router.urls)),
]
