"""
Cases app URL configuration.

Included in the project-level ``urls.py`` as::

    path('api/cases/', include('cases.urls')),

See ``cases.views`` for the endpoint map.
"""

from django.urls import include, path
from rest_framework.routers import SimpleRouter

from .views import CaseViewSet

app_name = "cases"

router = SimpleRouter()
router.register(r"", CaseViewSet, basename="case")

urlpatterns = [
    path("", include(router.urls)),
]
