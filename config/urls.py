"""
URL configuration for the Billable platform
"""

from django.urls import include, path

urlpatterns = [
    path("billing/", include("apps.billing.urls")),
]
