# ===============================================================================
# BILLING APP URLS - STRIPE INVOICES
# ===============================================================================

from django.urls import path

from . import views

app_name = "billing"

urlpatterns = [
    path("invoices/<str:invoice_id>/download/", views.invoice_download, name="invoice_download"),
]
