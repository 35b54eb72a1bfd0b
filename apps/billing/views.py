# ===============================================================================
# BILLING VIEWS - STRIPE INVOICE DOWNLOADS
# ===============================================================================

from __future__ import annotations

import logging

from django.contrib.auth.decorators import login_required
from django.http import HttpRequest, HttpResponse
from django.views.decorators.http import require_GET

from .billable import BillableService

logger = logging.getLogger(__name__)


@login_required
@require_GET
def invoice_download(request: HttpRequest, invoice_id: str) -> HttpResponse:
    """
    📄 Download one of the current user's Stripe invoices as PDF

    Unknown invoices yield 404, invoices of other customers 403.
    """
    billing = BillableService(request.user)
    response = billing.download_invoice(invoice_id, {})

    logger.info(f"📄 Invoice {invoice_id} downloaded by user {request.user.pk}")
    return response
