# ===============================================================================
# PDF GENERATOR FOR STRIPE INVOICES
# ===============================================================================

from __future__ import annotations

from io import BytesIO
from typing import TYPE_CHECKING, Any

from django.http import HttpResponse
from django.utils.translation import gettext as _t
from reportlab.lib.pagesizes import A4
from reportlab.lib.units import cm
from reportlab.pdfgen import canvas

from . import config

if TYPE_CHECKING:
    from .invoice import Invoice, InvoiceItem


class InvoicePDFGenerator:
    """
    Renders a Stripe invoice into a downloadable PDF.

    ``data`` carries the vendor block (``vendor``, ``product``, ``street``,
    ``location``, ``phone``, ``url``, ``vat``) and overrides the configured
    ``BILLING_VENDOR`` values key by key.
    """

    def __init__(self, invoice: Invoice, data: dict[str, Any]) -> None:
        self.invoice = invoice
        self.data = {**config.get_vendor_details(), **(data or {})}
        self.buffer = BytesIO()
        self.canvas = canvas.Canvas(self.buffer, pagesize=A4)
        self.width, self.height = A4

    def generate_response(self, filename: str | None = None) -> HttpResponse:
        """Generate complete PDF response with proper headers."""
        self.render()

        response = HttpResponse(self.buffer.getvalue(), content_type="application/pdf")
        response["Content-Disposition"] = f'attachment; filename="{filename or self._get_filename()}"'
        response["Content-Length"] = str(len(response.content))
        return response

    def render(self) -> bytes:
        """Draw the whole document and return the PDF bytes."""
        self._setup_document_header()
        self._render_vendor_information()
        self._render_client_information()
        current_y = self._render_items_table()
        self._render_totals_section(current_y)
        self._render_document_footer()
        self.canvas.showPage()
        self.canvas.save()

        self.buffer.seek(0)
        return self.buffer.getvalue()

    def _get_filename(self) -> str:
        product = str(self.data.get("product") or "invoice").lower().replace(" ", "_")
        date = self.invoice.date()
        suffix = date.strftime("%B_%Y").lower() if date else self.invoice.id
        return f"{product}_{suffix}.pdf"

    def _setup_document_header(self) -> None:
        self.canvas.setFont("Helvetica-Bold", 24)
        self.canvas.drawString(2 * cm, self.height - 3 * cm, str(self.data.get("vendor") or ""))

        self.canvas.setFont("Helvetica-Bold", 16)
        self.canvas.drawString(2 * cm, self.height - 4 * cm, str(_t("Receipt")))

        self.canvas.setFont("Helvetica", 12)
        self.canvas.drawString(
            2 * cm, self.height - 5 * cm, str(_t("Invoice: {number}")).format(number=self.invoice.id)
        )

        date = self.invoice.date()
        if date:
            self.canvas.drawString(
                2 * cm, self.height - 5.5 * cm, str(_t("Date: {date}")).format(date=date.strftime("%d.%m.%Y"))
            )

    def _render_vendor_information(self) -> None:
        y_pos = self.height - 8 * cm

        self.canvas.setFont("Helvetica-Bold", 14)
        self.canvas.drawString(2 * cm, y_pos, str(self.data.get("product") or ""))

        self.canvas.setFont("Helvetica", 10)
        offset = 0.5
        for key in ("street", "location", "phone", "url", "vat"):
            if value := self.data.get(key):
                self.canvas.drawString(2 * cm, y_pos - offset * cm, str(value))
                offset += 0.5

    def _render_client_information(self) -> None:
        y_pos = self.height - 8 * cm

        self.canvas.setFont("Helvetica-Bold", 14)
        self.canvas.drawString(11 * cm, y_pos, str(_t("Billed to:")))

        self.canvas.setFont("Helvetica", 10)
        self.canvas.drawString(11 * cm, y_pos - 0.5 * cm, str(getattr(self.invoice.owner, "email", "") or ""))

    def _render_items_table(self) -> float:
        table_y = self.height - 13 * cm

        self.canvas.setFont("Helvetica-Bold", 10)
        self.canvas.drawString(2 * cm, table_y, str(_t("Description")))
        self.canvas.drawString(10 * cm, table_y, str(_t("Period")))
        self.canvas.drawString(15 * cm, table_y, str(_t("Amount")))
        self.canvas.line(2 * cm, table_y - 0.3 * cm, 18 * cm, table_y - 0.3 * cm)

        self.canvas.setFont("Helvetica", 9)
        current_y = table_y - 0.8 * cm
        for item in [*self.invoice.invoice_items(), *self.invoice.subscriptions()]:
            self._render_item(item, current_y)
            current_y -= 0.5 * cm

        return current_y

    def _render_item(self, item: InvoiceItem, y_pos: float) -> None:
        description = item.item.get("description") or ""
        self.canvas.drawString(2 * cm, y_pos, str(description)[:45])  # Truncate long descriptions

        if item.is_subscription():
            start, end = item.start_date(), item.end_date()
            if start and end:
                self.canvas.drawString(
                    10 * cm, y_pos, f"{start.strftime('%d.%m.%Y')} - {end.strftime('%d.%m.%Y')}"
                )

        self.canvas.drawString(15 * cm, y_pos, item.total())

    def _render_totals_section(self, current_y: float) -> None:
        totals_y = current_y - 1 * cm

        self.canvas.setFont("Helvetica", 11)
        lines = [str(_t("Subtotal: {amount}")).format(amount=self.invoice.subtotal())]

        if self.invoice.has_discount():
            if self.invoice.discount_is_percentage():
                label = str(_t("Discount {coupon} ({percent}% off): -{amount}"))
            else:
                label = str(_t("Discount {coupon}: -{amount}"))
            lines.append(
                label.format(
                    coupon=self.invoice.coupon() or "",
                    percent=self.invoice.percent_off(),
                    amount=self.invoice.discount(),
                )
            )

        if self.invoice.has_starting_balance():
            lines.append(str(_t("Customer balance: {amount}")).format(amount=self.invoice.starting_balance()))

        if self.invoice.invoice.get("tax"):
            lines.append(str(_t("Tax: {amount}")).format(amount=self.invoice.tax()))

        for index, line in enumerate(lines):
            self.canvas.drawString(12 * cm, totals_y - index * 0.5 * cm, line)

        self.canvas.setFont("Helvetica-Bold", 12)
        self.canvas.drawString(
            12 * cm,
            totals_y - len(lines) * 0.5 * cm,
            str(_t("TOTAL: {amount}")).format(amount=self.invoice.total()),
        )

    def _render_document_footer(self) -> None:
        self.canvas.setFont("Helvetica", 8)
        if url := self.data.get("url"):
            self.canvas.drawString(2 * cm, 1.5 * cm, str(url))
