"""
Export d'un devis : PDF (fpdf2) puis envoi sortant (HTTP).

Aucune transaction n'est ouverte pendant le rendu ni l'envoi :
le devis est lu dans une session courte, fermée avant l'appel réseau.
Un échec d'envoi est rapporté, jamais rejoué automatiquement.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Protocol, Sequence

import requests
from fpdf import FPDF

from oficina.app.core.config import Settings, get_settings
from oficina.services.errors import ValidationFailed
from oficina.services.normalizer import normalize_number, normalize_text
from oficina.services.orders import OrderStore
from oficina.services.results import ServiceResult, guarded

logger = logging.getLogger(__name__)


class DocumentRenderer(Protocol):
    def render(self, order: Mapping[str, Any], items: Sequence[Mapping[str, Any]]) -> bytes: ...


@dataclass(frozen=True)
class DeliveryReceipt:
    success: bool
    message_id: str | None = None
    error: str | None = None


class DocumentDelivery(Protocol):
    def send(
        self,
        document: bytes,
        destination: str,
        *,
        filename: str,
        caption: str | None = None,
    ) -> DeliveryReceipt: ...


def _latin1(text: Any) -> str:
    # polices core PDF : latin-1 uniquement
    return str(text).encode("latin-1", "replace").decode("latin-1")


def _money(value: Any) -> str:
    number = normalize_number(value, 0)
    formatted = f"{number:,.2f}".replace(",", "X").replace(".", ",").replace("X", ".")
    return f"R$ {formatted}"


class PdfOrderRenderer:
    def __init__(self, company_name: str = "Oficina"):
        self.company_name = company_name

    def _line(self, pdf: FPDF, text: str, *, height: float = 8) -> None:
        pdf.cell(0, height, _latin1(text), new_x="LMARGIN", new_y="NEXT")

    def render(self, order: Mapping[str, Any], items: Sequence[Mapping[str, Any]]) -> bytes:
        pdf = FPDF()
        pdf.add_page()

        pdf.set_font("Helvetica", "B", 16)
        pdf.cell(0, 10, _latin1(f"ORÇAMENTO #{order.get('id')}"), new_x="LMARGIN", new_y="NEXT", align="C")
        pdf.set_font("Helvetica", size=10)
        pdf.cell(0, 6, _latin1(self.company_name), new_x="LMARGIN", new_y="NEXT", align="C")
        pdf.ln(6)

        pdf.set_font("Helvetica", size=12)
        self._line(pdf, f"Cliente : {order.get('client_name') or '-'}")
        self._line(pdf, f"Contato : {order.get('client_contact') or '-'}")
        self._line(pdf, f"Equipamento : {order.get('equipment') or '-'}")
        self._line(pdf, f"Problema : {order.get('problem') or '-'}")
        if order.get("service_description"):
            self._line(pdf, f"Serviço : {order['service_description']} ({_money(order.get('service_value'))})")
        pdf.ln(4)

        if items:
            pdf.set_font("Helvetica", "B", 11)
            pdf.cell(90, 8, "Produto", border=1)
            pdf.cell(25, 8, "Qtd", border=1, align="R")
            pdf.cell(35, 8, _latin1("Preço"), border=1, align="R")
            pdf.cell(40, 8, "Total", border=1, align="R", new_x="LMARGIN", new_y="NEXT")

            pdf.set_font("Helvetica", size=11)
            for it in items:
                pdf.cell(90, 8, _latin1(it.get("product_name") or "Produto"), border=1)
                pdf.cell(25, 8, f"{normalize_number(it.get('quantity'), 0):g}", border=1, align="R")
                pdf.cell(35, 8, _latin1(_money(it.get("price"))), border=1, align="R")
                pdf.cell(
                    40, 8, _latin1(_money(it.get("total"))), border=1, align="R",
                    new_x="LMARGIN", new_y="NEXT",
                )
            pdf.ln(4)

        pdf.set_font("Helvetica", "B", 12)
        self._line(pdf, f"Total : {_money(order.get('total_value'))}")
        if order.get("validity"):
            pdf.set_font("Helvetica", size=10)
            self._line(pdf, f"Validade : {order['validity']}")
        if order.get("notes"):
            pdf.set_font("Helvetica", "I", 10)
            pdf.multi_cell(0, 6, _latin1(order["notes"]))

        return bytes(pdf.output())


class HttpDocumentDelivery:
    def __init__(
        self,
        api_url: str | None,
        token: str | None = None,
        timeout: float = 10.0,
        http: requests.Session | None = None,
    ):
        self.api_url = api_url
        self.token = token
        self.timeout = timeout
        self._http = http or requests.Session()

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "HttpDocumentDelivery":
        settings = settings or get_settings()
        return cls(settings.delivery_api_url, settings.delivery_api_token, settings.delivery_timeout)

    def send(
        self,
        document: bytes,
        destination: str,
        *,
        filename: str,
        caption: str | None = None,
    ) -> DeliveryReceipt:
        if not self.api_url:
            return DeliveryReceipt(success=False, error="Document delivery is not configured")

        headers = {"Authorization": f"Bearer {self.token}"} if self.token else {}
        try:
            response = self._http.post(
                self.api_url,
                headers=headers,
                data={"to": destination, "caption": caption or ""},
                files={"document": (filename, document, "application/pdf")},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            logger.warning("delivery.request_failed", extra={"destination": destination}, exc_info=True)
            return DeliveryReceipt(success=False, error=str(exc))

        if not response.ok:
            return DeliveryReceipt(success=False, error=f"Delivery rejected (HTTP {response.status_code})")

        try:
            body = response.json()
        except ValueError:
            body = {}
        message_id = None
        if isinstance(body, dict):
            message_id = body.get("message_id") or body.get("id")
        return DeliveryReceipt(success=True, message_id=str(message_id) if message_id else None)


class OrderExporter:
    def __init__(
        self,
        orders: OrderStore,
        renderer: DocumentRenderer | None = None,
        delivery: DocumentDelivery | None = None,
    ):
        self._orders = orders
        self._renderer = renderer or PdfOrderRenderer()
        self._delivery = delivery or HttpDocumentDelivery.from_settings()

    @guarded("export order")
    def export(self, order_id: Any, destination: Any = None) -> ServiceResult:
        found = self._orders.get(order_id)
        if not found.success:
            return found
        order = found.data

        target = normalize_text(destination) or normalize_text(order.get("client_contact"))
        if target is None:
            raise ValidationFailed("Destination is required")

        document = self._renderer.render(order, order.get("items") or [])
        receipt = self._delivery.send(
            document,
            target,
            filename=f"orcamento-{order['id']}.pdf",
            caption=f"Orçamento #{order['id']}",
        )
        if not receipt.success:
            logger.warning("order.export_failed", extra={"order_id": order["id"], "error": receipt.error})
            return ServiceResult.fail(receipt.error or "Document delivery failed", code="delivery_failed")

        logger.info("order.exported", extra={"order_id": order["id"], "message_id": receipt.message_id})
        return ServiceResult.ok(
            "Order exported",
            {"order_id": order["id"], "destination": target},
            message_id=receipt.message_id,
        )
