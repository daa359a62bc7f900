# ==============================================================================
# SERVICIO DE REPORTES - Informe de ventas
# ==============================================================================
# Aplana las líneas de las ventas de un rango de fechas y las exporta a
# PDF (reportlab) o CSV.
# ==============================================================================

import csv
import io
import logging
from datetime import datetime
from typing import Any, Dict, List

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from stockpilot.models import Sale, money
from stockpilot.repositories.sales_repository import DateLike, as_date
from stockpilot.services.sales_service import SalesService

logger = logging.getLogger(__name__)

PDF_HEADERS = ['Nombre Producto', 'Cantidad Vendida', 'Precio Unitario', 'Subtotal', 'Fecha de Venta']


def format_money(amount: Any) -> str:
    return f'${money(amount):.2f}'


def format_sale_date(value: str) -> str:
    """'2024-05-01T14:30:00.000000+00:00' -> '01/05/2024 14:30'"""
    try:
        return datetime.fromisoformat(value).strftime('%d/%m/%Y %H:%M')
    except (TypeError, ValueError):
        return 'Fecha no válida'


class ReportService:
    """Informe de ventas por rango de fechas."""

    def __init__(self, sales_service: SalesService):
        self.sales_service = sales_service

    @staticmethod
    def _rows_for(sales: List[Sale]) -> List[Dict[str, Any]]:
        rows = []
        for sale in sales:
            for item in sale.items:
                rows.append({
                    'saleId': sale.id,
                    'productId': item.product_id,
                    'productName': item.product_name,
                    'quantity': item.quantity,
                    'unitPrice': money(item.unit_price),
                    'subtotal': item.subtotal,
                    'saleDate': sale.sale_date,
                })
        return rows

    def sales_rows(self, start: DateLike, end: DateLike) -> List[Dict[str, Any]]:
        """
        Una fila por línea vendida, de la venta más reciente a la más antigua.

        Returns:
            Lista de {saleId, productId, productName, quantity, unitPrice,
            subtotal, saleDate}
        """
        return self._rows_for(self.sales_service.get_sales_by_date_range(start, end))

    def sales_summary(self, start: DateLike, end: DateLike) -> Dict[str, Any]:
        """Filas más totales del período, calculados sobre una sola lectura."""
        sales = self.sales_service.get_sales_by_date_range(start, end)
        rows = self._rows_for(sales)
        return {
            'rows': rows,
            'salesCount': len(sales),
            'unitsSold': sum(r['quantity'] for r in rows),
            'totalRevenue': money(sum(s.grand_total for s in sales)),
        }

    @staticmethod
    def report_title(start: DateLike, end: DateLike) -> str:
        start_day, end_day = as_date(start), as_date(end)
        return f"Informe de Ventas ({start_day.strftime('%d/%m/%Y')} - {end_day.strftime('%d/%m/%Y')})"

    def export_pdf(self, start: DateLike, end: DateLike) -> bytes:
        """
        Informe en PDF: título, tabla de líneas y total.

        Args:
            start: Fecha de inicio
            end: Fecha de fin

        Returns:
            Contenido del PDF
        """
        summary = self.sales_summary(start, end)
        rows = summary['rows']

        buffer = io.BytesIO()
        doc = SimpleDocTemplate(buffer, pagesize=A4, title=self.report_title(start, end))
        styles = getSampleStyleSheet()
        story = [
            Paragraph(self.report_title(start, end), styles['Title']),
            Spacer(1, 12),
        ]

        if not rows:
            story.append(Paragraph('No hay ventas en el período seleccionado.', styles['Normal']))
        else:
            table_data = [PDF_HEADERS]
            for row in rows:
                table_data.append([
                    row['productName'],
                    str(row['quantity']),
                    format_money(row['unitPrice']),
                    format_money(row['subtotal']),
                    format_sale_date(row['saleDate']),
                ])
            table = Table(table_data, repeatRows=1)
            table.setStyle(TableStyle([
                ('BACKGROUND', (0, 0), (-1, 0), colors.grey),
                ('TEXTCOLOR', (0, 0), (-1, 0), colors.whitesmoke),
                ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
                ('FONTSIZE', (0, 0), (-1, 0), 10),
                ('BOTTOMPADDING', (0, 0), (-1, 0), 8),
                ('FONTNAME', (0, 1), (-1, -1), 'Helvetica'),
                ('FONTSIZE', (0, 1), (-1, -1), 8),
                ('ALIGN', (1, 1), (3, -1), 'RIGHT'),
                ('GRID', (0, 0), (-1, -1), 0.5, colors.black),
                ('VALIGN', (0, 0), (-1, -1), 'MIDDLE'),
            ]))
            story.append(table)

        story.append(Spacer(1, 12))
        story.append(Paragraph(
            f"Ventas: {summary['salesCount']} | Unidades: {summary['unitsSold']} | "
            f"Total: {format_money(summary['totalRevenue'])}",
            styles['Normal'],
        ))

        doc.build(story)
        logger.info("Informe PDF generado: %d líneas", len(rows))
        return buffer.getvalue()

    def export_csv(self, start: DateLike, end: DateLike) -> str:
        """Mismas filas que el PDF, en CSV."""
        si = io.StringIO()
        writer = csv.writer(si)
        writer.writerow(['venta', 'fecha', 'producto_id', 'producto', 'cantidad', 'precio_unitario', 'subtotal'])
        for row in self.sales_rows(start, end):
            writer.writerow([
                row['saleId'], row['saleDate'], row['productId'], row['productName'],
                row['quantity'], f"{row['unitPrice']:.2f}", f"{row['subtotal']:.2f}",
            ])
        return si.getvalue()
