# ==============================================================================
# REPOSITORIO DE VENTAS
# ==============================================================================
# Encapsula el acceso a la colección 'sales'.
# Las ventas se crean dentro de la transacción de cobro y no se modifican.
# ==============================================================================

from datetime import date, datetime, time, timezone
from typing import List, Union

from stockpilot.errors import ValidationError
from stockpilot.models import Sale, to_iso
from stockpilot.repositories.base import CollectionRepository

DateLike = Union[date, datetime, str]


def as_date(value: DateLike) -> date:
    """Acepta date, datetime o 'YYYY-MM-DD'."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError as e:
        raise ValidationError(f'Fecha inválida: {value}') from e


def day_bounds(start: DateLike, end: DateLike):
    """
    Límites ISO de un rango de días completo.

    Args:
        start: Primer día (desde 00:00:00)
        end: Último día (hasta 23:59:59.999999)

    Returns:
        Tupla (inicio_iso, fin_iso)
    """
    start_day, end_day = as_date(start), as_date(end)
    if start_day > end_day:
        raise ValidationError('La fecha de inicio no puede ser posterior a la fecha de fin')
    start_dt = datetime.combine(start_day, time.min, tzinfo=timezone.utc)
    end_dt = datetime.combine(end_day, time.max, tzinfo=timezone.utc)
    return to_iso(start_dt), to_iso(end_dt)


class SalesRepository(CollectionRepository[Sale]):
    """
    Repositorio para gestión de ventas.

    Formato de un documento:
    {
        "items": [{"productId", "productName", "quantity", "unitPrice", "subtotal"}],
        "grandTotal": 150.0,
        "saleDate": "2024-01-01T10:00:00.000000+00:00",
        "userId": "...",
        "userName": "..."
    }
    """

    COLLECTION = 'sales'
    MODEL = Sale

    def get_by_date_range(self, start: DateLike, end: DateLike) -> List[Sale]:
        """
        Ventas entre dos fechas, ambos días incluidos, más recientes primero.

        Args:
            start: Fecha de inicio
            end: Fecha de fin (se extiende hasta el final del día)

        Returns:
            Lista de Sale
        """
        start_iso, end_iso = day_bounds(start, end)
        docs = self.store.query(
            self.COLLECTION,
            where=[('saleDate', '>=', start_iso), ('saleDate', '<=', end_iso)],
            order_by='saleDate',
            descending=True,
        )
        return [self._to_model(doc_id, data) for doc_id, data in docs]

    def list_recent(self, limit: int = 20) -> List[Sale]:
        docs = self.store.query(self.COLLECTION, order_by='saleDate', descending=True)
        return [self._to_model(doc_id, data) for doc_id, data in docs[:limit]]
