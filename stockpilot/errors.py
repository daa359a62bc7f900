# ==============================================================================
# ERRORES DEL DOMINIO
# ==============================================================================
# Jerarquía de excepciones que lanzan modelos y servicios.
# Las rutas las traducen a respuestas JSON {'ok': False, 'error': ...}.
# ==============================================================================

from typing import Any, Dict, List, Optional


class StockPilotError(Exception):
    """Excepción base de la aplicación."""

    status_code = 400

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationError(StockPilotError):
    """Campo requerido vacío, cantidad no positiva, rol inválido, etc."""
    status_code = 400


class NotFoundError(StockPilotError):
    """Producto, proveedor, categoría o usuario inexistente."""
    status_code = 404


class InsufficientStockError(StockPilotError):
    """
    Stock insuficiente para una o más líneas.

    Attributes:
        items: Lista de {'productId', 'productName', 'requested', 'available'}
    """
    status_code = 409

    def __init__(self, message: str, items: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message, details={'items': items or []})
        self.items = items or []

    @property
    def available(self) -> Optional[int]:
        """Stock disponible de la primera línea rechazada."""
        if not self.items:
            return None
        return self.items[0].get('available')


class EmptyCartError(StockPilotError):
    """Se intentó finalizar una venta sin ítems."""
    status_code = 400


class AuthenticationError(StockPilotError):
    """Credenciales inválidas o usuario sin registro en la base."""
    status_code = 401


class PermissionDeniedError(StockPilotError):
    """El rol del usuario no permite la operación."""
    status_code = 403


class ExternalServiceError(StockPilotError):
    """Fallo del almacén de documentos, del proveedor de identidad o de S3."""
    status_code = 502
