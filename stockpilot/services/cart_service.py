# ==============================================================================
# SERVICIO DE CARRITO
# ==============================================================================
# Centraliza toda la lógica de negocio relacionada con el carrito de compras.
# El carrito se almacena en la sesión de Flask (session['carrito']) como
# lista de ítems; las reglas de cantidades viven en models.Cart.
# ==============================================================================

from typing import Any, Dict, Optional

from flask import session

from stockpilot.errors import InsufficientStockError, StockPilotError, ValidationError
from stockpilot.models import Cart, User, as_whole_number
from stockpilot.services.inventory_service import InventoryService
from stockpilot.services.sales_service import SalesService

SESSION_KEY = 'carrito'


def _to_int(value: Any) -> Optional[int]:
    # 2.9 o "abc" no son cantidades: None para responder 400
    try:
        return as_whole_number(value)
    except ValidationError:
        return None


class CartService:
    """
    Servicio para gestión del carrito de compras.

    Responsabilidades:
    - Agregar/actualizar/eliminar ítems validando contra el stock actual
    - Calcular totales
    - Cobrar el carrito (delegando en SalesService)

    No reserva stock: la verificación definitiva ocurre al cobrar.
    Todos los métodos retornan dicts {'ok': bool, ...}.
    """

    def __init__(self, inventory_service: InventoryService, sales_service: SalesService):
        """
        Inicializa el servicio de carrito.

        Args:
            inventory_service: Para leer el último snapshot de cada producto
            sales_service: Para finalizar la venta
        """
        self.inventory_service = inventory_service
        self.sales_service = sales_service

    def _load(self) -> Cart:
        return Cart.from_list(session.get(SESSION_KEY, []))

    def _save(self, cart: Cart) -> None:
        session[SESSION_KEY] = cart.to_list()
        session.modified = True

    @staticmethod
    def _summary(cart: Cart) -> Dict[str, Any]:
        return {
            'total_items': cart.total_units(),
            'total_monto': cart.grand_total(),
            'items_count': len(cart),
        }

    @staticmethod
    def _failure(error: StockPilotError) -> Dict[str, Any]:
        result = {'ok': False, 'error': error.message, 'status': error.status_code}
        if isinstance(error, InsufficientStockError):
            result['disponible'] = error.available
        return result

    def get_cart(self) -> Dict[str, Any]:
        """
        Obtiene el carrito con totales calculados.

        Returns:
            Dict con items, total_items, total_monto, items_count
        """
        cart = self._load()
        result = {'ok': True, 'items': cart.to_list()}
        result.update(self._summary(cart))
        return result

    def add_item(self, product_id: str, quantity: Any) -> Dict[str, Any]:
        """
        Agrega un producto al carrito (suma si ya estaba).

        Args:
            product_id: ID del producto
            quantity: Cantidad a agregar

        Returns:
            Dict con resultado (ok, error, disponible, carrito)
        """
        if not product_id:
            return {'ok': False, 'error': 'ID de producto inválido', 'status': 400}
        qty = _to_int(quantity)
        if qty is None:
            return {'ok': False, 'error': 'La cantidad debe ser un número entero', 'status': 400}

        cart = self._load()
        try:
            product = self.inventory_service.require_product(product_id)
            item = cart.add_item(product, qty)
        except StockPilotError as e:
            return self._failure(e)

        self._save(cart)
        return {
            'ok': True,
            'mensaje': f'{item.product_name} añadido al carrito.',
            'producto': item.to_dict(),
            'carrito': self._summary(cart),
        }

    def update_quantity(self, product_id: str, new_quantity: Any) -> Dict[str, Any]:
        """
        Cambia la cantidad de una línea. Cantidad <= 0 elimina la línea.

        Args:
            product_id: ID del producto
            new_quantity: Nueva cantidad

        Returns:
            Dict con resultado
        """
        qty = _to_int(new_quantity)
        if qty is None:
            return {'ok': False, 'error': 'La cantidad debe ser un número entero', 'status': 400}

        cart = self._load()
        if cart.find(product_id) is None:
            return {'ok': False, 'error': 'El producto no está en el carrito', 'status': 404}
        try:
            if qty > 0:
                available = self.inventory_service.require_product(product_id).quantity
            else:
                available = 0
            cart.update_item_quantity(product_id, qty, available)
        except StockPilotError as e:
            return self._failure(e)

        self._save(cart)
        return {'ok': True, 'mensaje': 'Cantidad actualizada', 'carrito': self._summary(cart)}

    def remove_item(self, product_id: str) -> Dict[str, Any]:
        cart = self._load()
        cart.remove_item(product_id)
        self._save(cart)
        return {'ok': True, 'mensaje': 'Producto eliminado del carrito', 'carrito': self._summary(cart)}

    def clear_cart(self) -> Dict[str, Any]:
        """Vacía el carrito completamente."""
        cart = Cart()
        self._save(cart)
        return {'ok': True, 'mensaje': 'Carrito vaciado', 'carrito': self._summary(cart)}

    def checkout(self, user: Optional[User] = None) -> Dict[str, Any]:
        """
        Cobra el carrito de la sesión.
        Solo si la venta se registra se vacía el carrito.

        Args:
            user: Vendedor

        Returns:
            Dict con la venta registrada, o el error (con 'items' si falta stock)
        """
        cart = self._load()
        try:
            sale = self.sales_service.finalize_sale(cart, user)
        except StockPilotError as e:
            result = self._failure(e)
            if isinstance(e, InsufficientStockError):
                result['items'] = e.items
            return result

        self._save(Cart())
        venta = sale.to_dict()
        venta['id'] = sale.id
        return {'ok': True, 'mensaje': 'Venta registrada', 'venta': venta}
