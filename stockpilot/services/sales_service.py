# ==============================================================================
# SERVICIO DE VENTAS
# ==============================================================================
# Finaliza ventas desde el carrito y consulta ventas por rango de fechas.
#
# La venta y todos los descuentos de stock se escriben en UNA transacción:
# si algún producto no existe o no alcanza el stock, no se escribe nada.
# ==============================================================================

import logging
from collections import OrderedDict
from typing import Dict, List, Optional

from stockpilot.errors import EmptyCartError, InsufficientStockError, NotFoundError
from stockpilot.models import Cart, CartItem, Sale, User, utcnow_iso
from stockpilot.performance_logger import profile_function
from stockpilot.repositories import IDocumentStore, ProductRepository, SalesRepository
from stockpilot.repositories.sales_repository import DateLike

logger = logging.getLogger(__name__)


def _aggregate_quantities(items: List[CartItem]) -> Dict[str, int]:
    """Cantidad total pedida por producto, en orden de aparición."""
    totals: Dict[str, int] = OrderedDict()
    for item in items:
        totals[item.product_id] = totals.get(item.product_id, 0) + item.quantity
    return totals


class SalesService:
    """
    Servicio para gestión de ventas.

    Responsabilidades:
    - Finalizar la venta del carrito (venta + stock, atómico)
    - Consultar ventas por rango de fechas
    - Consultar una venta o las más recientes
    """

    def __init__(
        self,
        store: IDocumentStore,
        sales_repo: SalesRepository,
        product_repo: ProductRepository,
    ):
        """
        Inicializa el servicio de ventas.

        Args:
            store: Almacén de documentos (para la transacción)
            sales_repo: Repositorio de ventas
            product_repo: Repositorio de productos
        """
        self.store = store
        self.sales_repo = sales_repo
        self.product_repo = product_repo

    @profile_function(name='Finalizar venta')
    def finalize_sale(self, cart: Cart, user: Optional[User] = None) -> Sale:
        """
        Registra la venta del carrito y descuenta el stock.

        Dentro de la transacción se vuelve a leer cada producto; el carrito
        pudo validarse contra datos viejos.

        Args:
            cart: Carrito a cobrar (no se modifica; el llamador lo vacía)
            user: Vendedor (opcional)

        Returns:
            Sale registrada

        Raises:
            EmptyCartError: carrito vacío
            NotFoundError: un producto ya no existe
            InsufficientStockError: uno o más productos sin stock suficiente
        """
        if cart.is_empty():
            raise EmptyCartError('No se puede registrar una venta vacía. El carrito está vacío.')

        items = [CartItem(i.product_id, i.product_name, i.quantity, i.unit_price) for i in cart.items]
        requested = _aggregate_quantities(items)

        def finalize_in_transaction(tx) -> Sale:
            products = {}
            for product_id in requested:
                product = self.product_repo.get_in(tx, product_id)
                if product is None:
                    raise NotFoundError(f'Producto {product_id} no encontrado')
                products[product_id] = product

            shortages = [
                {
                    'productId': product_id,
                    'productName': products[product_id].name,
                    'requested': quantity,
                    'available': products[product_id].quantity,
                }
                for product_id, quantity in requested.items()
                if products[product_id].quantity < quantity
            ]
            if shortages:
                names = ', '.join(
                    f"{s['productName']} (solicitado {s['requested']}, disponible {s['available']})"
                    for s in shortages
                )
                raise InsufficientStockError(f'Stock insuficiente: {names}', items=shortages)

            sale = Sale(
                id='',
                items=items,
                sale_date=utcnow_iso(),
                user_id=user.id if user else None,
                user_name=user.name if user else None,
            )
            sale.calculate_total()
            sale.id = self.sales_repo.create_in(tx, sale)

            for product_id, quantity in requested.items():
                self.product_repo.set_quantity_in(tx, product_id, products[product_id].quantity - quantity)
            return sale

        try:
            sale = self.store.run_transaction(finalize_in_transaction)
        except (InsufficientStockError, NotFoundError) as e:
            logger.warning("Venta rechazada: %s", e.message)
            raise

        logger.info(
            "Venta %s registrada: %d ítems, total %.2f, vendedor %s",
            sale.id, len(sale.items), sale.grand_total, sale.user_name or '-',
        )
        return sale

    def get_sales_by_date_range(self, start: DateLike, end: DateLike) -> List[Sale]:
        """
        Ventas entre dos fechas (ambos días completos), más recientes primero.

        Args:
            start: Fecha de inicio
            end: Fecha de fin
        """
        return self.sales_repo.get_by_date_range(start, end)

    def get_sale(self, sale_id: str) -> Sale:
        sale = self.sales_repo.get(sale_id)
        if sale is None:
            raise NotFoundError('Venta no encontrada')
        return sale

    def get_recent_sales(self, limit: int = 20) -> List[Sale]:
        return self.sales_repo.list_recent(limit)
