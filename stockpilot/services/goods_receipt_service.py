# ==============================================================================
# SERVICIO DE INGRESOS DE MERCADERÍA
# ==============================================================================
# Registra la llegada de mercadería: crea el ingreso y suma la cantidad al
# stock del producto en una misma transacción.
# ==============================================================================

import logging
from datetime import date, datetime, time, timezone
from typing import Any, Dict, List, Optional

from stockpilot.errors import NotFoundError, ValidationError
from stockpilot.models import GoodsReceipt, User, as_text, as_whole_number, to_iso, utcnow_iso
from stockpilot.performance_logger import profile_function
from stockpilot.repositories import (
    GoodsReceiptRepository,
    IDocumentStore,
    ProductRepository,
    SupplierRepository,
)

logger = logging.getLogger(__name__)


def _parse_receipt_date(value: Any) -> str:
    """Fecha del ingreso como ISO UTC; vacío = ahora."""
    if value is None or value == '':
        return utcnow_iso()
    if isinstance(value, datetime):
        return to_iso(value)
    if isinstance(value, date):
        return to_iso(datetime.combine(value, time.min, tzinfo=timezone.utc))
    try:
        parsed = datetime.fromisoformat(str(value).replace('Z', '+00:00'))
    except ValueError as e:
        raise ValidationError(f'Fecha de ingreso inválida: {value}') from e
    return to_iso(parsed)


class GoodsReceiptService:
    """
    Servicio de ingresos de mercadería.

    Responsabilidades:
    - Validar y registrar ingresos
    - Incrementar stock atómicamente
    - Listar ingresos recientes
    """

    def __init__(
        self,
        store: IDocumentStore,
        receipt_repo: GoodsReceiptRepository,
        product_repo: ProductRepository,
        supplier_repo: SupplierRepository,
    ):
        self.store = store
        self.receipt_repo = receipt_repo
        self.product_repo = product_repo
        self.supplier_repo = supplier_repo

    @profile_function(name='Registrar ingreso de mercadería')
    def register(self, data: Dict[str, Any], user: Optional[User] = None) -> GoodsReceipt:
        """
        Registra un ingreso.

        Args:
            data: {'productId', 'quantityReceived', 'supplierId'?,
                   'invoiceNumber'?, 'receiptDate'?}
            user: Usuario que registra (opcional)

        Returns:
            GoodsReceipt creado

        Raises:
            ValidationError: falta productId o la cantidad no es positiva
            NotFoundError: el producto no existe
        """
        product_id = as_text(data.get('productId'), 'El producto')
        raw_quantity = data.get('quantityReceived')
        quantity = 0 if raw_quantity in (None, '') else as_whole_number(raw_quantity, 'La cantidad recibida')
        if not product_id or quantity <= 0:
            raise ValidationError('Se requiere el producto y una cantidad recibida positiva.')

        invoice_number = as_text(data.get('invoiceNumber'), 'El número de factura')
        receipt_date = _parse_receipt_date(data.get('receiptDate'))

        # Proveedor opcional: si no existe, el ingreso queda sin nombre
        supplier_id = as_text(data.get('supplierId'), 'El proveedor') or None
        supplier_name = None
        if supplier_id:
            supplier = self.supplier_repo.get(supplier_id)
            if supplier is None:
                logger.warning("Proveedor %s no encontrado; se registra ingreso sin nombre", supplier_id)
            else:
                supplier_name = supplier.name

        def register_in_transaction(tx) -> GoodsReceipt:
            product = self.product_repo.get_in(tx, product_id)
            if product is None:
                raise NotFoundError(f'Producto con ID {product_id} no encontrado.')

            receipt = GoodsReceipt(
                id='',
                product_id=product_id,
                product_name=product.name,
                quantity_received=quantity,
                receipt_date=receipt_date,
                recorded_at=utcnow_iso(),
                supplier_id=supplier_id,
                supplier_name=supplier_name,
                invoice_number=invoice_number,
                user_id=user.id if user else None,
                user_name=user.name if user else None,
            )
            receipt.id = self.receipt_repo.create_in(tx, receipt)
            self.product_repo.set_quantity_in(tx, product_id, product.quantity + quantity)
            return receipt

        receipt = self.store.run_transaction(register_in_transaction)
        logger.info(
            "Ingreso %s registrado: +%d de %s (%s)",
            receipt.id, quantity, receipt.product_name, product_id,
        )
        return receipt

    def list_receipts(self) -> List[GoodsReceipt]:
        """Ingresos ordenados por fecha, más recientes primero."""
        return self.receipt_repo.list_recent()

    def list_receipts_for_product(self, product_id: str) -> List[GoodsReceipt]:
        """
        Historial de ingresos de un producto, más recientes primero.

        Args:
            product_id: ID del producto

        Raises:
            NotFoundError: el producto no existe
        """
        if self.product_repo.get(product_id) is None:
            raise NotFoundError(f'Producto con ID {product_id} no encontrado.')
        return self.receipt_repo.list_for_product(product_id)
