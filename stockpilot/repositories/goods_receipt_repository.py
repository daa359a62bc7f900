# ==============================================================================
# REPOSITORIO DE INGRESOS DE MERCADERÍA
# ==============================================================================
# Colección 'goodsReceipts'. Los ingresos no se modifican ni se eliminan.
# ==============================================================================

from typing import List

from stockpilot.models import GoodsReceipt
from stockpilot.repositories.base import CollectionRepository


class GoodsReceiptRepository(CollectionRepository[GoodsReceipt]):
    """Repositorio de ingresos de mercadería."""

    COLLECTION = 'goodsReceipts'
    MODEL = GoodsReceipt

    def list_recent(self) -> List[GoodsReceipt]:
        """
        Todos los ingresos, más recientes primero (por receiptDate).

        Returns:
            Lista de GoodsReceipt
        """
        docs = self.store.query(self.COLLECTION, order_by='receiptDate', descending=True)
        return [self._to_model(doc_id, data) for doc_id, data in docs]

    def list_for_product(self, product_id: str) -> List[GoodsReceipt]:
        docs = self.store.query(
            self.COLLECTION,
            where=[('productId', '==', product_id)],
            order_by='receiptDate',
            descending=True,
        )
        return [self._to_model(doc_id, data) for doc_id, data in docs]
