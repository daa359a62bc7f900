# ==============================================================================
# REPOSITORIO DE PRODUCTOS
# ==============================================================================
# Encapsula el acceso a la colección 'products'.
# Documento: {name, description, specifications, price, categoryId,
#             supplierId, quantity, lowStockThreshold, imageUrl, ...}
# ==============================================================================

from typing import List

from stockpilot.models import Product, utcnow_iso
from stockpilot.repositories.base import CollectionRepository


class ProductRepository(CollectionRepository[Product]):
    """Repositorio para gestión de productos."""

    COLLECTION = 'products'
    MODEL = Product

    def list_by_category(self, category_id: str) -> List[Product]:
        """
        Productos de una categoría.

        Args:
            category_id: ID de la categoría

        Returns:
            Lista de productos
        """
        docs = self.store.query(self.COLLECTION, where=[('categoryId', '==', category_id)])
        return [self._to_model(doc_id, data) for doc_id, data in docs]

    def list_by_supplier(self, supplier_id: str) -> List[Product]:
        docs = self.store.query(self.COLLECTION, where=[('supplierId', '==', supplier_id)])
        return [self._to_model(doc_id, data) for doc_id, data in docs]

    def search_by_name(self, query: str) -> List[Product]:
        """
        Búsqueda parcial por nombre, sin distinguir mayúsculas.

        Args:
            query: Texto a buscar

        Returns:
            Productos cuyo nombre contiene el texto
        """
        needle = (query or '').strip().lower()
        return [p for p in self.list() if needle in p.name.lower()]

    def set_quantity_in(self, tx, product_id: str, quantity: int) -> None:
        """Fija el stock dentro de una transacción."""
        self.update_in(tx, product_id, {
            'quantity': int(quantity),
            'updatedAt': utcnow_iso(),
        })
