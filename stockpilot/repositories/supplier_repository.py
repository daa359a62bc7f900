# ==============================================================================
# REPOSITORIO DE PROVEEDORES
# ==============================================================================

from typing import List

from stockpilot.models import Supplier
from stockpilot.repositories.base import CollectionRepository


class SupplierRepository(CollectionRepository[Supplier]):
    """Colección 'suppliers': {name, contactName, contactEmail, contactPhone}."""

    COLLECTION = 'suppliers'
    MODEL = Supplier

    def list_sorted(self) -> List[Supplier]:
        docs = self.store.query(self.COLLECTION, order_by='name')
        return [self._to_model(doc_id, data) for doc_id, data in docs]
