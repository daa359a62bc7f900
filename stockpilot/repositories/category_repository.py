# ==============================================================================
# REPOSITORIO DE CATEGORÍAS
# ==============================================================================

from typing import List

from stockpilot.models import Category
from stockpilot.repositories.base import CollectionRepository


class CategoryRepository(CollectionRepository[Category]):
    """Colección 'categories': {name, description}."""

    COLLECTION = 'categories'
    MODEL = Category

    def list_sorted(self) -> List[Category]:
        """Categorías ordenadas por nombre."""
        docs = self.store.query(self.COLLECTION, order_by='name')
        return [self._to_model(doc_id, data) for doc_id, data in docs]
