# ==============================================================================
# SERVICIO DE CATÁLOGO - Categorías y proveedores
# ==============================================================================

import logging
from typing import Any, Dict, List

from stockpilot.errors import NotFoundError, ValidationError
from stockpilot.models import Category, Supplier, as_text
from stockpilot.repositories import CategoryRepository, SupplierRepository

logger = logging.getLogger(__name__)

FIELD_LABELS = {
    'name': 'El nombre',
    'description': 'La descripción',
    'contactName': 'El contacto',
    'contactEmail': 'El correo de contacto',
    'contactPhone': 'El teléfono de contacto',
}


def _text(data: Dict[str, Any], key: str) -> str:
    return as_text(data.get(key), FIELD_LABELS[key])


class CatalogService:
    """CRUD de categorías y proveedores."""

    def __init__(self, category_repo: CategoryRepository, supplier_repo: SupplierRepository):
        self.category_repo = category_repo
        self.supplier_repo = supplier_repo

    # =========================================================================
    # CATEGORÍAS
    # =========================================================================

    def list_categories(self) -> List[Category]:
        return self.category_repo.list_sorted()

    def get_category(self, category_id: str) -> Category:
        category = self.category_repo.get(category_id)
        if category is None:
            raise NotFoundError('Categoría no encontrada')
        return category

    def create_category(self, data: Dict[str, Any]) -> Category:
        """
        Crea una categoría.

        Args:
            data: {'name', 'description'}

        Raises:
            ValidationError: nombre vacío
        """
        name = _text(data, 'name')
        if not name:
            raise ValidationError('El nombre de la categoría es requerido')
        category = Category(id='', name=name, description=_text(data, 'description'))
        category.id = self.category_repo.add(category)
        logger.info("Categoría creada: %s (%s)", name, category.id)
        return category

    def update_category(self, category_id: str, data: Dict[str, Any]) -> Category:
        self.get_category(category_id)
        fields = {}
        if 'name' in data:
            fields['name'] = _text(data, 'name')
            if not fields['name']:
                raise ValidationError('El nombre de la categoría es requerido')
        if 'description' in data:
            fields['description'] = _text(data, 'description')
        if fields:
            self.category_repo.update(category_id, fields)
        return self.get_category(category_id)

    def delete_category(self, category_id: str) -> None:
        if not self.category_repo.delete(category_id):
            raise NotFoundError('Categoría no encontrada')
        logger.info("Categoría eliminada: %s", category_id)

    # =========================================================================
    # PROVEEDORES
    # =========================================================================

    _SUPPLIER_FIELDS = ('name', 'contactName', 'contactEmail', 'contactPhone')

    def list_suppliers(self) -> List[Supplier]:
        return self.supplier_repo.list_sorted()

    def get_supplier(self, supplier_id: str) -> Supplier:
        supplier = self.supplier_repo.get(supplier_id)
        if supplier is None:
            raise NotFoundError('Proveedor no encontrado')
        return supplier

    def create_supplier(self, data: Dict[str, Any]) -> Supplier:
        """
        Crea un proveedor. Solo el nombre es obligatorio.

        Args:
            data: {'name', 'contactName', 'contactEmail', 'contactPhone'}
        """
        name = _text(data, 'name')
        if not name:
            raise ValidationError('El nombre del proveedor es requerido')
        supplier = Supplier(
            id='',
            name=name,
            contact_name=_text(data, 'contactName'),
            contact_email=_text(data, 'contactEmail'),
            contact_phone=_text(data, 'contactPhone'),
        )
        supplier.id = self.supplier_repo.add(supplier)
        logger.info("Proveedor creado: %s (%s)", name, supplier.id)
        return supplier

    def update_supplier(self, supplier_id: str, data: Dict[str, Any]) -> Supplier:
        self.get_supplier(supplier_id)
        fields = {key: _text(data, key) for key in self._SUPPLIER_FIELDS if key in data}
        if 'name' in fields and not fields['name']:
            raise ValidationError('El nombre del proveedor es requerido')
        if fields:
            self.supplier_repo.update(supplier_id, fields)
        return self.get_supplier(supplier_id)

    def delete_supplier(self, supplier_id: str) -> None:
        if not self.supplier_repo.delete(supplier_id):
            raise NotFoundError('Proveedor no encontrado')
        logger.info("Proveedor eliminado: %s", supplier_id)
