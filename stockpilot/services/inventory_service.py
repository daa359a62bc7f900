# ==============================================================================
# SERVICIO DE INVENTARIO
# ==============================================================================
# Centraliza toda la lógica de negocio relacionada con productos y stock:
# altas, ediciones, bajas (con limpieza de imagen), stock bajo y el
# resumen del panel principal.
# ==============================================================================

import logging
import math
from typing import Any, Dict, List, Optional

from stockpilot.errors import NotFoundError, ValidationError
from stockpilot.models import DEFAULT_LOW_STOCK_THRESHOLD, Product, as_text, as_whole_number, money, utcnow_iso
from stockpilot.repositories import (
    CategoryRepository,
    ProductRepository,
    SupplierRepository,
    UserRepository,
)
from stockpilot.services.storage_service import ImageStorageService

logger = logging.getLogger(__name__)

TEXT_FIELDS = {
    'name': 'El nombre',
    'description': 'La descripción',
    'specifications': 'Las especificaciones',
    'categoryId': 'La categoría',
    'supplierId': 'El proveedor',
    'imageUrl': 'La URL de imagen',
}


def _to_float(value: Any, field_name: str) -> float:
    if isinstance(value, bool):
        raise ValidationError(f'{field_name} debe ser un número')
    try:
        number = float(value)
    except (TypeError, ValueError) as e:
        raise ValidationError(f'{field_name} debe ser un número') from e
    if not math.isfinite(number):
        raise ValidationError(f'{field_name} debe ser un número')
    if number < 0:
        raise ValidationError(f'{field_name} no puede ser negativo')
    return money(number)


def _to_int(value: Any, field_name: str) -> int:
    number = as_whole_number(value, field_name)
    if number < 0:
        raise ValidationError(f'{field_name} no puede ser negativo')
    return number


class InventoryService:
    """
    Servicio para gestión de inventario.

    Responsabilidades:
    - CRUD de productos
    - Detección de stock bajo
    - Resumen del panel principal
    """

    # Campos que se pueden editar desde el formulario de producto
    ALLOWED_FIELDS = (
        'name', 'description', 'specifications', 'price', 'categoryId',
        'supplierId', 'quantity', 'lowStockThreshold', 'imageUrl',
    )

    def __init__(
        self,
        product_repo: ProductRepository,
        category_repo: CategoryRepository,
        supplier_repo: SupplierRepository,
        user_repo: UserRepository,
        image_storage: Optional[ImageStorageService] = None,
    ):
        """
        Inicializa el servicio de inventario.

        Args:
            product_repo: Repositorio de productos
            category_repo: Repositorio de categorías (conteos y validación)
            supplier_repo: Repositorio de proveedores (conteos)
            user_repo: Repositorio de usuarios (conteos)
            image_storage: Servicio S3 (opcional); sin él no se borran imágenes
        """
        self.product_repo = product_repo
        self.category_repo = category_repo
        self.supplier_repo = supplier_repo
        self.user_repo = user_repo
        self.image_storage = image_storage

    # =========================================================================
    # NORMALIZACIÓN
    # =========================================================================

    def _clean_fields(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Filtra campos permitidos y normaliza tipos."""
        cleaned = {k: v for k, v in data.items() if k in self.ALLOWED_FIELDS}

        for key, label in TEXT_FIELDS.items():
            if key in cleaned:
                cleaned[key] = as_text(cleaned[key], label)
        if 'price' in cleaned:
            cleaned['price'] = _to_float(cleaned['price'], 'El precio')
        if 'quantity' in cleaned:
            cleaned['quantity'] = _to_int(cleaned['quantity'], 'La cantidad')
        if 'lowStockThreshold' in cleaned:
            cleaned['lowStockThreshold'] = _to_int(cleaned['lowStockThreshold'], 'El umbral de stock bajo')
        return cleaned

    def _check_category(self, category_id: str) -> None:
        if not self.category_repo.exists(category_id):
            raise ValidationError('La categoría seleccionada no existe')

    # =========================================================================
    # OPERACIONES DE PRODUCTOS
    # =========================================================================

    def create_product(self, data: Dict[str, Any]) -> Product:
        """
        Crea un producto con valores por defecto para lo que falte.

        Args:
            data: Campos del formulario (claves camelCase)

        Returns:
            Producto creado, con su id

        Raises:
            ValidationError: falta nombre o categoría, o un número es inválido
        """
        fields = self._clean_fields(data)
        if not fields.get('name'):
            raise ValidationError('El nombre del producto es requerido')
        if not fields.get('categoryId'):
            raise ValidationError('La categoría es requerida')
        self._check_category(fields['categoryId'])

        now = utcnow_iso()
        product = Product(
            id='',
            name=fields['name'],
            category_id=fields['categoryId'],
            description=fields.get('description', ''),
            specifications=fields.get('specifications', ''),
            price=fields.get('price', 0.0),
            supplier_id=fields.get('supplierId', ''),
            quantity=fields.get('quantity', 0),
            low_stock_threshold=fields.get('lowStockThreshold', DEFAULT_LOW_STOCK_THRESHOLD),
            image_url=fields.get('imageUrl', ''),
            created_at=now,
            updated_at=now,
        )
        product.id = self.product_repo.add(product)
        logger.info("Producto creado: %s (%s)", product.name, product.id)
        return product

    def get_product(self, product_id: str) -> Optional[Product]:
        return self.product_repo.get(product_id)

    def require_product(self, product_id: str) -> Product:
        """
        Obtiene un producto o lanza NotFoundError.

        Args:
            product_id: ID del producto
        """
        product = self.product_repo.get(product_id)
        if product is None:
            raise NotFoundError('Producto no encontrado')
        return product

    def list_products(
        self,
        category_id: Optional[str] = None,
        supplier_id: Optional[str] = None,
        search: Optional[str] = None,
    ) -> List[Product]:
        """
        Lista productos ordenados por nombre, con filtros opcionales.

        Args:
            category_id: Solo esta categoría
            supplier_id: Solo este proveedor
            search: Texto contenido en el nombre (sin distinguir mayúsculas)
        """
        if category_id:
            products = self.product_repo.list_by_category(category_id)
        elif supplier_id:
            products = self.product_repo.list_by_supplier(supplier_id)
        elif search:
            products = self.product_repo.search_by_name(search)
        else:
            products = self.product_repo.list()

        # Filtros restantes cuando se combinan
        if category_id and supplier_id:
            products = [p for p in products if p.supplier_id == supplier_id]
        if search and (category_id or supplier_id):
            needle = search.strip().lower()
            products = [p for p in products if needle in p.name.lower()]
        return sorted(products, key=lambda p: p.name.lower())

    def update_product(self, product_id: str, updates: Dict[str, Any]) -> Product:
        """
        Actualiza un producto.
        Solo se aplican ALLOWED_FIELDS; si no llega supplierId el producto
        queda sin proveedor.

        Raises:
            NotFoundError: el producto no existe
            ValidationError: nombre o categoría vacíos, número inválido
        """
        self.require_product(product_id)
        fields = self._clean_fields(updates)

        if 'name' in fields and not fields['name']:
            raise ValidationError('El nombre del producto es requerido')
        if 'categoryId' in fields:
            if not fields['categoryId']:
                raise ValidationError('La categoría es requerida')
            self._check_category(fields['categoryId'])
        fields.setdefault('supplierId', '')
        fields['updatedAt'] = utcnow_iso()

        self.product_repo.update(product_id, fields)
        logger.info("Producto actualizado: %s (%s)", product_id, ', '.join(sorted(fields)))
        return self.require_product(product_id)

    def delete_product(self, product_id: str) -> Product:
        """
        Elimina un producto y, si tiene, su imagen en S3.

        La imagen se intenta borrar primero; si S3 falla solo se registra y
        el producto se elimina igual.

        Returns:
            Producto eliminado

        Raises:
            NotFoundError: el producto no existe
        """
        product = self.require_product(product_id)

        if product.image_url and self.image_storage is not None:
            self.image_storage.delete_image(product.image_url)
        elif not product.image_url:
            logger.debug("Producto %s sin imagen; nada que borrar en S3", product_id)

        self.product_repo.delete(product_id)
        logger.info("Producto eliminado: %s (%s)", product.name, product_id)
        return product

    # =========================================================================
    # STOCK BAJO Y PANEL
    # =========================================================================

    def get_low_stock_products(self) -> List[Product]:
        """Productos con cantidad menor a su umbral, menos stock primero."""
        low = [p for p in self.product_repo.list() if p.is_low_stock]
        return sorted(low, key=lambda p: (p.quantity, p.name.lower()))

    def get_dashboard_summary(self) -> Dict[str, Any]:
        """
        Conteos del panel principal.

        Returns:
            Dict con totalUsers, totalProducts, lowStockItems,
            totalCategories, totalSuppliers
        """
        products = self.product_repo.list()
        return {
            'totalUsers': self.user_repo.count(),
            'totalProducts': len(products),
            'lowStockItems': sum(1 for p in products if p.is_low_stock),
            'totalCategories': self.category_repo.count(),
            'totalSuppliers': self.supplier_repo.count(),
        }
