# ==============================================================================
# CAPA DE MODELOS - Estructuras de datos del sistema
# ==============================================================================
# Este módulo define todas las entidades del dominio usando dataclasses.
# Los documentos se guardan con claves camelCase (formato del almacén de
# documentos); los atributos Python usan snake_case.
# ==============================================================================

from .entities import (
    # Usuarios
    User,
    UserRole,
    normalize_role,

    # Catálogo
    Category,
    Supplier,

    # Inventario
    Product,
    GoodsReceipt,
    DEFAULT_LOW_STOCK_THRESHOLD,

    # Carrito y ventas
    Cart,
    CartItem,
    Sale,

    # Utilidades
    utcnow_iso,
    to_iso,
    money,
    as_text,
    as_whole_number,
)

__all__ = [
    'User',
    'UserRole',
    'normalize_role',
    'Category',
    'Supplier',
    'Product',
    'GoodsReceipt',
    'DEFAULT_LOW_STOCK_THRESHOLD',
    'Cart',
    'CartItem',
    'Sale',
    'utcnow_iso',
    'to_iso',
    'money',
    'as_text',
    'as_whole_number',
]
