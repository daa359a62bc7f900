# ==============================================================================
# CAPA DE REPOSITORIOS - Acceso a datos
# ==============================================================================
# Esta capa encapsula todo el acceso al almacén de documentos.
# Los servicios trabajan con modelos; solo esta capa conoce colecciones,
# claves camelCase y transacciones.
#
# ESTRUCTURA:
# ├── interfaces.py                → Protocolos (IDocumentStore, IIdentityProvider)
# ├── base.py                      → Almacenes JSON/memoria, transacciones, base por colección
# ├── product_repository.py        → Colección products
# ├── category_repository.py       → Colección categories
# ├── supplier_repository.py       → Colección suppliers
# ├── user_repository.py           → Colección users (clave = uid)
# ├── goods_receipt_repository.py  → Colección goodsReceipts
# ├── sales_repository.py          → Colección sales
# └── identity_provider.py         → Cuentas correo/contraseña (accounts)
# ==============================================================================

from stockpilot.repositories.interfaces import (
    IDocumentStore,
    ITransaction,
    IIdentityProvider,
)

from stockpilot.repositories.base import (
    BaseDocumentStore,
    CollectionRepository,
    JSONDocumentStore,
    MemoryDocumentStore,
    Transaction,
)
from stockpilot.repositories.product_repository import ProductRepository
from stockpilot.repositories.category_repository import CategoryRepository
from stockpilot.repositories.supplier_repository import SupplierRepository
from stockpilot.repositories.user_repository import UserRepository
from stockpilot.repositories.goods_receipt_repository import GoodsReceiptRepository
from stockpilot.repositories.sales_repository import SalesRepository
from stockpilot.repositories.identity_provider import LocalIdentityProvider

__all__ = [
    # Interfaces
    'IDocumentStore',
    'ITransaction',
    'IIdentityProvider',

    # Almacenes
    'BaseDocumentStore',
    'CollectionRepository',
    'JSONDocumentStore',
    'MemoryDocumentStore',
    'Transaction',

    # Repositorios
    'ProductRepository',
    'CategoryRepository',
    'SupplierRepository',
    'UserRepository',
    'GoodsReceiptRepository',
    'SalesRepository',
    'LocalIdentityProvider',
]
