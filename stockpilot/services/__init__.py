# ==============================================================================
# CAPA DE SERVICIOS - Lógica de negocio
# ==============================================================================
# Esta capa contiene TODA la lógica de negocio de la aplicación.
#
# PRINCIPIOS:
# 1. Los servicios orquestan operaciones entre repositorios
# 2. Aplican reglas de negocio y validaciones, y lanzan errores de
#    stockpilot.errors (CartService los traduce a dicts de resultado)
# 3. Las rutas (controllers) solo llaman a servicios
# 4. Los servicios NO conocen el tipo de almacenamiento (JSON/memoria)
#
# ESTRUCTURA:
# ├── inventory_service.py     → Productos, stock bajo, panel principal
# ├── catalog_service.py       → Categorías y proveedores
# ├── goods_receipt_service.py → Ingresos de mercadería (+stock)
# ├── sales_service.py         → Finalizar venta (-stock), consultas
# ├── cart_service.py          → Carrito en sesión
# ├── user_service.py          → Usuarios y autenticación
# ├── storage_service.py       → Imágenes de productos en S3
# └── report_service.py        → Informe de ventas PDF/CSV
# ==============================================================================

from stockpilot.services.storage_service import ImageStorageService
from stockpilot.services.inventory_service import InventoryService
from stockpilot.services.catalog_service import CatalogService
from stockpilot.services.goods_receipt_service import GoodsReceiptService
from stockpilot.services.sales_service import SalesService
from stockpilot.services.cart_service import CartService
from stockpilot.services.user_service import UserService
from stockpilot.services.report_service import ReportService

__all__ = [
    'ImageStorageService',
    'InventoryService',
    'CatalogService',
    'GoodsReceiptService',
    'SalesService',
    'CartService',
    'UserService',
    'ReportService',
]
