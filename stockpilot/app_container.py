# ==============================================================================
# CONTENEDOR DE DEPENDENCIAS - Inyección de servicios
# ==============================================================================
# Este módulo proporciona una forma centralizada de obtener instancias
# de repositorios y servicios. Facilita:
#   - Inyección de dependencias
#   - Testing (almacén en memoria, cliente S3 simulado)
#   - Cambiar de almacén sin tocar servicios
#
# Cada repositorio y servicio se construye una sola vez, la primera vez que
# se pide (lazy loading). La app de Flask recibe el contenedor en
# create_app(); get_container() da la instancia global del proceso.
# ==============================================================================

from typing import Any, Optional

from stockpilot.config import Config
from stockpilot.repositories import (
    CategoryRepository,
    GoodsReceiptRepository,
    IDocumentStore,
    IIdentityProvider,
    JSONDocumentStore,
    LocalIdentityProvider,
    ProductRepository,
    SalesRepository,
    SupplierRepository,
    UserRepository,
)
from stockpilot.services import (
    CartService,
    CatalogService,
    GoodsReceiptService,
    ImageStorageService,
    InventoryService,
    ReportService,
    SalesService,
    UserService,
)


class AppContainer:
    """
    Contenedor de dependencias de la aplicación.

    Uso:
        container = AppContainer(Config.from_env())
        inventory_service = container.inventory_service
        sales_service = container.sales_service

    Args:
        config: Configuración (por defecto Config.from_env())
        store: Almacén de documentos (por defecto JSON en config.data_dir)
        identity: Proveedor de identidad (por defecto LocalIdentityProvider)
        s3_client: Cliente boto3 ya construido (tests)
    """

    _instance: Optional['AppContainer'] = None

    def __init__(
        self,
        config: Optional[Config] = None,
        store: Optional[IDocumentStore] = None,
        identity: Optional[IIdentityProvider] = None,
        s3_client: Any = None,
    ):
        self.config = config or Config.from_env()
        self._store = store
        self._identity = identity
        self._s3_client = s3_client
        self.reset()

    # =========================================================================
    # INFRAESTRUCTURA
    # =========================================================================

    @property
    def store(self) -> IDocumentStore:
        """Almacén de documentos (singleton)."""
        if self._store is None:
            self._store = JSONDocumentStore(self.config.data_dir)
        return self._store

    @property
    def identity(self) -> IIdentityProvider:
        if self._identity is None:
            self._identity = LocalIdentityProvider(self.store)
        return self._identity

    # =========================================================================
    # REPOSITORIOS
    # =========================================================================

    @property
    def product_repo(self) -> ProductRepository:
        if self._product_repo is None:
            self._product_repo = ProductRepository(self.store)
        return self._product_repo

    @property
    def category_repo(self) -> CategoryRepository:
        if self._category_repo is None:
            self._category_repo = CategoryRepository(self.store)
        return self._category_repo

    @property
    def supplier_repo(self) -> SupplierRepository:
        if self._supplier_repo is None:
            self._supplier_repo = SupplierRepository(self.store)
        return self._supplier_repo

    @property
    def user_repo(self) -> UserRepository:
        if self._user_repo is None:
            self._user_repo = UserRepository(self.store)
        return self._user_repo

    @property
    def receipt_repo(self) -> GoodsReceiptRepository:
        if self._receipt_repo is None:
            self._receipt_repo = GoodsReceiptRepository(self.store)
        return self._receipt_repo

    @property
    def sales_repo(self) -> SalesRepository:
        if self._sales_repo is None:
            self._sales_repo = SalesRepository(self.store)
        return self._sales_repo

    # =========================================================================
    # SERVICIOS
    # =========================================================================

    @property
    def image_storage(self) -> ImageStorageService:
        """Servicio de imágenes S3 (singleton)."""
        if self._image_storage is None:
            self._image_storage = ImageStorageService(self.config.s3, client=self._s3_client)
        return self._image_storage

    @property
    def inventory_service(self) -> InventoryService:
        """Servicio de inventario (singleton)."""
        if self._inventory_service is None:
            self._inventory_service = InventoryService(
                self.product_repo,
                self.category_repo,
                self.supplier_repo,
                self.user_repo,
                self.image_storage,
            )
        return self._inventory_service

    @property
    def catalog_service(self) -> CatalogService:
        if self._catalog_service is None:
            self._catalog_service = CatalogService(self.category_repo, self.supplier_repo)
        return self._catalog_service

    @property
    def goods_receipt_service(self) -> GoodsReceiptService:
        if self._goods_receipt_service is None:
            self._goods_receipt_service = GoodsReceiptService(
                self.store,
                self.receipt_repo,
                self.product_repo,
                self.supplier_repo,
            )
        return self._goods_receipt_service

    @property
    def sales_service(self) -> SalesService:
        """Servicio de ventas (singleton)."""
        if self._sales_service is None:
            self._sales_service = SalesService(self.store, self.sales_repo, self.product_repo)
        return self._sales_service

    @property
    def cart_service(self) -> CartService:
        """Servicio de carrito (singleton)."""
        if self._cart_service is None:
            self._cart_service = CartService(self.inventory_service, self.sales_service)
        return self._cart_service

    @property
    def user_service(self) -> UserService:
        """Servicio de usuarios (singleton)."""
        if self._user_service is None:
            self._user_service = UserService(self.user_repo, self.identity)
        return self._user_service

    @property
    def report_service(self) -> ReportService:
        if self._report_service is None:
            self._report_service = ReportService(self.sales_service)
        return self._report_service

    # =========================================================================
    # UTILIDADES
    # =========================================================================

    def reset(self) -> None:
        """
        Reinicia repositorios y servicios (el almacén se conserva).
        Útil para testing.
        """
        self._product_repo = None
        self._category_repo = None
        self._supplier_repo = None
        self._user_repo = None
        self._receipt_repo = None
        self._sales_repo = None

        self._image_storage = None
        self._inventory_service = None
        self._catalog_service = None
        self._goods_receipt_service = None
        self._sales_service = None
        self._cart_service = None
        self._user_service = None
        self._report_service = None

    @classmethod
    def get_instance(cls, config: Optional[Config] = None) -> 'AppContainer':
        """
        Obtiene la instancia global del contenedor.

        Args:
            config: Configuración (solo se usa en la primera llamada)
        """
        if cls._instance is None:
            cls._instance = cls(config)
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        """Elimina la instancia global (útil para tests)."""
        cls._instance = None


def get_container(config: Optional[Config] = None) -> AppContainer:
    """Función helper para obtener el contenedor global."""
    return AppContainer.get_instance(config)
