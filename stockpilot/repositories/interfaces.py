# ==============================================================================
# INTERFACES DE REPOSITORIOS
# ==============================================================================
#
# Este archivo define las interfaces (protocolos) de los servicios externos:
# el almacén de documentos y el proveedor de identidad. Esto permite:
#
# 1. INDEPENDENCIA DE ALMACENAMIENTO
#    - Los servicios dependen de interfaces, NO de implementaciones concretas
#    - JSON en disco, memoria o un almacén gestionado son intercambiables
#
# 2. TESTING
#    - MemoryDocumentStore implementa IDocumentStore sin tocar disco
#
# Las instancias se construyen una sola vez en app_container.py y se
# pasan a cada repositorio.
# ==============================================================================

from typing import Any, Callable, Dict, List, Optional, Protocol, Sequence, Tuple, TypeVar, runtime_checkable

T = TypeVar('T')

# (campo, operador, valor) - operadores: == != < <= > >= in
WhereClause = Tuple[str, str, Any]

# (id, documento)
DocumentSnapshot = Tuple[str, Dict[str, Any]]


@runtime_checkable
class ITransaction(Protocol):
    """
    Transacción multi-documento.

    Las lecturas ven las escrituras ya preparadas dentro de la misma
    transacción; las escrituras se aplican juntas al confirmar.
    """

    def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        ...

    def create(self, collection: str, data: Dict[str, Any]) -> str:
        """Prepara un documento nuevo, retorna el id generado."""
        ...

    def set(self, collection: str, doc_id: str, data: Dict[str, Any]) -> None:
        ...

    def update(self, collection: str, doc_id: str, fields: Dict[str, Any]) -> None:
        ...

    def delete(self, collection: str, doc_id: str) -> None:
        ...


@runtime_checkable
class IDocumentStore(Protocol):
    """
    Almacén de documentos: colecciones planas de documentos JSON
    indexados por un id generado. Sin joins.
    """

    def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        """Obtiene un documento o None."""
        ...

    def list(self, collection: str) -> List[DocumentSnapshot]:
        """Todos los documentos de una colección."""
        ...

    def query(
        self,
        collection: str,
        where: Sequence[WhereClause] = (),
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> List[DocumentSnapshot]:
        """Filtra por predicados simples y ordena por un campo."""
        ...

    def add(self, collection: str, data: Dict[str, Any]) -> str:
        """Crea un documento con id generado."""
        ...

    def set(self, collection: str, doc_id: str, data: Dict[str, Any]) -> None:
        """Crea o reemplaza un documento con id conocido."""
        ...

    def update(self, collection: str, doc_id: str, fields: Dict[str, Any]) -> None:
        """Mezcla campos en un documento existente."""
        ...

    def delete(self, collection: str, doc_id: str) -> bool:
        """Elimina un documento. True si existía."""
        ...

    def run_transaction(self, fn: Callable[[ITransaction], T]) -> T:
        """Ejecuta fn en una transacción; si fn lanza, nada se escribe."""
        ...


@runtime_checkable
class IIdentityProvider(Protocol):
    """
    Proveedor de identidad (correo/contraseña).
    Devuelve un uid opaco que es la clave del documento en 'users'.
    """

    def sign_in(self, email: str, password: str) -> str:
        ...

    def create_account(self, email: str, password: str) -> str:
        ...

    def update_password(self, uid: str, password: str) -> None:
        ...

    def delete_account(self, uid: str) -> bool:
        ...
