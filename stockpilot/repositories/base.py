# ==============================================================================
# ALMACÉN DE DOCUMENTOS BASE - Colecciones, consultas y transacciones
# ==============================================================================
# BaseDocumentStore implementa toda la semántica (consultas, transacciones);
# las subclases solo deciden dónde viven los datos:
#   - JSONDocumentStore   → un archivo JSON por colección
#   - MemoryDocumentStore → diccionarios en memoria (tests)
#
# CollectionRepository es la base de los repositorios por entidad.
# ==============================================================================

import copy
import json
import logging
import os
import shutil
import threading
import uuid
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Generic, List, Optional, Sequence, Type, TypeVar

from stockpilot.errors import ExternalServiceError, NotFoundError, ValidationError
from stockpilot.repositories.interfaces import DocumentSnapshot, IDocumentStore, WhereClause

logger = logging.getLogger(__name__)

T = TypeVar('T')

# Operadores soportados en query()
_OPERATORS: Dict[str, Callable[[Any, Any], bool]] = {
    '==': lambda a, b: a == b,
    '!=': lambda a, b: a != b,
    '<': lambda a, b: a is not None and a < b,
    '<=': lambda a, b: a is not None and a <= b,
    '>': lambda a, b: a is not None and a > b,
    '>=': lambda a, b: a is not None and a >= b,
    'in': lambda a, b: a in b,
}


def generate_id() -> str:
    """Id de documento: 20 caracteres hexadecimales."""
    return uuid.uuid4().hex[:20]


def _matches(data: Dict[str, Any], where: Sequence[WhereClause]) -> bool:
    for field_name, op, value in where:
        fn = _OPERATORS.get(op)
        if fn is None:
            raise ValidationError(f'Operador no soportado: {op}')
        try:
            if not fn(data.get(field_name), value):
                return False
        except TypeError:
            # Tipos no comparables (ej: None vs str) no coinciden
            return False
    return True


class Transaction:
    """
    Transacción sobre un BaseDocumentStore.

    Las escrituras se acumulan en _staged (None = eliminación) y se aplican
    en commit(). Si la función de la transacción lanza una excepción,
    commit() nunca se llama y nada llega al almacenamiento.
    """

    def __init__(self, store: 'BaseDocumentStore'):
        self._store = store
        self._staged: Dict[str, Dict[str, Optional[Dict[str, Any]]]] = {}

    def _staged_for(self, collection: str) -> Dict[str, Optional[Dict[str, Any]]]:
        return self._staged.setdefault(collection, {})

    def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        staged = self._staged.get(collection, {})
        if doc_id in staged:
            doc = staged[doc_id]
            return copy.deepcopy(doc) if doc is not None else None
        return self._store.get(collection, doc_id)

    def create(self, collection: str, data: Dict[str, Any]) -> str:
        doc_id = generate_id()
        self._staged_for(collection)[doc_id] = copy.deepcopy(data)
        return doc_id

    def set(self, collection: str, doc_id: str, data: Dict[str, Any]) -> None:
        self._staged_for(collection)[doc_id] = copy.deepcopy(data)

    def update(self, collection: str, doc_id: str, fields: Dict[str, Any]) -> None:
        current = self.get(collection, doc_id)
        if current is None:
            raise NotFoundError(f'Documento {collection}/{doc_id} no encontrado')
        current.update(copy.deepcopy(fields))
        self._staged_for(collection)[doc_id] = current

    def delete(self, collection: str, doc_id: str) -> None:
        self._staged_for(collection)[doc_id] = None

    def commit(self) -> None:
        if not self._staged:
            return
        changes = {}
        for collection, docs in self._staged.items():
            data = self._store._read_collection(collection)
            for doc_id, doc in docs.items():
                if doc is None:
                    data.pop(doc_id, None)
                else:
                    data[doc_id] = doc
            changes[collection] = data
        self._store._write_collections(changes)


class BaseDocumentStore(ABC):
    """
    Clase base abstracta de los almacenes de documentos.

    Todas las operaciones toman el lock de la instancia; run_transaction lo
    mantiene durante toda la función, así ninguna otra escritura del proceso
    se intercala entre las lecturas y el commit.
    """

    def __init__(self):
        self._lock = threading.RLock()

    # =========================================================================
    # ALMACENAMIENTO (implementado por subclases)
    # =========================================================================

    @abstractmethod
    def _read_collection(self, collection: str) -> Dict[str, Dict[str, Any]]:
        """Retorna una copia de la colección completa {id: documento}."""
        pass

    @abstractmethod
    def _write_collections(self, changes: Dict[str, Dict[str, Dict[str, Any]]]) -> None:
        """Reemplaza las colecciones indicadas por su nuevo contenido."""
        pass

    # =========================================================================
    # LECTURAS
    # =========================================================================

    def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        if not doc_id:
            return None
        with self._lock:
            return self._read_collection(collection).get(doc_id)

    def list(self, collection: str) -> List[DocumentSnapshot]:
        with self._lock:
            return list(self._read_collection(collection).items())

    def query(
        self,
        collection: str,
        where: Sequence[WhereClause] = (),
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> List[DocumentSnapshot]:
        with self._lock:
            docs = self._read_collection(collection)
        results = [(doc_id, data) for doc_id, data in docs.items() if _matches(data, where)]
        if order_by:
            # Documentos sin el campo van al final
            present = [r for r in results if r[1].get(order_by) is not None]
            missing = [r for r in results if r[1].get(order_by) is None]
            present.sort(key=lambda r: r[1][order_by], reverse=descending)
            results = present + missing
        return results

    # =========================================================================
    # ESCRITURAS
    # =========================================================================

    def add(self, collection: str, data: Dict[str, Any]) -> str:
        return self.run_transaction(lambda tx: tx.create(collection, data))

    def set(self, collection: str, doc_id: str, data: Dict[str, Any]) -> None:
        self.run_transaction(lambda tx: tx.set(collection, doc_id, data))

    def update(self, collection: str, doc_id: str, fields: Dict[str, Any]) -> None:
        self.run_transaction(lambda tx: tx.update(collection, doc_id, fields))

    def delete(self, collection: str, doc_id: str) -> bool:
        with self._lock:
            if self.get(collection, doc_id) is None:
                return False
            self.run_transaction(lambda tx: tx.delete(collection, doc_id))
            return True

    def run_transaction(self, fn: Callable[[Transaction], T]) -> T:
        with self._lock:
            tx = Transaction(self)
            result = fn(tx)
            tx.commit()
            return result


class MemoryDocumentStore(BaseDocumentStore):
    """Almacén en memoria. Mismo comportamiento que el JSON, sin disco."""

    def __init__(self, initial: Optional[Dict[str, Dict[str, Dict[str, Any]]]] = None):
        super().__init__()
        self._collections: Dict[str, Dict[str, Dict[str, Any]]] = copy.deepcopy(initial or {})

    def _read_collection(self, collection: str) -> Dict[str, Dict[str, Any]]:
        return copy.deepcopy(self._collections.get(collection, {}))

    def _write_collections(self, changes: Dict[str, Dict[str, Dict[str, Any]]]) -> None:
        for collection, data in changes.items():
            self._collections[collection] = copy.deepcopy(data)


class JSONDocumentStore(BaseDocumentStore):
    """
    Almacén en disco: data_dir/<coleccion>.json -> {id: documento}.

    Cada escritura va a un archivo temporal y se reemplaza con os.replace.
    En un commit multi-colección se escriben primero todos los temporales,
    se respalda cada destino en <coleccion>.json.bak y luego se reemplazan.
    Si un reemplazo falla se restauran los respaldos de lo ya reemplazado.
    """

    def __init__(self, data_dir: str):
        super().__init__()
        self.data_dir = data_dir
        os.makedirs(self.data_dir, exist_ok=True)

    def _path(self, collection: str) -> str:
        return os.path.join(self.data_dir, f'{collection}.json')

    def _read_collection(self, collection: str) -> Dict[str, Dict[str, Any]]:
        path = self._path(collection)
        if not os.path.exists(path):
            return {}
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error("No se pudo leer la colección %s (%s): %s", collection, path, e)
            raise ExternalServiceError(f'Error leyendo la colección {collection}') from e
        return data if isinstance(data, dict) else {}

    def _write_collections(self, changes: Dict[str, Dict[str, Dict[str, Any]]]) -> None:
        temp_paths: Dict[str, str] = {}
        backups: Dict[str, Optional[str]] = {}
        replaced: List[str] = []
        try:
            for collection, data in changes.items():
                temp_path = self._path(collection) + '.tmp'
                with open(temp_path, 'w', encoding='utf-8') as f:
                    json.dump(data, f, indent=2, ensure_ascii=False)
                temp_paths[collection] = temp_path

            # Respaldo de cada destino antes de reemplazar (None = no existía)
            for collection in temp_paths:
                target = self._path(collection)
                if os.path.exists(target):
                    shutil.copyfile(target, target + '.bak')
                    backups[collection] = target + '.bak'
                else:
                    backups[collection] = None

            for collection, temp_path in temp_paths.items():
                os.replace(temp_path, self._path(collection))
                replaced.append(collection)
        except OSError as e:
            self._restore_backups(replaced, backups)
            for temp_path in temp_paths.values():
                if os.path.exists(temp_path):
                    os.remove(temp_path)
            logger.error("Error escribiendo colecciones %s: %s", list(changes), e)
            raise ExternalServiceError('Error escribiendo en el almacén de documentos') from e
        finally:
            for backup_path in backups.values():
                if backup_path and os.path.exists(backup_path):
                    os.remove(backup_path)

    def _restore_backups(self, replaced: List[str], backups: Dict[str, Optional[str]]) -> None:
        """
        Deja en disco el estado previo al commit para las colecciones ya reemplazadas.

        Args:
            replaced: colecciones cuyo archivo ya fue reemplazado
            backups: ruta del respaldo por colección (None si el archivo no existía)
        """
        for collection in replaced:
            target = self._path(collection)
            backup_path = backups.get(collection)
            try:
                if backup_path:
                    shutil.copyfile(backup_path, target)
                elif os.path.exists(target):
                    os.remove(target)
            except OSError as e:
                logger.critical("No se pudo restaurar la colección %s desde %s: %s", collection, backup_path, e)


# ==============================================================================
# REPOSITORIO POR COLECCIÓN
# ==============================================================================

M = TypeVar('M')


class CollectionRepository(Generic[M]):
    """
    Repositorio base: convierte documentos de una colección en modelos.

    Las subclases definen COLLECTION y MODEL (una dataclass con
    from_dict(id, data) y to_dict()).
    """

    COLLECTION: str = ''
    MODEL: Type[Any] = None

    def __init__(self, store: IDocumentStore):
        self.store = store

    def _to_model(self, doc_id: str, data: Dict[str, Any]) -> M:
        return self.MODEL.from_dict(doc_id, data)

    def get(self, doc_id: str) -> Optional[M]:
        data = self.store.get(self.COLLECTION, doc_id)
        if data is None:
            return None
        return self._to_model(doc_id, data)

    def exists(self, doc_id: str) -> bool:
        return self.store.get(self.COLLECTION, doc_id) is not None

    def list(self) -> List[M]:
        return [self._to_model(doc_id, data) for doc_id, data in self.store.list(self.COLLECTION)]

    def count(self) -> int:
        return len(self.store.list(self.COLLECTION))

    def add(self, model: M) -> str:
        return self.store.add(self.COLLECTION, model.to_dict())

    def update(self, doc_id: str, fields: Dict[str, Any]) -> None:
        self.store.update(self.COLLECTION, doc_id, fields)

    def delete(self, doc_id: str) -> bool:
        return self.store.delete(self.COLLECTION, doc_id)

    # Variantes dentro de una transacción

    def get_in(self, tx, doc_id: str) -> Optional[M]:
        data = tx.get(self.COLLECTION, doc_id)
        if data is None:
            return None
        return self._to_model(doc_id, data)

    def create_in(self, tx, model: M) -> str:
        return tx.create(self.COLLECTION, model.to_dict())

    def update_in(self, tx, doc_id: str, fields: Dict[str, Any]) -> None:
        tx.update(self.COLLECTION, doc_id, fields)
