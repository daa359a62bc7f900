# ==============================================================================
# ENTIDADES DEL DOMINIO - Definiciones de dataclasses
# ==============================================================================
# Cada entidad representa un concepto del negocio.
# Diseñadas para ser independientes del almacén de documentos: to_dict()
# produce el documento (claves camelCase) y from_dict() lo interpreta.
# ==============================================================================

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from stockpilot.errors import InsufficientStockError, ValidationError


def utcnow_iso() -> str:
    """Timestamp ISO-8601 en UTC (orden lexicográfico = orden cronológico)."""
    return datetime.now(timezone.utc).isoformat(timespec='microseconds')


def to_iso(value: Any) -> str:
    """Normaliza datetime/str a ISO-8601 UTC."""
    if value is None or value == '':
        return ''
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc).isoformat(timespec='microseconds')
    return str(value)


def money(value: Any) -> float:
    """Redondea un importe a 2 decimales."""
    return round(float(value or 0), 2)


def as_text(value: Any, field_name: str = 'El campo') -> str:
    """
    Texto limpio de un campo de formulario o JSON.

    None → ''; números se convierten a texto; listas, objetos y booleanos
    no son texto válido.

    Raises:
        ValidationError: el valor no es texto ni número
    """
    if value is None:
        return ''
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    raise ValidationError(f'{field_name} debe ser texto')


def as_whole_number(value: Any, field_name: str = 'La cantidad') -> int:
    """
    Número entero sin truncar: acepta int, float sin decimales ('3.0')
    o texto entero ('12'). 2.9 o True se rechazan.

    Raises:
        ValidationError: el valor no es un número entero
    """
    error = ValidationError(f'{field_name} debe ser un número entero')
    if isinstance(value, bool):
        raise error
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            return int(text)
        except ValueError:
            try:
                value = float(text)
            except ValueError:
                raise error from None
    if isinstance(value, float) and value.is_integer():
        return int(value)
    raise error


# ==============================================================================
# ENUMERACIONES - Roles válidos
# ==============================================================================

class UserRole(str, Enum):
    """Roles de usuario disponibles en el sistema."""
    ADMIN = "admin"
    BODEGA = "bodega"    # Bodega / almacén
    SELLER = "seller"    # Vendedor


# Sinónimos heredados: el mismo rol aparecía como manager/bodega/vendedor
_ROLE_ALIASES = {
    'admin': UserRole.ADMIN,
    'administrator': UserRole.ADMIN,
    'administrador': UserRole.ADMIN,
    'root': UserRole.ADMIN,
    'bodega': UserRole.BODEGA,
    'manager': UserRole.BODEGA,
    'warehouse': UserRole.BODEGA,
    'almacen': UserRole.BODEGA,
    'seller': UserRole.SELLER,
    'vendedor': UserRole.SELLER,
}


def normalize_role(role: Any) -> Optional[UserRole]:
    """
    Normaliza un rol a su valor canónico.
    Acepta distintas mayúsculas y sinónimos comunes.

    Args:
        role: Rol como texto o UserRole

    Returns:
        UserRole canónico, o None si no se reconoce
    """
    if isinstance(role, UserRole):
        return role
    if not role:
        return None
    return _ROLE_ALIASES.get(str(role).strip().lower())


# ==============================================================================
# ENTIDADES DE USUARIO
# ==============================================================================

@dataclass
class User:
    """
    Registro de aplicación asociado a una identidad.

    Attributes:
        id: uid devuelto por el proveedor de identidad (clave del documento)
        name: Nombre visible
        email: Correo electrónico
        role: Rol que define sus permisos
        avatar: URL opcional del avatar
    """
    id: str
    name: str
    email: str
    role: UserRole = UserRole.SELLER
    avatar: Optional[str] = None
    created_at: str = ''
    updated_at: str = ''

    def is_admin(self) -> bool:
        """Verifica si el usuario tiene permisos de administrador."""
        return self.role == UserRole.ADMIN

    def to_dict(self) -> Dict[str, Any]:
        """Convierte a documento para persistencia."""
        d = {
            'name': self.name,
            'email': self.email,
            'role': self.role.value,
            'createdAt': self.created_at,
            'updatedAt': self.updated_at,
        }
        if self.avatar:
            d['avatar'] = self.avatar
        return d

    def to_session(self) -> Dict[str, Any]:
        """Datos mínimos guardados en la sesión de Flask."""
        return {
            'id': self.id,
            'name': self.name,
            'email': self.email,
            'role': self.role.value,
            'avatar': self.avatar,
        }

    @classmethod
    def from_dict(cls, doc_id: str, data: Dict[str, Any]) -> 'User':
        """Crea instancia desde documento."""
        return cls(
            id=doc_id,
            name=data.get('name', ''),
            email=data.get('email', ''),
            role=normalize_role(data.get('role')) or UserRole.SELLER,
            avatar=data.get('avatar'),
            created_at=data.get('createdAt', ''),
            updated_at=data.get('updatedAt', ''),
        )


# ==============================================================================
# ENTIDADES DE CATÁLOGO
# ==============================================================================

@dataclass
class Category:
    """Categoría de productos."""
    id: str
    name: str
    description: str = ''

    def to_dict(self) -> Dict[str, Any]:
        return {'name': self.name, 'description': self.description}

    @classmethod
    def from_dict(cls, doc_id: str, data: Dict[str, Any]) -> 'Category':
        return cls(
            id=doc_id,
            name=data.get('name', ''),
            description=data.get('description', '') or '',
        )


@dataclass
class Supplier:
    """Proveedor con datos de contacto opcionales."""
    id: str
    name: str
    contact_name: str = ''
    contact_email: str = ''
    contact_phone: str = ''

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'contactName': self.contact_name,
            'contactEmail': self.contact_email,
            'contactPhone': self.contact_phone,
        }

    @classmethod
    def from_dict(cls, doc_id: str, data: Dict[str, Any]) -> 'Supplier':
        return cls(
            id=doc_id,
            name=data.get('name', ''),
            contact_name=data.get('contactName', '') or '',
            contact_email=data.get('contactEmail', '') or '',
            contact_phone=data.get('contactPhone', '') or '',
        )


# ==============================================================================
# ENTIDADES DE INVENTARIO
# ==============================================================================

DEFAULT_LOW_STOCK_THRESHOLD = 5


@dataclass
class Product:
    """
    Producto del inventario.

    Attributes:
        id: Identificador del documento
        name: Nombre del producto
        description: Descripción libre
        specifications: Especificaciones técnicas
        price: Precio de venta
        category_id: Referencia a Category
        supplier_id: Referencia opcional a Supplier ('' si no tiene)
        quantity: Stock actual (nunca negativo)
        low_stock_threshold: Umbral de stock bajo
        image_url: URL pública de la imagen en S3
    """
    id: str
    name: str
    category_id: str
    description: str = ''
    specifications: str = ''
    price: float = 0.0
    supplier_id: str = ''
    quantity: int = 0
    low_stock_threshold: int = DEFAULT_LOW_STOCK_THRESHOLD
    image_url: str = ''
    created_at: str = ''
    updated_at: str = ''

    @property
    def is_low_stock(self) -> bool:
        """Stock bajo: cantidad estrictamente menor al umbral."""
        return self.quantity < self.low_stock_threshold

    def to_dict(self) -> Dict[str, Any]:
        """Convierte a documento para persistencia."""
        return {
            'name': self.name,
            'description': self.description,
            'specifications': self.specifications,
            'price': money(self.price),
            'categoryId': self.category_id,
            'supplierId': self.supplier_id or '',
            'quantity': int(self.quantity),
            'lowStockThreshold': int(self.low_stock_threshold),
            'imageUrl': self.image_url,
            'createdAt': self.created_at,
            'updatedAt': self.updated_at,
        }

    def to_view(self) -> Dict[str, Any]:
        """Documento + id + bandera lowStock calculada (no se persiste)."""
        d = self.to_dict()
        d['id'] = self.id
        d['lowStock'] = self.is_low_stock
        return d

    @classmethod
    def from_dict(cls, doc_id: str, data: Dict[str, Any]) -> 'Product':
        """Crea instancia desde documento."""
        threshold = data.get('lowStockThreshold')
        return cls(
            id=doc_id,
            name=data.get('name', ''),
            category_id=data.get('categoryId', ''),
            description=data.get('description', '') or '',
            specifications=data.get('specifications', '') or '',
            price=float(data.get('price', 0) or 0),
            supplier_id=data.get('supplierId', '') or '',
            quantity=int(data.get('quantity', 0) or 0),
            low_stock_threshold=DEFAULT_LOW_STOCK_THRESHOLD if threshold is None else int(threshold),
            image_url=data.get('imageUrl', '') or '',
            created_at=data.get('createdAt', ''),
            updated_at=data.get('updatedAt', ''),
        )


@dataclass
class GoodsReceipt:
    """
    Ingreso de mercadería. Inmutable una vez creado.

    productName y supplierName se copian al momento del registro para
    listar sin consultar otras colecciones; si el producto se renombra
    después, el ingreso conserva el nombre original.
    """
    id: str
    product_id: str
    product_name: str
    quantity_received: int
    receipt_date: str
    recorded_at: str
    supplier_id: Optional[str] = None
    supplier_name: Optional[str] = None
    invoice_number: str = ''
    user_id: Optional[str] = None
    user_name: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        d = {
            'productId': self.product_id,
            'productName': self.product_name,
            'quantityReceived': self.quantity_received,
            'invoiceNumber': self.invoice_number,
            'receiptDate': self.receipt_date,
            'recordedAt': self.recorded_at,
        }
        # Campos opcionales: se omiten en lugar de guardar None
        optional = {
            'supplierId': self.supplier_id,
            'supplierName': self.supplier_name,
            'userId': self.user_id,
            'userName': self.user_name,
        }
        d.update({k: v for k, v in optional.items() if v})
        return d

    @classmethod
    def from_dict(cls, doc_id: str, data: Dict[str, Any]) -> 'GoodsReceipt':
        return cls(
            id=doc_id,
            product_id=data.get('productId', ''),
            product_name=data.get('productName', ''),
            quantity_received=int(data.get('quantityReceived', 0) or 0),
            receipt_date=data.get('receiptDate', ''),
            recorded_at=data.get('recordedAt', ''),
            supplier_id=data.get('supplierId'),
            supplier_name=data.get('supplierName'),
            invoice_number=data.get('invoiceNumber', '') or '',
            user_id=data.get('userId'),
            user_name=data.get('userName'),
        )


# ==============================================================================
# ENTIDADES DE CARRITO
# ==============================================================================

@dataclass
class CartItem:
    """
    Ítem del carrito (session-based) y snapshot dentro de una venta.

    Attributes:
        product_id: ID del producto
        product_name: Nombre copiado del producto al agregarlo
        quantity: Cantidad
        unit_price: Precio unitario al agregarlo
    """
    product_id: str
    product_name: str
    quantity: int
    unit_price: float

    @property
    def subtotal(self) -> float:
        """Subtotal de este ítem."""
        return money(self.quantity * self.unit_price)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'productId': self.product_id,
            'productName': self.product_name,
            'quantity': self.quantity,
            'unitPrice': money(self.unit_price),
            'subtotal': self.subtotal,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CartItem':
        return cls(
            product_id=data.get('productId', ''),
            product_name=data.get('productName', ''),
            quantity=int(data.get('quantity', 0) or 0),
            unit_price=float(data.get('unitPrice', 0) or 0),
        )


class Cart:
    """
    Acumulador de líneas antes del cobro.

    No reserva stock: las validaciones comparan contra el último snapshot
    del producto, así que dos carritos distintos pueden creer que hay stock.
    La verificación definitiva ocurre al finalizar la venta.
    Toda operación fallida deja el carrito sin cambios.
    """

    def __init__(self, items: Optional[List[CartItem]] = None):
        self.items: List[CartItem] = list(items or [])

    def __len__(self) -> int:
        return len(self.items)

    def is_empty(self) -> bool:
        return not self.items

    def find(self, product_id: str) -> Optional[CartItem]:
        for item in self.items:
            if item.product_id == product_id:
                return item
        return None

    def add_item(self, product: Product, quantity: int) -> CartItem:
        """
        Agrega una cantidad de un producto, sumando si ya estaba en el carrito.

        Raises:
            ValidationError: cantidad <= 0
            InsufficientStockError: cantidad (o suma con lo ya agregado) > stock
        """
        if quantity is None or quantity <= 0:
            raise ValidationError('La cantidad debe ser mayor a 0')

        existing = self.find(product.id)
        requested = quantity + (existing.quantity if existing else 0)
        if requested > product.quantity:
            if existing:
                message = (f'No se puede añadir más. Total en carrito ({requested}) '
                           f'excede stock ({product.quantity}).')
            else:
                message = f'No hay suficiente stock. Disponible: {product.quantity}.'
            raise InsufficientStockError(message, items=[{
                'productId': product.id,
                'productName': product.name,
                'requested': requested,
                'available': product.quantity,
            }])

        if existing:
            existing.quantity = requested
            return existing

        item = CartItem(
            product_id=product.id,
            product_name=product.name,
            quantity=quantity,
            unit_price=money(product.price),
        )
        self.items.append(item)
        return item

    def update_item_quantity(self, product_id: str, new_quantity: int, available: int) -> None:
        """
        Cambia la cantidad de una línea.
        Cantidad <= 0 equivale a eliminar la línea.

        Args:
            product_id: ID del producto
            new_quantity: Nueva cantidad
            available: Stock actual del producto (último snapshot)
        """
        if new_quantity <= 0:
            self.remove_item(product_id)
            return

        item = self.find(product_id)
        if item is None:
            return

        if new_quantity > available:
            raise InsufficientStockError(
                f'No puede añadir más de {available} para {item.product_name}.',
                items=[{
                    'productId': product_id,
                    'productName': item.product_name,
                    'requested': new_quantity,
                    'available': available,
                }],
            )
        item.quantity = new_quantity

    def remove_item(self, product_id: str) -> None:
        self.items = [i for i in self.items if i.product_id != product_id]

    def clear(self) -> None:
        self.items = []

    def grand_total(self) -> float:
        """Suma de subtotales, recalculada en cada lectura."""
        return money(sum(item.subtotal for item in self.items))

    def total_units(self) -> int:
        return sum(item.quantity for item in self.items)

    def to_list(self) -> List[Dict[str, Any]]:
        return [item.to_dict() for item in self.items]

    @classmethod
    def from_list(cls, data: Optional[List[Dict[str, Any]]]) -> 'Cart':
        return cls([CartItem.from_dict(d) for d in (data or [])])


# ==============================================================================
# ENTIDADES DE VENTA
# ==============================================================================

@dataclass
class Sale:
    """
    Venta registrada. Inmutable una vez creada.

    Attributes:
        id: Identificador del documento
        items: Snapshot de las líneas del carrito
        grand_total: Suma de subtotales
        sale_date: Momento de la escritura (no de creación del carrito)
        user_id: Vendedor (opcional)
        user_name: Nombre del vendedor (opcional)
    """
    id: str
    items: List[CartItem] = field(default_factory=list)
    grand_total: float = 0.0
    sale_date: str = ''
    user_id: Optional[str] = None
    user_name: Optional[str] = None

    def calculate_total(self) -> float:
        self.grand_total = money(sum(item.subtotal for item in self.items))
        return self.grand_total

    def to_dict(self) -> Dict[str, Any]:
        d = {
            'items': [item.to_dict() for item in self.items],
            'grandTotal': money(self.grand_total),
            'saleDate': self.sale_date,
        }
        if self.user_id:
            d['userId'] = self.user_id
        if self.user_name:
            d['userName'] = self.user_name
        return d

    @classmethod
    def from_dict(cls, doc_id: str, data: Dict[str, Any]) -> 'Sale':
        return cls(
            id=doc_id,
            items=[CartItem.from_dict(i) for i in data.get('items', [])],
            grand_total=float(data.get('grandTotal', 0) or 0),
            sale_date=data.get('saleDate', ''),
            user_id=data.get('userId'),
            user_name=data.get('userName'),
        )
