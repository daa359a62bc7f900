# ==============================================================================
# NAVEGACIÓN POR ROL
# ==============================================================================
# Tabla estática de entradas de menú y los roles que pueden verlas.
# La misma tabla produce ROLE_ROUTES, que las rutas usan para validar el
# acceso al entrar; el menú filtrado es solo presentación.
# ==============================================================================

from dataclasses import dataclass
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Sequence, Tuple

from stockpilot.models import UserRole, normalize_role

ALL_ROLES = frozenset(UserRole)
MANAGER_ROLES = frozenset({UserRole.ADMIN, UserRole.BODEGA})
ADMIN_ONLY = frozenset({UserRole.ADMIN})
SELLER_AND_ADMIN_ROLES = frozenset({UserRole.ADMIN, UserRole.SELLER})


@dataclass(frozen=True)
class NavItem:
    """
    Entrada del menú lateral.

    Attributes:
        href: Ruta de la pantalla
        label: Texto visible
        icon: Nombre del ícono
        roles: Roles que pueden ver la entrada
        children: Sub-entradas (se filtran con las mismas reglas)
    """
    href: str
    label: str
    icon: str
    roles: FrozenSet[UserRole]
    children: Tuple['NavItem', ...] = ()

    def allows(self, role: UserRole) -> bool:
        return role in self.roles

    def to_dict(self) -> Dict[str, Any]:
        d = {'href': self.href, 'label': self.label, 'icon': self.icon}
        if self.children:
            d['children'] = [child.to_dict() for child in self.children]
        return d


NAV_ITEMS: Tuple[NavItem, ...] = (
    NavItem('/dashboard', 'Dashboard', 'layout-dashboard', ALL_ROLES),
    NavItem('/point-of-sale', 'Punto de Venta', 'shopping-cart', SELLER_AND_ADMIN_ROLES),
    NavItem('/products', 'Productos', 'package', MANAGER_ROLES),
    NavItem('/categories', 'Categorías', 'tags', MANAGER_ROLES),
    NavItem('/suppliers', 'Proveedores', 'truck', MANAGER_ROLES),
    NavItem('/goods-receipts', 'Ingresos de Mercadería', 'package-plus', MANAGER_ROLES),
    NavItem('/users', 'Gestión de Usuarios', 'users', ADMIN_ONLY),
    NavItem('/reports', 'Reportes', 'file-text', ADMIN_ONLY),
)


def filter_nav_items(items: Sequence[NavItem], role: Any) -> List[NavItem]:
    """
    Entradas visibles para un rol, en el mismo orden.

    Las sub-entradas se filtran recursivamente; una entrada visible cuyos
    hijos quedan todos ocultos se conserva sin hijos.

    Args:
        items: Entradas de menú
        role: Rol del usuario (texto o UserRole); None/desconocido = sin sesión

    Returns:
        Lista filtrada (vacía si no hay rol)
    """
    canonical = normalize_role(role)
    if canonical is None:
        return []

    visible = []
    for item in items:
        if not item.allows(canonical):
            continue
        if item.children:
            item = NavItem(
                href=item.href,
                label=item.label,
                icon=item.icon,
                roles=item.roles,
                children=tuple(filter_nav_items(item.children, canonical)),
            )
        visible.append(item)
    return visible


def _walk(items: Iterable[NavItem]):
    for item in items:
        yield item
        yield from _walk(item.children)


def build_role_routes(items: Sequence[NavItem]) -> Dict[UserRole, Tuple[str, ...]]:
    """Rutas permitidas por rol, derivadas de la tabla de navegación."""
    routes = {role: [] for role in UserRole}
    for item in _walk(items):
        for role in UserRole:
            if item.allows(role) and item.href not in routes[role]:
                routes[role].append(item.href)
    return {role: tuple(hrefs) for role, hrefs in routes.items()}


ROLE_ROUTES: Dict[UserRole, Tuple[str, ...]] = build_role_routes(NAV_ITEMS)


def can_access(role: Any, path: Optional[str]) -> bool:
    """
    Verifica si un rol puede entrar a una ruta de pantalla.

    Una ruta está permitida si coincide con un prefijo de ROLE_ROUTES
    (/products permite /products/abc, no /products-archive).
    """
    canonical = normalize_role(role)
    if canonical is None or not path:
        return False
    path = path.rstrip('/') or '/'
    for prefix in ROLE_ROUTES.get(canonical, ()):
        if path == prefix or path.startswith(prefix + '/'):
            return True
    return False
