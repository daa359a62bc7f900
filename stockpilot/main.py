# ==============================================================================
# APLICACIÓN FLASK - API JSON
# ==============================================================================
# Las rutas solo orquestan request → servicio → respuesta JSON.
# Toda la lógica de negocio vive en services/.
#
# SEGURIDAD:
# - Sesión firmada de Flask (usuario y rol guardados al hacer login)
# - Token CSRF obligatorio en POST/PUT/DELETE (header X-CSRF-Token)
# - Cada ruta valida el rol al entrar (role_required); el menú filtrado
#   de /api/nav es solo presentación
# ==============================================================================

import logging
import uuid
from functools import wraps

from flask import Blueprint, Flask, Response, current_app, jsonify, request, session
from werkzeug.exceptions import HTTPException

from stockpilot.app_container import AppContainer
from stockpilot.config import Config
from stockpilot.errors import (
    AuthenticationError,
    ExternalServiceError,
    PermissionDeniedError,
    StockPilotError,
    ValidationError,
)
from stockpilot.models import User, UserRole, as_text, normalize_role
from stockpilot.navigation import NAV_ITEMS, can_access, filter_nav_items
from stockpilot.performance_logger import init_profiling

logger = logging.getLogger(__name__)

api = Blueprint('api', __name__, url_prefix='/api')

ADMIN = UserRole.ADMIN
BODEGA = UserRole.BODEGA
SELLER = UserRole.SELLER
MUTATING_METHODS = ('POST', 'PUT', 'PATCH', 'DELETE')


# ═══════════════════════════════════════════════════════════════════════════
# UTILIDADES DE SESIÓN
# ═══════════════════════════════════════════════════════════════════════════

def get_services() -> AppContainer:
    return current_app.extensions['stockpilot']


def current_user():
    """Usuario de la sesión como User, o None."""
    data = session.get('user')
    if not data:
        return None
    return User(
        id=data.get('id', ''),
        name=data.get('name', ''),
        email=data.get('email', ''),
        role=normalize_role(data.get('role')) or SELLER,
        avatar=data.get('avatar'),
    )


def generate_csrf_token():
    if 'csrf_token' not in session:
        session['csrf_token'] = uuid.uuid4().hex
    return session['csrf_token']


def json_body():
    """Cuerpo JSON de la petición como dict (vacío si no hay cuerpo)."""
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError('El cuerpo de la petición debe ser un objeto JSON')
    return data


def login_required(f):
    @wraps(f)
    def wrapper(*args, **kwargs):
        if 'user' not in session:
            raise AuthenticationError('Debes iniciar sesión.')
        return f(*args, **kwargs)
    return wrapper


def role_required(*roles):
    """
    Restringe una ruta a ciertos roles.
    Sin sesión → 401; rol no permitido → 403.
    """
    allowed = frozenset(roles)

    def deco(f):
        @wraps(f)
        def wrapper(*args, **kwargs):
            user = current_user()
            if user is None:
                raise AuthenticationError('Debes iniciar sesión.')
            if user.role not in allowed:
                logger.warning("Acceso denegado: %s (%s) a %s", user.email, user.role.value, request.path)
                raise PermissionDeniedError('Permiso denegado.')
            return f(*args, **kwargs)
        return wrapper
    return deco


def verify_csrf(f):
    @wraps(f)
    def wrapper(*args, **kwargs):
        if request.method in MUTATING_METHODS:
            token = session.get('csrf_token')
            form_token = (
                request.headers.get('X-CSRF-Token') or
                request.headers.get('X-CSRFToken') or
                json_body().get('csrf_token')
            )
            if not token or not form_token or token != form_token:
                return {'ok': False, 'error': 'CSRF token inválido'}, 403
        return f(*args, **kwargs)
    return wrapper


def result_response(result):
    """Respuesta para los dicts {'ok': ...} de CartService."""
    if result.get('ok'):
        return result
    status = result.pop('status', 400)
    return result, status


# ═══════════════════════════════════════════════════════════════════════════
# SESIÓN Y NAVEGACIÓN
# ═══════════════════════════════════════════════════════════════════════════

@api.route('/session', methods=['GET'])
def session_info():
    user = current_user()
    return {
        'ok': True,
        'authenticated': user is not None,
        'user': user.to_session() if user else None,
        'csrf_token': generate_csrf_token(),
    }


@api.route('/login', methods=['POST'])
@verify_csrf
def login():
    data = json_body()
    user = get_services().user_service.login(
        as_text(data.get('email'), 'El correo'),
        data.get('password') or '',
    )
    # La sesión nueva no conserva carrito ni token de otro usuario
    session.clear()
    session.permanent = True
    session['user'] = user.to_session()
    return {
        'ok': True,
        'user': user.to_session(),
        'nav': [item.to_dict() for item in filter_nav_items(NAV_ITEMS, user.role)],
        'csrf_token': generate_csrf_token(),
    }


@api.route('/logout', methods=['POST'])
@login_required
@verify_csrf
def logout():
    session.clear()
    return {'ok': True}


@api.route('/nav', methods=['GET'])
def nav():
    user = current_user()
    items = filter_nav_items(NAV_ITEMS, user.role if user else None)
    return {'ok': True, 'items': [item.to_dict() for item in items]}


@api.route('/access', methods=['GET'])
@login_required
def access():
    path = request.args.get('path', '')
    return {'ok': True, 'path': path, 'allowed': can_access(current_user().role, path)}


@api.route('/dashboard', methods=['GET'])
@login_required
def dashboard():
    return {'ok': True, 'summary': get_services().inventory_service.get_dashboard_summary()}


# ═══════════════════════════════════════════════════════════════════════════
# PRODUCTOS
# ═══════════════════════════════════════════════════════════════════════════

@api.route('/products', methods=['GET'])
@login_required
def list_products():
    products = get_services().inventory_service.list_products(
        category_id=request.args.get('categoryId'),
        supplier_id=request.args.get('supplierId'),
        search=request.args.get('q'),
    )
    return {'ok': True, 'products': [p.to_view() for p in products]}


@api.route('/products/<product_id>', methods=['GET'])
@login_required
def get_product(product_id):
    product = get_services().inventory_service.require_product(product_id)
    return {'ok': True, 'product': product.to_view()}


@api.route('/products', methods=['POST'])
@role_required(ADMIN, BODEGA)
@verify_csrf
def create_product():
    product = get_services().inventory_service.create_product(json_body())
    return {'ok': True, 'product': product.to_view()}, 201


@api.route('/products/<product_id>', methods=['PUT'])
@role_required(ADMIN, BODEGA)
@verify_csrf
def update_product(product_id):
    product = get_services().inventory_service.update_product(product_id, json_body())
    return {'ok': True, 'product': product.to_view()}


@api.route('/products/<product_id>', methods=['DELETE'])
@role_required(ADMIN, BODEGA)
@verify_csrf
def delete_product(product_id):
    get_services().inventory_service.delete_product(product_id)
    return {'ok': True}


@api.route('/low-stock', methods=['GET'])
@login_required
def low_stock():
    products = get_services().inventory_service.get_low_stock_products()
    return {'ok': True, 'products': [p.to_view() for p in products]}


@api.route('/s3-upload', methods=['POST'])
@role_required(ADMIN, BODEGA)
@verify_csrf
def s3_upload():
    data = json_body()
    urls = get_services().image_storage.create_upload_url(data.get('filename'), data.get('contentType'))
    return {'ok': True, **urls}


# ═══════════════════════════════════════════════════════════════════════════
# CATEGORÍAS Y PROVEEDORES
# ═══════════════════════════════════════════════════════════════════════════

@api.route('/categories', methods=['GET'])
@login_required
def list_categories():
    categories = get_services().catalog_service.list_categories()
    return {'ok': True, 'categories': [dict(c.to_dict(), id=c.id) for c in categories]}


@api.route('/categories', methods=['POST'])
@role_required(ADMIN, BODEGA)
@verify_csrf
def create_category():
    category = get_services().catalog_service.create_category(json_body())
    return {'ok': True, 'category': dict(category.to_dict(), id=category.id)}, 201


@api.route('/categories/<category_id>', methods=['PUT'])
@role_required(ADMIN, BODEGA)
@verify_csrf
def update_category(category_id):
    category = get_services().catalog_service.update_category(category_id, json_body())
    return {'ok': True, 'category': dict(category.to_dict(), id=category.id)}


@api.route('/categories/<category_id>', methods=['DELETE'])
@role_required(ADMIN, BODEGA)
@verify_csrf
def delete_category(category_id):
    get_services().catalog_service.delete_category(category_id)
    return {'ok': True}


@api.route('/suppliers', methods=['GET'])
@role_required(ADMIN, BODEGA)
def list_suppliers():
    suppliers = get_services().catalog_service.list_suppliers()
    return {'ok': True, 'suppliers': [dict(s.to_dict(), id=s.id) for s in suppliers]}


@api.route('/suppliers', methods=['POST'])
@role_required(ADMIN, BODEGA)
@verify_csrf
def create_supplier():
    supplier = get_services().catalog_service.create_supplier(json_body())
    return {'ok': True, 'supplier': dict(supplier.to_dict(), id=supplier.id)}, 201


@api.route('/suppliers/<supplier_id>', methods=['PUT'])
@role_required(ADMIN, BODEGA)
@verify_csrf
def update_supplier(supplier_id):
    supplier = get_services().catalog_service.update_supplier(supplier_id, json_body())
    return {'ok': True, 'supplier': dict(supplier.to_dict(), id=supplier.id)}


@api.route('/suppliers/<supplier_id>', methods=['DELETE'])
@role_required(ADMIN, BODEGA)
@verify_csrf
def delete_supplier(supplier_id):
    get_services().catalog_service.delete_supplier(supplier_id)
    return {'ok': True}


# ═══════════════════════════════════════════════════════════════════════════
# INGRESOS DE MERCADERÍA
# ═══════════════════════════════════════════════════════════════════════════

@api.route('/goods-receipts', methods=['GET'])
@role_required(ADMIN, BODEGA)
def list_goods_receipts():
    receipts = get_services().goods_receipt_service.list_receipts()
    return {'ok': True, 'receipts': [dict(r.to_dict(), id=r.id) for r in receipts]}


@api.route('/goods-receipts', methods=['POST'])
@role_required(ADMIN, BODEGA)
@verify_csrf
def create_goods_receipt():
    receipt = get_services().goods_receipt_service.register(json_body(), user=current_user())
    return {'ok': True, 'receipt': dict(receipt.to_dict(), id=receipt.id)}, 201


@api.route('/products/<product_id>/receipts', methods=['GET'])
@role_required(ADMIN, BODEGA)
def list_product_receipts(product_id):
    receipts = get_services().goods_receipt_service.list_receipts_for_product(product_id)
    return {'ok': True, 'receipts': [dict(r.to_dict(), id=r.id) for r in receipts]}


# ═══════════════════════════════════════════════════════════════════════════
# USUARIOS
# ═══════════════════════════════════════════════════════════════════════════

@api.route('/users', methods=['GET'])
@role_required(ADMIN)
def list_users():
    users = get_services().user_service.list_users()
    return {'ok': True, 'users': [u.to_session() for u in users]}


@api.route('/users', methods=['POST'])
@role_required(ADMIN)
@verify_csrf
def create_user():
    data = json_body()
    user = get_services().user_service.create_user(
        name=data.get('name'),
        email=data.get('email'),
        password=data.get('password'),
        role=data.get('role') or SELLER,
        avatar=data.get('avatar'),
    )
    return {'ok': True, 'user': user.to_session()}, 201


@api.route('/users/<user_id>', methods=['PUT'])
@role_required(ADMIN)
@verify_csrf
def update_user(user_id):
    user = get_services().user_service.update_user(user_id, json_body())
    return {'ok': True, 'user': user.to_session()}


@api.route('/users/<user_id>', methods=['DELETE'])
@role_required(ADMIN)
@verify_csrf
def delete_user(user_id):
    get_services().user_service.delete_user(user_id, acting_user_id=current_user().id)
    return {'ok': True}


# ═══════════════════════════════════════════════════════════════════════════
# CARRITO Y COBRO
# ═══════════════════════════════════════════════════════════════════════════

@api.route('/carrito', methods=['GET'])
@role_required(ADMIN, SELLER)
def carrito_ver():
    return get_services().cart_service.get_cart()


@api.route('/carrito/agregar', methods=['POST'])
@role_required(ADMIN, SELLER)
@verify_csrf
def carrito_agregar():
    data = json_body()
    result = get_services().cart_service.add_item(data.get('productId'), data.get('quantity', 1))
    return result_response(result)


@api.route('/carrito/actualizar', methods=['POST'])
@role_required(ADMIN, SELLER)
@verify_csrf
def carrito_actualizar():
    data = json_body()
    result = get_services().cart_service.update_quantity(data.get('productId'), data.get('quantity'))
    return result_response(result)


@api.route('/carrito/eliminar', methods=['POST'])
@role_required(ADMIN, SELLER)
@verify_csrf
def carrito_eliminar():
    return result_response(get_services().cart_service.remove_item(json_body().get('productId')))


@api.route('/carrito/limpiar', methods=['POST'])
@role_required(ADMIN, SELLER)
@verify_csrf
def carrito_limpiar():
    return result_response(get_services().cart_service.clear_cart())


@api.route('/carrito/confirmar', methods=['POST'])
@role_required(ADMIN, SELLER)
@verify_csrf
def carrito_confirmar():
    result = get_services().cart_service.checkout(current_user())
    if result.get('ok'):
        return result, 201
    return result_response(result)


# ═══════════════════════════════════════════════════════════════════════════
# VENTAS
# ═══════════════════════════════════════════════════════════════════════════

@api.route('/sales', methods=['GET'])
@role_required(ADMIN)
def list_sales():
    limit = request.args.get('limit', 20, type=int)
    if limit <= 0:
        raise ValidationError('El límite debe ser un entero positivo')
    sales = get_services().sales_service.get_recent_sales(limit)
    return {'ok': True, 'sales': [dict(s.to_dict(), id=s.id) for s in sales]}


@api.route('/sales/<sale_id>', methods=['GET'])
@role_required(ADMIN)
def get_sale(sale_id):
    sale = get_services().sales_service.get_sale(sale_id)
    return {'ok': True, 'sale': dict(sale.to_dict(), id=sale.id)}


# ═══════════════════════════════════════════════════════════════════════════
# REPORTES
# ═══════════════════════════════════════════════════════════════════════════

def _report_range():
    start = request.args.get('start')
    end = request.args.get('end')
    if not start or not end:
        raise ValidationError('Debe indicar fecha de inicio (start) y fin (end)')
    return start, end


@api.route('/reports/sales', methods=['GET'])
@role_required(ADMIN)
def report_sales():
    start, end = _report_range()
    return {'ok': True, **get_services().report_service.sales_summary(start, end)}


@api.route('/reports/sales.pdf', methods=['GET'])
@role_required(ADMIN)
def report_sales_pdf():
    start, end = _report_range()
    pdf = get_services().report_service.export_pdf(start, end)
    filename = f'sales_report_{start}_{end}.pdf'
    return Response(pdf, mimetype='application/pdf',
                    headers={'Content-Disposition': f'attachment;filename={filename}'})


@api.route('/reports/sales.csv', methods=['GET'])
@role_required(ADMIN)
def report_sales_csv():
    start, end = _report_range()
    output = get_services().report_service.export_csv(start, end)
    return Response(output, mimetype='text/csv',
                    headers={'Content-Disposition': f'attachment;filename=ventas_{start}_{end}.csv'})


# ═══════════════════════════════════════════════════════════════════════════
# MANEJO DE ERRORES
# ═══════════════════════════════════════════════════════════════════════════

def handle_domain_error(error: StockPilotError):
    if isinstance(error, ExternalServiceError):
        logger.exception("Fallo de servicio externo en %s %s", request.method, request.path)
    body = {'ok': False, 'error': error.message}
    body.update(error.details)
    return jsonify(body), error.status_code


def handle_http_error(error: HTTPException):
    return jsonify({'ok': False, 'error': error.description}), error.code


def handle_unexpected_error(error: Exception):
    logger.exception("Error inesperado en %s %s", request.method, request.path)
    return jsonify({'ok': False, 'error': 'Error interno del servidor'}), 500


def set_security_headers(response):
    response.headers['X-Frame-Options'] = 'DENY'
    response.headers['X-Content-Type-Options'] = 'nosniff'
    response.headers['Referrer-Policy'] = 'no-referrer-when-downgrade'
    response.headers['Permissions-Policy'] = 'geolocation=(), microphone=()'
    # HSTS solo con HTTPS real
    if request.is_secure:
        response.headers['Strict-Transport-Security'] = 'max-age=31536000; includeSubDomains'
    return response


# ═══════════════════════════════════════════════════════════════════════════
# FÁBRICA DE LA APLICACIÓN
# ═══════════════════════════════════════════════════════════════════════════

def configure_logging(debug: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
    )


def create_app(container: AppContainer = None, config: Config = None) -> Flask:
    """
    Construye la app Flask.

    Args:
        container: Contenedor de dependencias (por defecto el global)
        config: Configuración si no se pasa contenedor

    Returns:
        App lista para servir
    """
    if container is None:
        container = AppContainer.get_instance(config)
    config = container.config

    app = Flask(__name__)
    app.config.update(config.flask_settings())
    app.json.ensure_ascii = False
    app.extensions['stockpilot'] = container

    init_profiling(app, logs_dir=config.logs_dir, enabled=config.enable_profiling)

    app.register_blueprint(api)
    app.register_error_handler(StockPilotError, handle_domain_error)
    app.register_error_handler(HTTPException, handle_http_error)
    app.register_error_handler(Exception, handle_unexpected_error)
    app.after_request(set_security_headers)

    if config.admin_email and config.admin_password:
        container.user_service.ensure_initial_admin(config.admin_email, config.admin_password)

    return app


if __name__ == '__main__':
    # Desarrollo local y acceso desde red WiFi; en producción usar wsgi.py
    cfg = Config.from_env()
    configure_logging(cfg.debug)
    create_app(config=cfg).run(host=cfg.host, port=cfg.port, debug=cfg.debug)
