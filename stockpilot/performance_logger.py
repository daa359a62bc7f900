# ==============================================================================
# SISTEMA DE PROFILING INTERNO
# ==============================================================================
# Mide rendimiento de rutas y funciones sin afectar la experiencia del usuario.
# Los registros van a loggers dedicados con archivos en logs/:
#   performance.log     → todas las rutas
#   slow_routes.log     → rutas sobre los umbrales
#   slow_functions.log  → funciones decoradas sobre los umbrales
#
# ACTIVAR/DESACTIVAR: STOCKPILOT_ENABLE_PROFILING (ver config.py)
# ==============================================================================

import logging
import os
import threading
import time
from collections import defaultdict
from functools import wraps
from typing import Any, Dict, Optional

# ═══════════════════════════════════════════════════════════════════════════
# CONFIGURACIÓN
# ═══════════════════════════════════════════════════════════════════════════

# Umbrales de tiempo (en milisegundos)
THRESHOLD_WARNING = 300
THRESHOLD_CRITICAL = 700

PERFORMANCE_LOGGER = 'stockpilot.performance'
SLOW_ROUTES_LOGGER = 'stockpilot.performance.slow_routes'
SLOW_FUNCTIONS_LOGGER = 'stockpilot.performance.slow_functions'

_LOG_FILES = {
    PERFORMANCE_LOGGER: 'performance.log',
    SLOW_ROUTES_LOGGER: 'slow_routes.log',
    SLOW_FUNCTIONS_LOGGER: 'slow_functions.log',
}

# Nombres legibles para los logs
ROUTE_NAMES = {
    'POST /api/login': 'Iniciar sesión',
    'POST /api/logout': 'Cerrar sesión',
    'GET /api/dashboard': 'Ver panel principal',
    'GET /api/products': 'Listar productos',
    'POST /api/products': 'Crear producto',
    'PUT /api/products/<product_id>': 'Editar producto',
    'DELETE /api/products/<product_id>': 'Eliminar producto',
    'GET /api/low-stock': 'Ver stock bajo',
    'POST /api/goods-receipts': 'Registrar ingreso',
    'GET /api/products/<product_id>/receipts': 'Ver ingresos del producto',
    'GET /api/sales': 'Listar ventas recientes',
    'GET /api/sales/<sale_id>': 'Ver venta',
    'GET /api/carrito': 'Ver carrito',
    'POST /api/carrito/agregar': 'Agregar al carrito',
    'POST /api/carrito/actualizar': 'Actualizar cantidad',
    'POST /api/carrito/eliminar': 'Eliminar del carrito',
    'POST /api/carrito/limpiar': 'Vaciar carrito',
    'POST /api/carrito/confirmar': 'Confirmar venta',
    'GET /api/reports/sales': 'Ver informe de ventas',
    'GET /api/reports/sales.pdf': 'Exportar ventas PDF',
    'GET /api/reports/sales.csv': 'Exportar ventas CSV',
    'POST /api/s3-upload': 'Solicitar URL de subida',
}

_state = {'enabled': True}

# Estructura: {nombre_funcion: {calls: int, total_time: float, max_time: float}}
_function_stats = defaultdict(lambda: {'calls': 0, 'total_time': 0.0, 'max_time': 0.0})
_stats_lock = threading.Lock()


# ═══════════════════════════════════════════════════════════════════════════
# INICIALIZACIÓN
# ═══════════════════════════════════════════════════════════════════════════

def is_enabled() -> bool:
    return _state['enabled']


def set_enabled(enabled: bool) -> None:
    _state['enabled'] = bool(enabled)


def configure_log_files(logs_dir: str) -> None:
    """
    Asocia cada logger de rendimiento a su archivo en logs_dir.
    Llamar más de una vez no duplica handlers.
    """
    os.makedirs(logs_dir, exist_ok=True)
    formatter = logging.Formatter('%(asctime)s [%(levelname)s] %(message)s', '%Y-%m-%d %H:%M:%S')
    for logger_name, filename in _LOG_FILES.items():
        target = os.path.abspath(os.path.join(logs_dir, filename))
        log = logging.getLogger(logger_name)
        log.setLevel(logging.INFO)
        log.propagate = False
        if any(getattr(h, 'baseFilename', None) == target for h in log.handlers):
            continue
        handler = logging.FileHandler(target, encoding='utf-8', delay=True)
        handler.setFormatter(formatter)
        log.addHandler(handler)


def _get_route_name(method: str, path: str, rule: Optional[str] = None) -> str:
    """Nombre legible para una ruta; si no está en ROUTE_NAMES, la ruta raw."""
    for candidate in (path, rule):
        if candidate and f'{method} {candidate}' in ROUTE_NAMES:
            return ROUTE_NAMES[f'{method} {candidate}']
    return f'{method} {path}'


# ═══════════════════════════════════════════════════════════════════════════
# 1️⃣ PROFILING DE RUTAS
# ═══════════════════════════════════════════════════════════════════════════

def log_route_performance(method, path, rule, time_ms, user=None):
    """
    Registra el rendimiento de una ruta; si supera un umbral también en
    slow_routes.

    Args:
        method: GET, POST, etc.
        path: Ruta solicitada (/api/carrito/agregar)
        rule: Regla de Flask (/api/products/<product_id>)
        time_ms: Tiempo en milisegundos
        user: Correo del usuario (opcional)
    """
    if not is_enabled():
        return

    action = _get_route_name(method, path, rule)
    user_str = user or 'anónimo'
    logging.getLogger(PERFORMANCE_LOGGER).info(
        "%s | usuario=%s | %s %s | %.0f ms", action, user_str, method, path, time_ms
    )

    if time_ms >= THRESHOLD_CRITICAL:
        level, threshold = logging.CRITICAL, THRESHOLD_CRITICAL
    elif time_ms >= THRESHOLD_WARNING:
        level, threshold = logging.WARNING, THRESHOLD_WARNING
    else:
        return
    logging.getLogger(SLOW_ROUTES_LOGGER).log(
        level, "Ruta lenta: %s | usuario=%s | %s %s | %.0f ms (umbral: %d ms)",
        action, user_str, method, path, time_ms, threshold,
    )


# ═══════════════════════════════════════════════════════════════════════════
# 2️⃣ HOOKS PARA FLASK (before/after request)
# ═══════════════════════════════════════════════════════════════════════════

def init_profiling(app, logs_dir: Optional[str] = None, enabled: bool = True):
    """
    Inicializa el sistema de profiling en una app Flask.
    Registra hooks before_request y after_request.
    """
    set_enabled(enabled)
    if not enabled:
        return
    if logs_dir:
        configure_log_files(logs_dir)

    from flask import g, request, session

    @app.before_request
    def _start_timer():
        g.start_time = time.perf_counter()

    @app.after_request
    def _log_request(response):
        start = g.get('start_time')
        if start is None or request.path.startswith('/static'):
            return response

        elapsed = (time.perf_counter() - start) * 1000
        rule = str(request.url_rule) if request.url_rule else request.path
        user = (session.get('user') or {}).get('email')
        log_route_performance(request.method, request.path, rule, elapsed, user)
        return response


# ═══════════════════════════════════════════════════════════════════════════
# 3️⃣ DECORADOR PARA FUNCIONES CLAVE
# ═══════════════════════════════════════════════════════════════════════════

def profile_function(func=None, name=None):
    """
    Decorador para medir rendimiento de funciones críticas.

    Uso:
        @profile_function
        def mi_funcion():
            ...

        @profile_function(name="Finalizar venta")
        def finalize_sale():
            ...
    """
    def decorator(fn):
        func_name = name or fn.__qualname__

        @wraps(fn)
        def wrapper(*args, **kwargs):
            if not is_enabled():
                return fn(*args, **kwargs)
            start = time.perf_counter()
            try:
                return fn(*args, **kwargs)
            finally:
                elapsed_ms = (time.perf_counter() - start) * 1000
                with _stats_lock:
                    stats = _function_stats[func_name]
                    stats['calls'] += 1
                    stats['total_time'] += elapsed_ms
                    if elapsed_ms > stats['max_time']:
                        stats['max_time'] = elapsed_ms

                if elapsed_ms >= THRESHOLD_WARNING:
                    level = logging.CRITICAL if elapsed_ms >= THRESHOLD_CRITICAL else logging.WARNING
                    logging.getLogger(SLOW_FUNCTIONS_LOGGER).log(
                        level, "Función lenta: %s | %.0f ms", func_name, elapsed_ms
                    )

        return wrapper

    # Permitir uso sin paréntesis: @profile_function
    if func is not None:
        return decorator(func)
    return decorator


# ═══════════════════════════════════════════════════════════════════════════
# 4️⃣ ESTADÍSTICAS
# ═══════════════════════════════════════════════════════════════════════════

def get_function_stats() -> Dict[str, Dict[str, Any]]:
    """
    Obtiene estadísticas de todas las funciones perfiladas.

    Returns:
        dict: {nombre: {calls, avg_time, max_time}}
    """
    with _stats_lock:
        result = {}
        for func_name, stats in _function_stats.items():
            calls = stats['calls']
            avg = stats['total_time'] / calls if calls > 0 else 0
            result[func_name] = {
                'calls': calls,
                'avg_time': round(avg, 2),
                'max_time': round(stats['max_time'], 2),
            }
        return result


def reset_stats():
    """Reinicia todas las estadísticas (útil para testing)"""
    with _stats_lock:
        _function_stats.clear()


__all__ = [
    'THRESHOLD_WARNING',
    'THRESHOLD_CRITICAL',
    'init_profiling',
    'profile_function',
    'log_route_performance',
    'get_function_stats',
    'reset_stats',
    'set_enabled',
    'is_enabled',
]
