# ==============================================================================
# STOCKPILOT - Inventario y punto de venta con acceso por rol
# ==============================================================================
# Capas:
#   models/        → Entidades (dataclasses) y roles
#   repositories/  → Almacén de documentos y repositorios por colección
#   services/      → Lógica de negocio
#   navigation.py  → Menú y rutas permitidas por rol
#   main.py        → API JSON con Flask (create_app)
# ==============================================================================

__version__ = '1.0.0'
