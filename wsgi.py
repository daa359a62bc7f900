# ==============================================================================
# WSGI Entry Point - Para Gunicorn/Waitress en producción
# ==============================================================================
# USO:
#   gunicorn wsgi:app --bind 0.0.0.0:$PORT
#
# ESTRUCTURA DEL PROYECTO:
#   repo_root/           <- Directorio de trabajo (en sys.path automáticamente)
#   ├── wsgi.py          <- Este archivo
#   ├── pyproject.toml
#   └── stockpilot/      <- Paquete Python
#       ├── main.py
#       ├── services/
#       └── repositories/
#
# La configuración se lee de variables de entorno (ver stockpilot/config.py).
# ==============================================================================

from stockpilot.config import Config
from stockpilot.main import configure_logging, create_app

config = Config.from_env()
configure_logging(config.debug)
app = create_app(config=config)

if __name__ == '__main__':
    app.run(debug=config.debug, host=config.host, port=config.port)
