# ==============================================================================
# CONFIGURACIÓN - Variables de entorno
# ==============================================================================
# Toda la configuración se lee del entorno al construir Config.
# Comando: export STOCKPILOT_SECRET_KEY="tu_clave_secreta_muy_larga_y_aleatoria"
# ==============================================================================

import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

_DEFAULT_SECRET = 'stockpilot_dev_secret_key_change_in_production'
_TRUTHY = ('1', 'true', 'yes', 'on')


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in _TRUTHY


@dataclass
class S3Settings:
    """Credenciales y destino del bucket de imágenes."""
    region: str = ''
    access_key_id: str = ''
    secret_access_key: str = ''
    bucket_name: str = ''

    @property
    def is_configured(self) -> bool:
        return bool(self.region and self.bucket_name)

    @property
    def public_url_prefix(self) -> str:
        """https://<bucket>.s3.<region>.amazonaws.com/"""
        return f'https://{self.bucket_name}.s3.{self.region}.amazonaws.com/'


@dataclass
class Config:
    """
    Configuración de la aplicación.

    Attributes:
        secret_key: Clave de firma de sesiones de Flask
        data_dir: Directorio de los archivos JSON del almacén
        production: Modo producción (exige STOCKPILOT_SECRET_KEY)
        enable_profiling: Activa performance_logger
        logs_dir: Directorio de logs de rendimiento
        admin_email: Correo del administrador inicial (si no hay usuarios)
        admin_password: Contraseña del administrador inicial
        s3: Configuración de S3 para imágenes
    """
    secret_key: str = _DEFAULT_SECRET
    data_dir: str = 'data'
    production: bool = False
    enable_profiling: bool = True
    logs_dir: str = 'logs'
    host: str = '0.0.0.0'
    port: int = 5000
    debug: bool = False
    admin_email: str = ''
    admin_password: str = ''
    s3: S3Settings = field(default_factory=S3Settings)

    @classmethod
    def from_env(cls, base_path: Optional[str] = None) -> 'Config':
        """
        Construye la configuración desde variables de entorno.

        Args:
            base_path: Directorio base para data/ y logs/ (por defecto el cwd)
        """
        base_path = base_path or os.getcwd()
        secret = os.environ.get('STOCKPILOT_SECRET_KEY')
        production = _env_flag('STOCKPILOT_PRODUCTION')

        if production and not secret:
            logger.warning("Modo producción activo sin STOCKPILOT_SECRET_KEY definida")

        return cls(
            secret_key=secret or _DEFAULT_SECRET,
            data_dir=os.environ.get('STOCKPILOT_DATA_DIR') or os.path.join(base_path, 'data'),
            production=production,
            enable_profiling=_env_flag('STOCKPILOT_ENABLE_PROFILING', default=True),
            logs_dir=os.environ.get('STOCKPILOT_LOGS_DIR') or os.path.join(base_path, 'logs'),
            host=os.environ.get('FLASK_HOST', '0.0.0.0'),
            port=int(os.environ.get('FLASK_PORT', 5000)),
            debug=os.environ.get('FLASK_DEBUG', '0') == '1',
            admin_email=os.environ.get('STOCKPILOT_ADMIN_EMAIL', ''),
            admin_password=os.environ.get('STOCKPILOT_ADMIN_PASSWORD', ''),
            s3=S3Settings(
                region=os.environ.get('AWS_REGION', ''),
                access_key_id=os.environ.get('AWS_ACCESS_KEY_ID', ''),
                secret_access_key=os.environ.get('AWS_SECRET_ACCESS_KEY', ''),
                bucket_name=os.environ.get('S3_BUCKET_NAME', ''),
            ),
        )

    def flask_settings(self) -> Dict[str, Any]:
        """Configuración de cookies de sesión, compatible con acceso por IP local."""
        return {
            'SECRET_KEY': self.secret_key,
            'SESSION_COOKIE_HTTPONLY': True,
            'SESSION_COOKIE_SECURE': self.production,
            'SESSION_COOKIE_SAMESITE': 'Lax',
            'SESSION_COOKIE_DOMAIN': None,
            'PERMANENT_SESSION_LIFETIME': 86400,  # 24 horas
            'MAX_CONTENT_LENGTH': 5 * 1024 * 1024,
        }
