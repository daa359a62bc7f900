# ==============================================================================
# SERVICIO DE IMÁGENES - Bucket S3
# ==============================================================================
# El navegador sube la imagen directo a S3 con una URL pre-firmada (PUT);
# el servidor solo firma y, al eliminar un producto, borra el objeto.
# Un fallo al borrar nunca interrumpe la operación que lo originó.
# ==============================================================================

import logging
from typing import Any, Dict, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from werkzeug.utils import secure_filename

from stockpilot.config import S3Settings
from stockpilot.errors import ExternalServiceError, ValidationError
from stockpilot.models import as_text

logger = logging.getLogger(__name__)

UPLOAD_PREFIX = 'products/'
UPLOAD_URL_EXPIRES = 300  # 5 minutos
ALLOWED_CONTENT_TYPES = frozenset([
    'image/png', 'image/jpeg', 'image/gif', 'image/webp',
])


class ImageStorageService:
    """
    Firma subidas y elimina imágenes de productos en S3.

    Args:
        settings: Región, credenciales y bucket
        client: Cliente boto3 ya construido (opcional, para tests)
    """

    def __init__(self, settings: S3Settings, client: Any = None):
        self.settings = settings
        self._client = client

    @property
    def is_configured(self) -> bool:
        return self.settings.is_configured

    @property
    def client(self):
        if self._client is None:
            self._client = boto3.client(
                's3',
                region_name=self.settings.region,
                aws_access_key_id=self.settings.access_key_id or None,
                aws_secret_access_key=self.settings.secret_access_key or None,
            )
            logger.info("Cliente S3 inicializado para bucket %s", self.settings.bucket_name)
        return self._client

    def public_url(self, key: str) -> str:
        return f'{self.settings.public_url_prefix}{key}'

    def key_from_url(self, url: Optional[str]) -> Optional[str]:
        """
        Clave del objeto si la URL pertenece a este bucket.

        Args:
            url: URL pública guardada en el producto

        Returns:
            Clave S3, o None si la URL es de otro origen o está vacía
        """
        if not url or not self.is_configured:
            return None
        prefix = self.settings.public_url_prefix
        if not url.startswith(prefix):
            return None
        key = url[len(prefix):].strip()
        return key or None

    def create_upload_url(self, filename: str, content_type: str) -> Dict[str, str]:
        """
        URL pre-firmada para subir una imagen con PUT.

        Args:
            filename: Nombre de archivo (ya único, generado por el cliente)
            content_type: MIME de la imagen

        Returns:
            {'uploadUrl': URL firmada, 'publicUrl': URL final del objeto}

        Raises:
            ValidationError: faltan datos o el tipo no es una imagen
            ExternalServiceError: S3 no configurado o error al firmar
        """
        filename = as_text(filename, 'El nombre de archivo')
        content_type = as_text(content_type, 'El tipo de contenido')
        if not filename or not content_type:
            raise ValidationError('Se requieren el nombre de archivo (filename) y el tipo (contentType)')
        if content_type not in ALLOWED_CONTENT_TYPES:
            raise ValidationError(f'Tipo de archivo no permitido: {content_type}')
        safe_name = secure_filename(filename)
        if not safe_name:
            raise ValidationError('Nombre de archivo inválido')
        if not self.is_configured:
            logger.error("S3 no configurado: faltan AWS_REGION o S3_BUCKET_NAME")
            raise ExternalServiceError('Error de configuración del servidor: S3 no está configurado.')

        key = f'{UPLOAD_PREFIX}{safe_name}'
        try:
            upload_url = self.client.generate_presigned_url(
                'put_object',
                Params={
                    'Bucket': self.settings.bucket_name,
                    'Key': key,
                    'ContentType': content_type,
                    'ACL': 'public-read',
                },
                ExpiresIn=UPLOAD_URL_EXPIRES,
            )
        except (ClientError, BotoCoreError) as e:
            logger.error("Error generando URL pre-firmada para %s: %s", key, e)
            raise ExternalServiceError('No se pudo generar la URL pre-firmada') from e

        return {'uploadUrl': upload_url, 'publicUrl': self.public_url(key)}

    def delete_image(self, url: Optional[str]) -> bool:
        """
        Elimina el objeto referenciado por una URL pública.

        Returns:
            True si se eliminó; False si no aplica o falló (solo se registra)
        """
        if not url:
            return False
        if not self.is_configured:
            logger.warning("S3 no configurado; no se elimina la imagen %s", url)
            return False
        key = self.key_from_url(url)
        if key is None:
            logger.info("La imagen %s no pertenece al bucket; se omite", url)
            return False

        try:
            self.client.delete_object(Bucket=self.settings.bucket_name, Key=key)
            logger.info("Imagen eliminada de S3: %s", key)
            return True
        except (ClientError, BotoCoreError) as e:
            logger.error("No se pudo eliminar la imagen %s de S3: %s", key, e)
            return False
