# ==============================================================================
# PROVEEDOR DE IDENTIDAD LOCAL
# ==============================================================================
# Cuentas correo/contraseña guardadas en la colección 'accounts' con hashes
# de werkzeug. El uid devuelto es la clave del documento en 'users'.
# ==============================================================================

import logging

from werkzeug.security import check_password_hash, generate_password_hash

from stockpilot.errors import AuthenticationError, NotFoundError, ValidationError
from stockpilot.models import as_text, utcnow_iso
from stockpilot.repositories.interfaces import IDocumentStore

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6


def _check_password(password) -> None:
    if not isinstance(password, str):
        raise ValidationError('La contraseña debe ser texto')
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(
            f'La contraseña debe tener al menos {MIN_PASSWORD_LENGTH} caracteres'
        )


class LocalIdentityProvider:
    """Implementación de IIdentityProvider sobre el almacén de documentos."""

    COLLECTION = 'accounts'

    def __init__(self, store: IDocumentStore):
        self.store = store

    @staticmethod
    def _normalize_email(email: str) -> str:
        return as_text(email, 'El correo').lower()

    def _find_uid(self, email: str):
        docs = self.store.query(self.COLLECTION, where=[('email', '==', email)])
        return docs[0] if docs else (None, None)

    def sign_in(self, email: str, password: str) -> str:
        """
        Verifica credenciales.

        Returns:
            uid de la cuenta

        Raises:
            AuthenticationError: correo o contraseña incorrectos
        """
        uid, account = self._find_uid(self._normalize_email(email))
        valid = (
            uid is not None and
            isinstance(password, str) and
            check_password_hash(account.get('passwordHash', ''), password)
        )
        if not valid:
            logger.info("Intento de login fallido para %s", email)
            raise AuthenticationError('Correo o contraseña incorrectos')
        return uid

    def create_account(self, email: str, password: str) -> str:
        email = self._normalize_email(email)
        if not email:
            raise ValidationError('El correo es requerido')
        _check_password(password)

        def create(tx) -> str:
            # Verificación y alta bajo el mismo lock
            if self._find_uid(email)[0]:
                raise ValidationError('Ya existe una cuenta con ese correo')
            return tx.create(self.COLLECTION, {
                'email': email,
                'passwordHash': generate_password_hash(password),
                'createdAt': utcnow_iso(),
            })

        return self.store.run_transaction(create)

    def update_password(self, uid: str, password: str) -> None:
        _check_password(password)
        if self.store.get(self.COLLECTION, uid) is None:
            raise NotFoundError('Cuenta no encontrada')
        self.store.update(self.COLLECTION, uid, {'passwordHash': generate_password_hash(password)})

    def delete_account(self, uid: str) -> bool:
        return self.store.delete(self.COLLECTION, uid)
