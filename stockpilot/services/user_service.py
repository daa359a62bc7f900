# ==============================================================================
# SERVICIO DE USUARIOS
# ==============================================================================
# Centraliza toda la lógica de negocio relacionada con usuarios.
#
# Cada usuario tiene dos partes:
# - una cuenta en el proveedor de identidad (correo + contraseña)
# - un registro en 'users' con nombre y rol, cuya clave es el uid de la cuenta
#
# REGLA: siempre debe quedar al menos un administrador. No se puede
# eliminar ni degradar al último admin. Esta validación se hace AQUÍ,
# no en las rutas.
# ==============================================================================

import logging
from typing import Any, Dict, List, Optional

from stockpilot.errors import (
    AuthenticationError,
    NotFoundError,
    PermissionDeniedError,
    StockPilotError,
    ValidationError,
)
from stockpilot.models import User, UserRole, as_text, normalize_role, utcnow_iso
from stockpilot.repositories import IIdentityProvider, UserRepository

logger = logging.getLogger(__name__)


class UserService:
    """
    Servicio para gestión de usuarios.

    Responsabilidades:
    - Autenticación (login)
    - CRUD de usuarios (cuenta + registro)
    - Protección del último administrador
    """

    def __init__(self, user_repo: UserRepository, identity: IIdentityProvider):
        """
        Inicializa el servicio de usuarios.

        Args:
            user_repo: Repositorio de registros de usuario
            identity: Proveedor de identidad (cuentas)
        """
        self.user_repo = user_repo
        self.identity = identity

    # =========================================================================
    # AUTENTICACIÓN
    # =========================================================================

    def login(self, email: str, password: str) -> User:
        """
        Autentica y carga el registro del usuario.

        Args:
            email: Correo
            password: Contraseña

        Returns:
            User con su rol

        Raises:
            AuthenticationError: credenciales inválidas o cuenta sin registro
        """
        if not email or not password:
            raise AuthenticationError('Correo y contraseña son requeridos')

        uid = self.identity.sign_in(email, password)
        user = self.user_repo.get(uid)
        if user is None:
            logger.error("Cuenta %s autenticada pero sin registro en users", uid)
            raise AuthenticationError('No se encontraron los datos del usuario')

        logger.info("Login exitoso: %s (%s)", user.email, user.role.value)
        return user

    # =========================================================================
    # CONSULTAS
    # =========================================================================

    def get_user(self, user_id: str) -> User:
        user = self.user_repo.get(user_id)
        if user is None:
            raise NotFoundError('Usuario no encontrado')
        return user

    def list_users(self) -> List[User]:
        """Usuarios ordenados por nombre."""
        return sorted(self.user_repo.list(), key=lambda u: u.name.lower())

    def _count_admins(self) -> int:
        return sum(1 for u in self.user_repo.list() if u.is_admin())

    # =========================================================================
    # ALTA / EDICIÓN / BAJA
    # =========================================================================

    def create_user(
        self,
        name: str,
        email: str,
        password: str,
        role: Any = UserRole.SELLER,
        avatar: Optional[str] = None,
    ) -> User:
        """
        Crea cuenta y registro.

        Si el registro no se puede guardar, la cuenta recién creada se
        elimina para no dejar identidades huérfanas.

        Args:
            name: Nombre visible
            email: Correo (único)
            password: Contraseña (mínimo 6 caracteres)
            role: Rol; uno desconocido se guarda como seller
            avatar: URL opcional

        Raises:
            ValidationError: datos faltantes, contraseña corta o correo duplicado
        """
        name = as_text(name, 'El nombre')
        email = as_text(email, 'El correo').lower()
        if not name:
            raise ValidationError('El nombre es requerido')
        if not email:
            raise ValidationError('El correo es requerido')

        uid = self.identity.create_account(email, password)
        now = utcnow_iso()
        user = User(
            id=uid,
            name=name,
            email=email,
            role=normalize_role(role) or UserRole.SELLER,
            avatar=as_text(avatar, 'El avatar') or None,
            created_at=now,
            updated_at=now,
        )
        try:
            self.user_repo.save(user)
        except StockPilotError:
            logger.error("No se pudo guardar el registro de %s; se revierte la cuenta", email)
            self.identity.delete_account(uid)
            raise

        logger.info("Usuario creado: %s (%s)", email, user.role.value)
        return user

    def update_user(self, user_id: str, data: Dict[str, Any]) -> User:
        """
        Actualiza nombre, rol, avatar y opcionalmente la contraseña.
        El correo no se puede cambiar.

        Args:
            user_id: uid del usuario
            data: {'name'?, 'role'?, 'avatar'?, 'password'?}

        Raises:
            NotFoundError: no existe
            ValidationError: nombre vacío o rol inválido
            PermissionDeniedError: se intenta degradar al último admin
        """
        user = self.get_user(user_id)
        fields: Dict[str, Any] = {}

        if 'name' in data:
            name = as_text(data.get('name'), 'El nombre')
            if not name:
                raise ValidationError('El nombre es requerido')
            fields['name'] = name

        if 'role' in data and data.get('role'):
            new_role = normalize_role(data['role'])
            if new_role is None:
                raise ValidationError(f"Rol inválido: {data['role']}")
            if user.is_admin() and new_role != UserRole.ADMIN and self._count_admins() <= 1:
                raise PermissionDeniedError('No se puede quitar el rol al último administrador')
            fields['role'] = new_role.value

        if 'avatar' in data:
            fields['avatar'] = as_text(data.get('avatar'), 'El avatar')

        if data.get('password'):
            self.identity.update_password(user_id, data['password'])

        if fields:
            fields['updatedAt'] = utcnow_iso()
            self.user_repo.update(user_id, fields)
            logger.info("Usuario actualizado: %s (%s)", user.email, ', '.join(sorted(fields)))
        return self.get_user(user_id)

    def delete_user(self, user_id: str, acting_user_id: Optional[str] = None) -> None:
        """
        Elimina registro y cuenta.

        Args:
            user_id: uid a eliminar
            acting_user_id: uid de quien elimina (no puede eliminarse a sí mismo)

        Raises:
            NotFoundError: no existe
            PermissionDeniedError: auto-eliminación o último admin
        """
        user = self.get_user(user_id)
        if acting_user_id and acting_user_id == user_id:
            raise PermissionDeniedError('No puedes eliminar tu propio usuario')
        if user.is_admin() and self._count_admins() <= 1:
            raise PermissionDeniedError('No se puede eliminar al último administrador')

        self.user_repo.delete(user_id)
        if not self.identity.delete_account(user_id):
            logger.warning("Usuario %s eliminado pero la cuenta no existía", user.email)
        logger.info("Usuario eliminado: %s", user.email)

    def ensure_initial_admin(self, email: str, password: str, name: str = 'Administrador') -> Optional[User]:
        """
        Crea un administrador si todavía no hay usuarios.

        Returns:
            El admin creado, o None si ya había usuarios
        """
        if self.user_repo.count() > 0:
            return None
        logger.info("Sin usuarios registrados; creando administrador inicial %s", email)
        return self.create_user(name, email, password, UserRole.ADMIN)
