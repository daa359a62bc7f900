# ==============================================================================
# REPOSITORIO DE USUARIOS
# ==============================================================================
# Encapsula el acceso a la colección 'users'.
# A diferencia del resto, la clave del documento NO se genera: es el uid
# que entrega el proveedor de identidad.
# ==============================================================================

from stockpilot.models import User
from stockpilot.repositories.base import CollectionRepository


class UserRepository(CollectionRepository[User]):
    """
    Repositorio para registros de usuario.

    Formato:
    {
        "<uid>": {"name": "...", "email": "...", "role": "admin", ...}
    }
    """

    COLLECTION = 'users'
    MODEL = User

    def save(self, user: User) -> None:
        """
        Crea o reemplaza el registro bajo user.id.

        Args:
            user: Usuario con id = uid de la identidad
        """
        self.store.set(self.COLLECTION, user.id, user.to_dict())
