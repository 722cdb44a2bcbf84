"""
Errores del dominio.

Los errores del repositorio se propagan al llamador con la causa
original encadenada (raise ... from exc).
"""


class ConvivirError(Exception):
    """Error base del sistema."""


class NotAuthenticated(ConvivirError):
    """Operación que requiere un usuario identificado."""

    def __init__(self, operation: str):
        super().__init__(f"Se requiere un usuario autenticado para {operation}")
        self.operation = operation


class ProfileNotFound(ConvivirError):
    """El usuario no tiene perfil de roommate."""

    def __init__(self, user_id: str):
        super().__init__(f"No existe perfil para el usuario {user_id}")
        self.user_id = user_id


class ProfileValidationError(ConvivirError):
    """Datos de perfil inválidos. Se detecta antes de tocar el repositorio."""

    def __init__(self, errors: list[str]):
        super().__init__("; ".join(errors))
        self.errors = errors


class RepositoryUnavailable(ConvivirError):
    """Fallo de red o permisos en el repositorio de perfiles."""
