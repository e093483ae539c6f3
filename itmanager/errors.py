class CustodyError(Exception):
    """Error de negocio que se muestra al usuario como mensaje flash."""


class ValidationError(CustodyError):
    """Datos incompletos o inválidos; se lanza antes de cualquier escritura."""


class InvalidTransition(CustodyError):
    """Cambio de estado no permitido para el equipo o la asignación."""


class DuplicateSerial(ValidationError):
    def __init__(self, message="Ya existe un equipo con ese número de serie"):
        super().__init__(message)


class DocumentError(CustodyError):
    pass


class RequestTransitionError(CustodyError):
    pass
