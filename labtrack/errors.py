# labtrack/errors.py


class ServiceError(Exception):
    """Base class for rejections raised by the service layer."""


class NotFoundError(ServiceError):
    """Requested row does not exist."""

    def __init__(self, entity, entity_id):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found")


class PermissionDeniedError(ServiceError):
    pass


class WorkflowError(ServiceError):
    """Invalid state transition or business rule violation."""
