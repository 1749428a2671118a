class DomainError(Exception):
    """Base for domain-level errors."""


class ResourceNotFound(DomainError):
    pass


class ValidationFailed(DomainError):
    pass


class ConflictError(DomainError):
    pass


class AccessDenied(DomainError):
    """Requester may not read or modify the resource."""


class ServiceUnavailable(DomainError):
    pass
