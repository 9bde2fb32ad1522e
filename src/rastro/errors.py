class RastroError(Exception):
    """Base class for errors raised while handling tracking updates."""


class InvalidPayload(RastroError):
    """Webhook body is malformed or does not match the tracking schema."""


class AuthError(RastroError):
    """Webhook caller did not present the shared secret."""


class ResolverError(RastroError):
    """Persisted-store failure while looking up or relinking a shipment."""


class TemplateFanoutError(RastroError):
    """Rendering or relaying a template message failed."""
