from .identity_provider import ActorCredentials, IdentityProvider
from .notification_sink import NotificationSink
from .payment_gateway import ChargeResult, CustomerRequest, PaymentGateway, PaymentIntent
from .program_catalog import Program, ProgramCatalog
from .tenant_store import TenantStore

__all__ = [
    "ActorCredentials",
    "ChargeResult",
    "CustomerRequest",
    "IdentityProvider",
    "NotificationSink",
    "PaymentGateway",
    "PaymentIntent",
    "Program",
    "ProgramCatalog",
    "TenantStore",
]
