from .firebase_identity_provider import FirebaseIdentityProvider
from .smtp_notification_sink import SmtpNotificationSink
from .stripe_payment_gateway import StripePaymentGateway

__all__ = ["FirebaseIdentityProvider", "SmtpNotificationSink", "StripePaymentGateway"]
