from .admin_checkout_command import AdminCheckoutCommand, AdminCheckoutCommandHandler
from .create_payment_intent_command import (
    FREE_CHECKOUT_CLIENT_SECRET,
    CreatePaymentIntentCommand,
    CreatePaymentIntentCommandHandler,
)
from .create_user_command import CreateUserCommand, CreateUserCommandHandler, generate_temporary_password
from .free_trial_checkout_command import FreeTrialCheckoutCommand, FreeTrialCheckoutCommandHandler
from .public_signup_command import PublicSignupCommand, PublicSignupCommandHandler

__all__ = [
    "AdminCheckoutCommand",
    "AdminCheckoutCommandHandler",
    "CreatePaymentIntentCommand",
    "CreatePaymentIntentCommandHandler",
    "CreateUserCommand",
    "CreateUserCommandHandler",
    "FREE_CHECKOUT_CLIENT_SECRET",
    "FreeTrialCheckoutCommand",
    "FreeTrialCheckoutCommandHandler",
    "PublicSignupCommand",
    "PublicSignupCommandHandler",
    "generate_temporary_password",
]
