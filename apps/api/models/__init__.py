"""Models package."""

from .user import User
from .creation import Creation
from .credit_transaction import CreditTransaction
from .payment import Payment
from .payment_session import PaymentSession
