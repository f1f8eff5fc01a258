"""
Payment collaborator.

Only the intent-creation step is needed: checkout asks for a client secret that
the browser uses to finish payment with the provider. ``FakePaymentGateway``
stands in for a real provider.
"""

import logging
import secrets

from pydantic import BaseModel

from storefront import config

logger = logging.getLogger("storefront.payments")


class PaymentError(Exception):
    pass


class PaymentIntent(BaseModel):
    client_secret: str
    amount: int
    currency: str


class PaymentGateway:
    def create_intent(self, amount: int, currency: str) -> PaymentIntent:
        raise NotImplementedError


class FakePaymentGateway(PaymentGateway):
    def create_intent(self, amount: int, currency: str) -> PaymentIntent:
        if amount < 0:
            raise PaymentError("Amount must not be negative")
        intent_id = f"pi_{secrets.token_hex(12)}"
        client_secret = f"{intent_id}_secret_{secrets.token_urlsafe(18)}"
        logger.debug("Created payment intent %s for %d %s", intent_id, amount, currency)
        return PaymentIntent(client_secret=client_secret, amount=amount, currency=currency)


_gateway = FakePaymentGateway()


def get_payment_gateway() -> PaymentGateway:
    return _gateway


def to_minor_units(amount: float) -> int:
    return int(round(amount * 100))


def default_currency() -> str:
    return config.PAYMENT_CURRENCY
