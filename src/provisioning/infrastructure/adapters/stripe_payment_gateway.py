"""Stripe REST adapter for the PaymentGateway protocol."""
from __future__ import annotations

from typing import Any, Dict, Optional

import httpx

from shared.infrastructure.observability.logger import get_logger

from provisioning.domain.exceptions import PaymentGatewayError
from provisioning.domain.protocols.payment_gateway import ChargeResult, CustomerRequest, PaymentIntent

logger = get_logger(__name__)


class StripePaymentGateway:
    """
    Talks to the Stripe API with form-encoded requests.

    Card declines come back as a non-succeeded ChargeResult; transport errors,
    5xx and unexpected 4xx responses raise PaymentGatewayError.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.stripe.com/v1",
        default_payment_method: str = "pm_card_visa",
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.default_payment_method = default_payment_method
        self.client = client or httpx.AsyncClient(timeout=timeout)
        self._headers = {"Authorization": f"Bearer {api_key}"}

    async def aclose(self) -> None:
        await self.client.aclose()

    async def authorize_charge(self, amount_cents: int, currency: str) -> ChargeResult:
        response = await self._post(
            "/payment_intents",
            {
                "amount": amount_cents,
                "currency": currency,
                "confirm": "true",
                "payment_method": self.default_payment_method,
                "automatic_payment_methods[enabled]": "true",
                "automatic_payment_methods[allow_redirects]": "never",
            },
        )

        if response.status_code == 402:
            # Card errors carry the intent and a human-readable message.
            error = self._error_body(response)
            intent = error.get("payment_intent") or {}
            logger.info("stripe_charge_declined", decline_code=error.get("decline_code"), code=error.get("code"))
            return ChargeResult(
                status=intent.get("status") or error.get("code") or "declined",
                charge_ref=intent.get("id"),
                failure_message=error.get("message"),
            )

        data = self._json_or_raise(response, "payment_intents")
        return ChargeResult(
            status=data.get("status", "unknown"),
            charge_ref=data.get("id"),
            failure_message=(data.get("last_payment_error") or {}).get("message"),
        )

    async def create_payment_intent(self, amount_cents: int, currency: str) -> PaymentIntent:
        response = await self._post(
            "/payment_intents",
            {
                "amount": amount_cents,
                "currency": currency,
                "automatic_payment_methods[enabled]": "true",
            },
        )
        data = self._json_or_raise(response, "payment_intents")
        return PaymentIntent(id=data["id"], client_secret=data.get("client_secret") or "")

    async def create_customer(self, request: CustomerRequest) -> str:
        form: Dict[str, Any] = {"email": request.email, "name": request.name}
        for key, value in request.metadata.items():
            form[f"metadata[{key}]"] = value
        response = await self._post("/customers", form)
        return self._json_or_raise(response, "customers")["id"]

    async def create_subscription(self, customer_id: str, price_id: str, trial_period_days: int) -> str:
        response = await self._post(
            "/subscriptions",
            {
                "customer": customer_id,
                "items[0][price]": price_id,
                "trial_period_days": trial_period_days,
            },
        )
        return self._json_or_raise(response, "subscriptions")["id"]

    # ------------------------------------------------------------------

    async def _post(self, path: str, form: Dict[str, Any]) -> httpx.Response:
        try:
            return await self.client.post(f"{self.base_url}{path}", data=form, headers=self._headers)
        except httpx.TimeoutException as e:
            logger.error("stripe_timeout", path=path)
            raise PaymentGatewayError("Payment gateway timeout", retryable=True) from e
        except httpx.HTTPError as e:
            logger.error("stripe_transport_error", path=path, error=str(e))
            raise PaymentGatewayError(f"Payment gateway unreachable: {e}", retryable=True) from e

    @staticmethod
    def _error_body(response: httpx.Response) -> Dict[str, Any]:
        try:
            return response.json().get("error", {}) or {}
        except ValueError:
            return {}

    def _json_or_raise(self, response: httpx.Response, resource: str) -> Dict[str, Any]:
        if response.status_code == 200:
            return response.json()
        error = self._error_body(response)
        retryable = response.status_code >= 500 or response.status_code == 429
        logger.error(
            "stripe_request_failed",
            resource=resource,
            status_code=response.status_code,
            code=error.get("code"),
        )
        raise PaymentGatewayError(
            error.get("message") or f"Stripe {resource} request failed ({response.status_code})",
            retryable=retryable,
            details={"status_code": response.status_code, "code": error.get("code")},
        )
