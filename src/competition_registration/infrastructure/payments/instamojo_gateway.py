"""Instamojo payment gateway adapter over httpx."""

from __future__ import annotations

import hashlib
import hmac
import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from decimal import Decimal
from typing import Any
from urllib.parse import parse_qs

import httpx

from competition_registration.domain.errors import GatewayError
from competition_registration.domain.money import format_money, parse_money

logger = logging.getLogger(__name__)

PAID_STATUS = "Credit"
WEBHOOK_SIGNATURE_HEADER = "X-Webhook-Signature"


@dataclass(slots=True, frozen=True)
class BuyerContact:
    """Buyer details forwarded to the hosted payment page."""

    name: str
    email: str
    phone: str


@dataclass(slots=True, frozen=True)
class PaymentSession:
    """Provider-side payment request and its hosted page."""

    session_id: str
    hosted_page_url: str


@dataclass(slots=True, frozen=True)
class PaymentVerification:
    """Server-side view of one payment as reported by the gateway."""

    status: str
    verified_session_id: str
    payment_id: str
    amount: Decimal | None = None

    @property
    def is_paid(self) -> bool:
        return self.status == PAID_STATUS


@dataclass(slots=True, frozen=True)
class WebhookEvent:
    """Normalized webhook notification about one payment."""

    registration_reference: str | None
    status: str
    amount: Decimal | None
    payment_id: str | None
    payment_request_id: str | None

    @property
    def is_paid(self) -> bool:
        return self.status == PAID_STATUS


def extract_resource_id(value: str | None) -> str:
    """Return the last path segment of an id or resource URL."""

    if not value:
        return ""
    return value.rstrip("/").rsplit("/", maxsplit=1)[-1]


def compute_webhook_signature(raw_payload: bytes, secret: str) -> str:
    return hmac.new(secret.encode("utf-8"), raw_payload, hashlib.sha256).hexdigest()


def verify_webhook_signature(
    raw_payload: bytes,
    signature: str | None,
    secret: str,
) -> bool:
    """Check an HMAC-SHA256 hex signature over the raw payload."""

    if not signature or not secret:
        return False
    expected = compute_webhook_signature(raw_payload, secret)
    return hmac.compare_digest(expected, signature.strip().lower())


def parse_webhook_payload(raw_payload: bytes, content_type: str | None) -> WebhookEvent:
    """Decode a JSON or form-encoded webhook body.

    Raises ``ValueError`` when the body cannot be decoded.
    """

    if content_type and "json" in content_type.lower():
        decoded = json.loads(raw_payload.decode("utf-8"))
        if not isinstance(decoded, Mapping):
            raise ValueError("Webhook JSON payload must be an object.")
        payload: Mapping[str, Any] = decoded
    else:
        payload = {
            key: values[-1]
            for key, values in parse_qs(
                raw_payload.decode("utf-8"),
                keep_blank_values=True,
            ).items()
        }

    custom_fields = payload.get("custom_fields")
    if isinstance(custom_fields, str) and custom_fields.strip():
        custom_fields = json.loads(custom_fields)
    reference = None
    if isinstance(custom_fields, Mapping):
        reference = _field_value(custom_fields.get("registration_id"))
    if reference is None:
        reference = _field_value(payload.get("registration_id"))

    raw_amount = payload.get("amount")
    amount = parse_money(raw_amount) if raw_amount not in (None, "") else None

    return WebhookEvent(
        registration_reference=reference,
        status=str(payload.get("status", "")).strip(),
        amount=amount,
        payment_id=_field_value(payload.get("payment_id")),
        payment_request_id=extract_resource_id(
            _field_value(payload.get("payment_request_id"))
        )
        or None,
    )


def _field_value(value: Any) -> str | None:
    # Instamojo custom fields arrive as {"field_x": {"value": "..."}} objects.
    if isinstance(value, Mapping):
        value = value.get("value")
    if value is None:
        return None
    text = str(value).strip()
    return text or None


class InstamojoGateway:
    """Creates payment requests and verifies payments with Instamojo."""

    def __init__(
        self,
        *,
        api_key: str,
        auth_token: str,
        payment_requests_url: str,
        payments_url: str,
        http_client: httpx.Client,
    ) -> None:
        self._api_key = api_key
        self._auth_token = auth_token
        self._payment_requests_url = payment_requests_url
        self._payments_url = payments_url.rstrip("/") + "/"
        self._http_client = http_client

    def create_payment_session(
        self,
        *,
        purpose: str,
        amount: Decimal,
        buyer: BuyerContact,
        callback_url: str,
        webhook_url: str | None = None,
    ) -> PaymentSession:
        payload: dict[str, Any] = {
            "purpose": purpose,
            "amount": format_money(amount),
            "buyer_name": buyer.name,
            "email": buyer.email,
            "phone": buyer.phone,
            "redirect_url": callback_url,
            "allow_repeated_payments": False,
        }
        if webhook_url:
            payload["webhook"] = webhook_url

        body = self._request("POST", self._payment_requests_url, json_body=payload)
        payment_request = body.get("payment_request")
        if not body.get("success") or not isinstance(payment_request, Mapping):
            raise GatewayError(
                str(body.get("message") or "Payment initiation failed."),
                upstream_body=body,
            )
        session_id = str(payment_request.get("id") or "")
        hosted_page_url = str(payment_request.get("longurl") or "")
        if not session_id or not hosted_page_url:
            raise GatewayError(
                "Payment request response is missing id or longurl.",
                upstream_body=body,
            )
        return PaymentSession(session_id=session_id, hosted_page_url=hosted_page_url)

    def verify_payment(self, payment_id: str) -> PaymentVerification:
        body = self._request("GET", f"{self._payments_url}{payment_id}/")
        payment = body.get("payment")
        if not body.get("success") or not isinstance(payment, Mapping):
            raise GatewayError(
                str(body.get("message") or "Payment verification failed."),
                upstream_body=body,
            )
        raw_amount = payment.get("amount")
        return PaymentVerification(
            status=str(payment.get("status", "")),
            verified_session_id=extract_resource_id(
                str(payment.get("payment_request") or "")
            ),
            payment_id=str(payment.get("payment_id") or payment_id),
            amount=parse_money(raw_amount) if raw_amount not in (None, "") else None,
        )

    def verify_webhook_signature(
        self,
        raw_payload: bytes,
        signature: str | None,
        secret: str,
    ) -> bool:
        return verify_webhook_signature(raw_payload, signature, secret)

    def parse_webhook(
        self,
        raw_payload: bytes,
        content_type: str | None,
    ) -> WebhookEvent:
        return parse_webhook_payload(raw_payload, content_type)

    def _request(
        self,
        method: str,
        url: str,
        *,
        json_body: Mapping[str, object] | None = None,
    ) -> dict[str, Any]:
        try:
            response = self._http_client.request(
                method,
                url,
                json=dict(json_body) if json_body is not None else None,
                headers={
                    "X-Api-Key": self._api_key,
                    "X-Auth-Token": self._auth_token,
                },
            )
        except httpx.HTTPError as exc:
            logger.warning(
                "gateway_transport_error",
                extra={"method": method, "error_type": type(exc).__name__},
            )
            raise GatewayError(f"Payment gateway is unreachable: {exc}") from exc

        body = _parse_json_body(response)
        if not response.is_success:
            raise GatewayError(
                f"Payment gateway returned status {response.status_code}.",
                upstream_status=response.status_code,
                upstream_body=body if body else response.text,
            )
        return body


def _parse_json_body(response: httpx.Response) -> dict[str, Any]:
    try:
        payload = response.json()
    except ValueError:
        return {}
    if isinstance(payload, dict):
        return payload
    return {"data": payload}
