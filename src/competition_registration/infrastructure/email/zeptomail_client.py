"""ZeptoMail transactional email adapter over httpx."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

import httpx

from competition_registration.domain.errors import EmailDeliveryError

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class EmailAttachment:
    """Attachment already encoded as base64 text."""

    name: str
    content_base64: str
    mime_type: str = "application/pdf"


class ZeptoMailClient:
    """Sends template-based emails through the ZeptoMail REST API."""

    def __init__(
        self,
        *,
        base_url: str,
        token: str,
        from_address: str,
        from_name: str,
        http_client: httpx.Client,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._token = token
        self._from_address = from_address
        self._from_name = from_name
        self._http_client = http_client

    def send_template(
        self,
        *,
        to_address: str,
        to_name: str,
        template_key: str,
        merge_info: Mapping[str, str],
        attachments: Sequence[EmailAttachment] = (),
    ) -> None:
        if not self._token or not self._from_address or not template_key:
            raise EmailDeliveryError("ZeptoMail configuration missing.")

        payload: dict[str, Any] = {
            "mail_template_key": template_key,
            "from": {"address": self._from_address, "name": self._from_name},
            "to": [{"email_address": {"address": to_address, "name": to_name}}],
            "merge_info": dict(merge_info),
        }
        if attachments:
            payload["attachments"] = [
                {
                    "name": attachment.name,
                    "content": attachment.content_base64,
                    "mime_type": attachment.mime_type,
                }
                for attachment in attachments
            ]

        try:
            response = self._http_client.post(
                f"{self._base_url}/email/template",
                json=payload,
                headers={
                    "Authorization": f"Zoho-enczapikey {self._token}",
                    "Accept": "application/json",
                },
            )
        except httpx.HTTPError as exc:
            raise EmailDeliveryError(f"ZeptoMail is unreachable: {exc}") from exc

        if not response.is_success:
            raise EmailDeliveryError(
                f"ZeptoMail returned status {response.status_code}: "
                f"{response.text.strip()}"
            )
        logger.info("email_sent", extra={"template_key": template_key})
