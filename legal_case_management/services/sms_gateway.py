import logging
import ssl
from typing import Any, Dict, List, Optional

import aiohttp

from legal_case_management.domain.errors import ServiceUnavailable


class SmsGatewayClient:
    """Async client for the external SMS gateway (template registration and sends).

    Every gateway response carries ``ErrorCode`` (0 on success), ``ErrorDescription``
    and ``Data``.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        client_id: str = "",
        sender_id: str = "LGLCMS",
        timeout_seconds: int = 10,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.client_id = client_id
        self.sender_id = sender_id
        self.timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self.logger = logging.getLogger(__name__)
        self.headers = {
            "Accept": "application/json",
            "Content-Type": "application/json",
        }
        self.ssl_context = ssl.create_default_context()
        if not self.api_key:
            self.logger.warning("SMS gateway API key not configured; requests will likely be rejected")

    @classmethod
    def from_settings(cls, settings) -> Optional["SmsGatewayClient"]:
        """Build a client from app settings, or None when no gateway URL is configured."""
        if not settings.sms_api_url:
            return None
        return cls(
            settings.sms_api_url,
            settings.sms_api_key,
            client_id=settings.sms_client_id,
            sender_id=settings.sms_sender_id,
            timeout_seconds=settings.sms_timeout_seconds,
        )

    def _ssl(self):
        return self.ssl_context if self.base_url.startswith("https") else False

    async def _request(
        self,
        method: str,
        path: str,
        payload: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        try:
            async with aiohttp.ClientSession(timeout=self.timeout) as session:
                async with session.request(
                    method, url, headers=self.headers, json=payload, params=params, ssl=self._ssl()
                ) as response:
                    response.raise_for_status()
                    data = await response.json(content_type=None)
        except aiohttp.ClientError as e:
            self.logger.error(f"SMS gateway {method} {path} failed: {e}")
            raise ServiceUnavailable(f"SMS gateway request failed: {e}") from e

        if not isinstance(data, dict) or data.get("ErrorCode", 0) != 0:
            description = data.get("ErrorDescription") if isinstance(data, dict) else data
            self.logger.error(f"SMS gateway rejected {method} {path}: {description}")
            raise ServiceUnavailable(f"SMS gateway error: {description}")
        return data

    async def register_template(self, template_name: str, message_template: str, template_id: str = "temp") -> Dict[str, Any]:
        """Register a template (in ``{#var#}`` format) with the gateway."""
        payload = {
            "templateName": template_name,
            "messageTemplate": message_template,
            "templateId": template_id,
            "apiKey": self.api_key,
            "clientId": self.client_id,
        }
        result = await self._request("POST", "/sms-api/templates", payload)
        self.logger.info(f"Registered SMS template '{template_name}'")
        return result

    async def list_templates(self) -> List[Dict[str, Any]]:
        result = await self._request(
            "GET", "/sms-api/templates", params={"ApiKey": self.api_key, "ClientId": self.client_id}
        )
        return result.get("Data") or []

    async def send_sms(self, mobile_numbers: str, message: str, unicode: bool = False) -> Dict[str, Any]:
        payload = {
            "senderId": self.sender_id,
            "is_Unicode": unicode,
            "is_Flash": False,
            "dataCoding": 8 if unicode else 0,
            "message": message,
            "mobileNumbers": mobile_numbers,
            "apiKey": self.api_key,
            "clientId": self.client_id,
        }
        result = await self._request("POST", "/sms-api/send-sms", payload)
        self.logger.info(f"SMS sent to {mobile_numbers}")
        return result

    async def ping(self) -> bool:
        async with aiohttp.ClientSession(timeout=self.timeout) as session:
            async with session.get(self.base_url, ssl=self._ssl()) as response:
                return response.status < 500
