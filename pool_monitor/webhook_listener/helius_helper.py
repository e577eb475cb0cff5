"""
Helius webhook registration.
Points a Helius enhanced webhook at this service's /webhook/helius endpoint.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from pool_monitor.config.settings import HeliusConfig

logger = logging.getLogger(__name__)

WEBHOOK_PATH = "/webhook/helius"


class HeliusWebhookManager:
    """Manages Helius webhook registration and updates."""

    def __init__(self, config: HeliusConfig, client: Optional[httpx.AsyncClient] = None):
        if not config.api_key:
            raise ValueError("HELIUS_API_KEY is not set")

        self.config = config
        self.base_url = config.base_url.rstrip("/")
        self.headers = {"Content-Type": "application/json"}
        self._client = client or httpx.AsyncClient(timeout=httpx.Timeout(30.0, connect=5.0))

    async def aclose(self):
        await self._client.aclose()

    def _params(self) -> Dict[str, str]:
        return {"api-key": self.config.api_key}

    def build_payload(self, webhook_url: str) -> Dict[str, Any]:
        payload = {
            "webhookURL": webhook_url,
            "transactionTypes": list(self.config.transaction_types),
            "accountAddresses": list(self.config.account_addresses),
            "webhookType": self.config.webhook_type,
        }
        if self.config.auth_header:
            payload["authHeader"] = self.config.auth_header
        return payload

    async def get_all_webhooks(self) -> List[Dict[str, Any]]:
        """Get all existing webhooks."""
        try:
            response = await self._client.get(
                f"{self.base_url}/webhooks", params=self._params(), headers=self.headers
            )
            response.raise_for_status()
            return response.json() or []
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Error fetching webhooks: {e}")
            return []

    async def create_webhook(self, webhook_url: str) -> Optional[Dict[str, Any]]:
        """Create a new webhook."""
        try:
            response = await self._client.post(
                f"{self.base_url}/webhooks",
                params=self._params(),
                headers=self.headers,
                json=self.build_payload(webhook_url),
            )
            response.raise_for_status()
            result = response.json()
            logger.info(f"Webhook created successfully: {result.get('webhookID')}")
            return result
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Error creating webhook: {e}")
            return None

    async def edit_webhook(self, webhook_id: str, webhook_url: str) -> Optional[Dict[str, Any]]:
        """Update an existing webhook."""
        try:
            response = await self._client.put(
                f"{self.base_url}/webhooks/{webhook_id}",
                params=self._params(),
                headers=self.headers,
                json=self.build_payload(webhook_url),
            )
            response.raise_for_status()
            result = response.json()
            logger.info(f"Webhook updated successfully: {webhook_id}")
            return result
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Error updating webhook: {e}")
            return None

    async def update_or_create_webhook(self, webhook_url: str) -> bool:
        """Update the first existing webhook or create a new one."""
        if not self.config.account_addresses:
            logger.warning("No addresses configured for webhook monitoring")
            return False

        existing_webhooks = await self.get_all_webhooks()
        webhook_id = existing_webhooks[0].get("webhookID") if existing_webhooks else None

        if webhook_id:
            logger.info(f"Updating existing webhook {webhook_id}")
            result = await self.edit_webhook(webhook_id, webhook_url)
        else:
            logger.info("No existing webhooks, creating new one")
            result = await self.create_webhook(webhook_url)
        return result is not None


async def register_webhook_on_startup(config: HeliusConfig, client: Optional[httpx.AsyncClient] = None) -> bool:
    """Register this service with Helius. Never raises.

    Returns:
        True when a webhook was created or updated.
    """
    if not config.registration_enabled:
        logger.info("HELIUS_API_KEY or WEBHOOK_BASE_URL not set, skipping webhook registration")
        return False

    webhook_url = config.webhook_base_url.rstrip("/") + WEBHOOK_PATH
    logger.info(f"Registering webhook with Helius: {webhook_url}")

    manager = HeliusWebhookManager(config, client=client)
    try:
        success = await manager.update_or_create_webhook(webhook_url)
    finally:
        if client is None:
            await manager.aclose()

    if success:
        logger.info(f"Successfully registered webhook URL: {webhook_url}")
    else:
        logger.error("Failed to register webhook with Helius")
    return success
