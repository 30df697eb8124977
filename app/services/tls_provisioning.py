"""
TLS provisioning trigger.

Certificate issuance belongs to the edge provider. Once a custom domain is
verified we only signal it; the call is fire-and-forget and never fails the
verification that triggered it.
"""
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Protocol

import httpx

logger = logging.getLogger("branding.tls")


class TlsProvisioner(Protocol):
    def request_certificate(self, tenant_id: str, domain: str) -> None:
        ...


class LoggingTlsProvisioner:
    """Default: the edge (e.g. Cloudflare / Vercel) issues certificates on its own."""

    def request_certificate(self, tenant_id: str, domain: str) -> None:
        logger.info("TLS provisioning for %s (tenant %s) delegated to edge provider", domain, tenant_id)


class WebhookTlsProvisioner:
    """POSTs ``{tenant_id, domain}`` to the provisioning webhook on a background thread."""

    def __init__(self, url: str, timeout: float = 5.0, executor: ThreadPoolExecutor | None = None):
        self.url = url
        self.timeout = timeout
        self._executor = executor or ThreadPoolExecutor(max_workers=2, thread_name_prefix="tls-provision")

    def request_certificate(self, tenant_id: str, domain: str) -> None:
        self._executor.submit(self._send, tenant_id, domain)

    def _send(self, tenant_id: str, domain: str) -> None:
        try:
            response = httpx.post(
                self.url,
                json={"tenant_id": tenant_id, "domain": domain},
                timeout=self.timeout,
            )
            response.raise_for_status()
            logger.info("TLS provisioning requested for %s (tenant %s)", domain, tenant_id)
        except httpx.HTTPError as e:
            logger.error("TLS provisioning request for %s failed: %s", domain, e)

    def shutdown(self) -> None:
        self._executor.shutdown(wait=False)
