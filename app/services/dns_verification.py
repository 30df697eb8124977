"""
DNS CNAME verification capability.

The lifecycle manager only depends on the ``CnameVerifier`` protocol; the
production implementation resolves the record with dnspython.
"""
import logging
from typing import List, Optional, Protocol

import dns.exception
import dns.resolver

from app.core.exceptions import UpstreamError

logger = logging.getLogger("branding.dns")


class CnameVerifier(Protocol):
    def check_cname(self, domain: str, expected_target: str, timeout: float) -> bool:
        """True once ``domain`` has a CNAME pointing at ``expected_target``.

        Returns False when the record is absent or points elsewhere; raises
        UpstreamError when DNS could not be asked at all.
        """
        ...


def _canonical(name: str) -> str:
    return name.strip().rstrip(".").lower()


class DnsCnameVerifier:
    def __init__(self, nameservers: Optional[List[str]] = None):
        self._nameservers = nameservers or []

    def _resolver(self) -> dns.resolver.Resolver:
        resolver = dns.resolver.Resolver(configure=not self._nameservers)
        if self._nameservers:
            resolver.nameservers = list(self._nameservers)
        return resolver

    def lookup(self, domain: str, timeout: float) -> List[str]:
        """Current CNAME targets of ``domain`` (empty when none are published)."""
        try:
            answers = self._resolver().resolve(domain, "CNAME", lifetime=timeout)
        except (dns.resolver.NXDOMAIN, dns.resolver.NoAnswer):
            return []
        except dns.exception.DNSException as e:
            logger.warning("CNAME lookup for %s could not complete: %s", domain, e)
            raise UpstreamError(
                "DNS verification unavailable", operation="check_cname", key=domain
            ) from e
        return [_canonical(rdata.target.to_text()) for rdata in answers]

    def check_cname(self, domain: str, expected_target: str, timeout: float) -> bool:
        targets = self.lookup(domain, timeout)
        verified = _canonical(expected_target) in targets
        logger.info(
            "CNAME check %s → %s: %s (found %s)",
            domain, expected_target, "ok" if verified else "not found", targets or "-",
        )
        return verified
