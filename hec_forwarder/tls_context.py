"""SSLContext factory functions for the collector client."""

import logging
import ssl

logger = logging.getLogger(__name__)


def create_client_context_unverified() -> ssl.SSLContext:
    """Create an SSL context that skips certificate verification (self-signed/test collectors)."""
    ctx = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
    ctx.check_hostname = False
    ctx.verify_mode = ssl.CERT_NONE
    return ctx


def create_client_context_verified(ca_file: str = "") -> ssl.SSLContext:
    """Create an SSL context that verifies the collector cert.

    Uses the system trust store unless *ca_file* names a CA bundle.
    """
    ctx = ssl.create_default_context(cafile=ca_file or None)
    ctx.minimum_version = ssl.TLSVersion.TLSv1_2
    return ctx


def create_client_context(insecure_skip_verify: bool = False, ca_file: str = "") -> ssl.SSLContext:
    if insecure_skip_verify:
        logger.warning("TLS certificate verification is disabled for the collector connection")
        return create_client_context_unverified()
    return create_client_context_verified(ca_file)
