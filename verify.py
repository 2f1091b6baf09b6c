"""
Certificate verification callbacks for TLS connections

A verifier is any callable ``verifier(preverified, cert) -> bool``. It is
called once per certificate of the chain after the TLS stack has validated it,
or once with ``preverified=False`` when the stack rejected the chain. It can
only narrow the stack's decision, never widen it.
"""
import logging
from typing import Callable, Iterable

from models import CertificateInfo


Verifier = Callable[[bool, CertificateInfo], bool]

logger = logging.getLogger("verify")


def default_verifier(preverified: bool, cert: CertificateInfo) -> bool:
    """Pass-through: log the certificate and keep the stack's decision"""
    if preverified:
        logger.debug(f"Certificate depth={cert.depth} subject='{cert.subject}' "
                     f"sha256={cert.fingerprint} verified")
    else:
        logger.debug(f"Certificate chain rejected by TLS stack: {cert.error}")
    return preverified


def _normalize_fingerprint(fingerprint: str) -> str:
    return fingerprint.replace(":", "").strip().lower()


def pinned_fingerprint_verifier(fingerprints: Iterable[str]) -> Verifier:
    """
    Build a verifier that additionally pins the server certificate

    Args:
        fingerprints: SHA-256 fingerprints (hex, colons optional) of accepted
            server certificates

    Returns:
        Verifier accepting a chain only if the stack verified it and the
        leaf certificate matches one of the pins
    """
    pins = {_normalize_fingerprint(f) for f in fingerprints}
    if not pins:
        raise ValueError("At least one fingerprint is required for pinning")

    def verify(preverified: bool, cert: CertificateInfo) -> bool:
        if not default_verifier(preverified, cert):
            return False
        if cert.depth != 0:
            return True
        if cert.fingerprint in pins:
            return True
        logger.warning(f"Server certificate sha256={cert.fingerprint} does not match any pinned fingerprint")
        return False

    return verify
