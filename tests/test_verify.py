"""
Tests for certificate verification callbacks
"""
import hashlib
import unittest
import os
import sys
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))
from models import CertificateInfo
from verify import default_verifier, pinned_fingerprint_verifier


LEAF_DER = b"leaf certificate bytes"
LEAF_SHA256 = hashlib.sha256(LEAF_DER).hexdigest()


class TestDefaultVerifier(unittest.TestCase):
    """Pass-through behaviour"""

    def test_keeps_stack_decision(self):
        cert = CertificateInfo(depth=0, der=LEAF_DER)
        self.assertTrue(default_verifier(True, cert))
        self.assertFalse(default_verifier(False, cert))

    def test_handles_rejected_chain_without_certificate(self):
        cert = CertificateInfo(depth=0, error="unable to get local issuer certificate")
        self.assertFalse(default_verifier(False, cert))
        self.assertIsNone(cert.fingerprint)


class TestPinnedFingerprintVerifier(unittest.TestCase):
    """Leaf pinning on top of chain validation"""

    def test_matching_pin_accepted(self):
        verifier = pinned_fingerprint_verifier([LEAF_SHA256])
        self.assertTrue(verifier(True, CertificateInfo(depth=0, der=LEAF_DER)))

    def test_pin_format_is_normalized(self):
        colon_upper = ":".join(LEAF_SHA256[i:i + 2] for i in range(0, len(LEAF_SHA256), 2)).upper()
        verifier = pinned_fingerprint_verifier([colon_upper])
        self.assertTrue(verifier(True, CertificateInfo(depth=0, der=LEAF_DER)))

    def test_other_leaf_rejected(self):
        verifier = pinned_fingerprint_verifier([LEAF_SHA256])
        self.assertFalse(verifier(True, CertificateInfo(depth=0, der=b"another certificate")))

    def test_intermediates_not_pinned(self):
        verifier = pinned_fingerprint_verifier([LEAF_SHA256])
        self.assertTrue(verifier(True, CertificateInfo(depth=1, der=b"intermediate")))

    def test_never_accepts_unverified_chain(self):
        verifier = pinned_fingerprint_verifier([LEAF_SHA256])
        self.assertFalse(verifier(False, CertificateInfo(depth=0, der=LEAF_DER)))

    def test_requires_a_pin(self):
        with self.assertRaises(ValueError):
            pinned_fingerprint_verifier([])


if __name__ == '__main__':
    unittest.main()
