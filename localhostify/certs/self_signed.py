"""Self-signed certificate provider for HTTPS sites."""

import ipaddress
import logging
import os
import tempfile
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from typing import Iterator, List, Optional, Tuple

from cryptography import x509
from cryptography.x509.oid import ExtendedKeyUsageOID, NameOID
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from pydantic import BaseModel

from ..shared.config import Config
from ..shared.logging_config import get_component_logger

# Names every certificate covers, on top of the requested hostname.
DEFAULT_HOSTNAMES = ("localhost", "127.0.0.1", "::1")

ORGANIZATION_NAME = "LocalHostify"


class CertificatePem(BaseModel):
    """PEM-encoded certificate and private key."""
    cert_pem: str
    key_pem: str
    hostnames: List[str]


def _subject_alt_name(name: str) -> x509.GeneralName:
    try:
        return x509.IPAddress(ipaddress.ip_address(name))
    except ValueError:
        return x509.DNSName(name)


class SelfSignedCertificateProvider:
    """Creates self-signed certificates valid for a hostname and loopback."""

    def __init__(
        self,
        key_size: Optional[int] = None,
        valid_days: Optional[int] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.key_size = key_size or Config.RSA_KEY_SIZE
        self.valid_days = valid_days or Config.SELF_SIGNED_DAYS
        self.logger = logger or get_component_logger("certs")

    def hostnames_for(self, hostname: str) -> List[str]:
        """Hostname first, then the loopback defaults, without duplicates."""
        names = []
        for name in (hostname, *DEFAULT_HOSTNAMES):
            name = name.strip().strip("[]").lower()
            if name and name not in names:
                names.append(name)
        return names

    def create(self, hostname: str = "localhost") -> CertificatePem:
        """Create a certificate for ``hostname``, ``localhost``, ``127.0.0.1`` and ``::1``."""
        hostnames = self.hostnames_for(hostname)

        key = rsa.generate_private_key(
            public_exponent=65537,
            key_size=self.key_size,
        )

        subject = issuer = x509.Name([
            x509.NameAttribute(NameOID.COMMON_NAME, hostnames[0]),
            x509.NameAttribute(NameOID.ORGANIZATION_NAME, ORGANIZATION_NAME),
        ])

        now = datetime.now(timezone.utc)
        cert = x509.CertificateBuilder().subject_name(
            subject
        ).issuer_name(
            issuer
        ).public_key(
            key.public_key()
        ).serial_number(
            x509.random_serial_number()
        ).not_valid_before(
            now - timedelta(days=1)
        ).not_valid_after(
            now + timedelta(days=self.valid_days)
        ).add_extension(
            x509.SubjectAlternativeName([_subject_alt_name(name) for name in hostnames]),
            critical=False,
        ).add_extension(
            x509.BasicConstraints(ca=True, path_length=None),
            critical=True,
        ).add_extension(
            x509.KeyUsage(
                digital_signature=True,
                content_commitment=False,
                key_encipherment=True,
                data_encipherment=False,
                key_agreement=False,
                key_cert_sign=True,
                crl_sign=False,
                encipher_only=False,
                decipher_only=False,
            ),
            critical=True,
        ).add_extension(
            x509.ExtendedKeyUsage([ExtendedKeyUsageOID.SERVER_AUTH]),
            critical=False,
        ).add_extension(
            x509.SubjectKeyIdentifier.from_public_key(key.public_key()),
            critical=False,
        ).add_extension(
            x509.AuthorityKeyIdentifier.from_issuer_public_key(key.public_key()),
            critical=False,
        ).sign(key, hashes.SHA256())

        cert_pem = cert.public_bytes(serialization.Encoding.PEM).decode()
        key_pem = key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption()
        ).decode()

        self.logger.info(f"Created self-signed certificate for {', '.join(hostnames)}")

        return CertificatePem(cert_pem=cert_pem, key_pem=key_pem, hostnames=hostnames)


@contextmanager
def write_certificate_files(certificate: CertificatePem) -> Iterator[Tuple[str, str]]:
    """Write certificate and key to private temporary files, removed on exit.

    Yields:
        Tuple of (cert_path, key_path)
    """
    paths = []
    try:
        for suffix, content in ((".pem", certificate.cert_pem), (".key", certificate.key_pem)):
            fd, path = tempfile.mkstemp(prefix="localhostify-", suffix=suffix)
            paths.append(path)
            with os.fdopen(fd, "w") as f:
                f.write(content)
        yield paths[0], paths[1]
    finally:
        for path in paths:
            if os.path.exists(path):
                os.unlink(path)
