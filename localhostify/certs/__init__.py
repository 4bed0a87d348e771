"""Certificate provider for HTTPS sites."""

from .self_signed import CertificatePem, SelfSignedCertificateProvider, write_certificate_files

__all__ = [
    'CertificatePem',
    'SelfSignedCertificateProvider',
    'write_certificate_files',
]
