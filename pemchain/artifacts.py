#
# turn the bytes of one file into a key, a request or a certificate (or nothing)
#

import logging
import warnings
from dataclasses import dataclass
from typing import Iterator, List, Optional, Union

from cryptography import x509
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import NameOID


# Suppress warnings
warnings.filterwarnings("ignore", message="Parsed a serial number which wasn't positive")
warnings.filterwarnings("ignore", message="Properties that return a naïve datetime object have been deprecated")

logger = logging.getLogger(__name__)

# PEM labels per kind, in the order they are tried
KEY_LABELS         = ("RSA PRIVATE KEY", "PRIVATE KEY")
REQUEST_LABELS     = ("CERTIFICATE REQUEST", "NEW CERTIFICATE REQUEST")
CERTIFICATE_LABELS = ("CERTIFICATE", "X509 CERTIFICATE")


@dataclass(frozen=True)
class PrivateKeyArtifact:
    """An RSA private key found in a file."""
    path:   str
    key:    rsa.RSAPrivateKey


@dataclass(frozen=True)
class RequestArtifact:
    """A certificate signing request found in a file."""
    path:       str
    request:    x509.CertificateSigningRequest


@dataclass(frozen=True)
class CertificateArtifact:
    """An X.509 certificate found in a file."""
    path:           str
    certificate:    x509.Certificate

    @property
    def fingerprint(self) -> str:
        return fingerprint(self.certificate)


Artifact = Union[PrivateKeyArtifact, RequestArtifact, CertificateArtifact]


def pem_blocks(data: bytes, label: str) -> Iterator[bytes]:
    """Yield every complete PEM block carrying the given label.

    Args:
        data: Raw file contents
        label: PEM label, e.g. "CERTIFICATE"

    Returns:
        Iterator over the blocks, BEGIN and END markers included
    """
    pem_start = f"-----BEGIN {label}-----".encode("ascii")
    pem_end = f"-----END {label}-----".encode("ascii")

    start_idx = 0
    while True:
        start_pos = data.find(pem_start, start_idx)
        if start_pos == -1:
            break

        end_pos = data.find(pem_end, start_pos)
        if end_pos == -1:
            logger.debug(f"Malformed {label} PEM data: found BEGIN but no END")
            break

        # Include the END marker
        end_pos += len(pem_end)

        yield data[start_pos:end_pos]
        start_idx = end_pos


def parse_private_key(data: bytes) -> Optional[rsa.RSAPrivateKey]:
    """First unencrypted RSA private key in data, or None."""
    for label in KEY_LABELS:
        for block in pem_blocks(data, label):
            try:
                key = serialization.load_pem_private_key(block, password=None)
            except TypeError as e:
                # password required
                logger.debug(f"Skipping encrypted {label}: {e}")
                continue
            except (ValueError, UnsupportedAlgorithm) as e:
                logger.debug(f"Failed to parse {label}: {e}")
                continue

            if not isinstance(key, rsa.RSAPrivateKey):
                logger.debug(f"Skipping non-RSA private key ({type(key).__name__})")
                continue

            return key
    return None


def parse_request(data: bytes) -> Optional[x509.CertificateSigningRequest]:
    """First parseable certificate signing request in data, or None."""
    for label in REQUEST_LABELS:
        for block in pem_blocks(data, label):
            try:
                return x509.load_pem_x509_csr(block)
            except ValueError as e:
                logger.debug(f"Failed to parse {label}: {e}")
    return None


def parse_certificate(data: bytes) -> Optional[x509.Certificate]:
    """First parseable certificate in data, or None."""
    for label in CERTIFICATE_LABELS:
        for block in pem_blocks(data, label):
            try:
                with warnings.catch_warnings():
                    warnings.simplefilter("ignore")
                    return x509.load_pem_x509_certificate(block)
            except ValueError as e:
                logger.debug(f"Failed to parse {label}: {e}")
    return None


def classify(path: str, data: bytes) -> Optional[Artifact]:
    """Work out what (if anything) a file holds.

    Keys win over requests, requests over certificates; a file yields at most
    one artifact.

    Args:
        path: Source filename
        data: Contents of the file

    Returns:
        The artifact, or None when the file holds nothing we understand
    """
    key = parse_private_key(data)
    if key is not None:
        logger.debug(f"Found private key in {path}")
        return PrivateKeyArtifact(path=path, key=key)

    request = parse_request(data)
    if request is not None:
        logger.debug(f"Found certificate request in {path}")
        return RequestArtifact(path=path, request=request)

    certificate = parse_certificate(data)
    if certificate is not None:
        logger.debug(f"Found certificate in {path}")
        return CertificateArtifact(path=path, certificate=certificate)

    logger.debug(f"No keys, requests or certificates found in {path}")
    return None


def fingerprint(certificate: x509.Certificate) -> str:
    return certificate.fingerprint(hashes.SHA256()).hex().upper()


def subject_common_name(obj: Union[x509.Certificate, x509.CertificateSigningRequest]) -> Optional[str]:
    """Last common name of the subject (last line of it, should it span several)."""
    attributes = obj.subject.get_attributes_for_oid(NameOID.COMMON_NAME)
    if not attributes:
        return None

    value = attributes[-1].value
    if isinstance(value, bytes):
        value = value.decode("utf-8", errors="replace")

    lines = value.splitlines()
    return lines[-1] if lines else None


def subject_alternative_names(certificate: x509.Certificate) -> List[str]:
    """DNS names from the subjectAltName extension, in certificate order."""
    try:
        ext = certificate.extensions.get_extension_for_class(x509.SubjectAlternativeName)
    except x509.ExtensionNotFound:
        return []
    except ValueError as e:
        # duplicate or malformed extensions
        logger.debug(f"Could not read extensions: {e}")
        return []

    return ext.value.get_values_for_type(x509.DNSName)
