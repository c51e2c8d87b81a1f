"""Shared test fixtures for pemchain."""

import datetime
from pathlib import Path
from typing import Callable, Dict, Iterable, Optional

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import NameOID


def _name(common_name: str) -> x509.Name:
    return x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)])


@pytest.fixture(scope="session")
def rsa_key() -> Callable[[str], rsa.RSAPrivateKey]:
    """Factory fixture: one RSA key per label, generated once per session."""
    cache: Dict[str, rsa.RSAPrivateKey] = {}

    def _factory(label: str) -> rsa.RSAPrivateKey:
        if label not in cache:
            cache[label] = rsa.generate_private_key(public_exponent=65537, key_size=2048)
        return cache[label]

    return _factory


@pytest.fixture
def make_certificate() -> Callable[..., x509.Certificate]:
    """Factory fixture: a certificate for subject_key, signed by signing_key."""

    def _factory(
        subject_key,
        common_name: str,
        signing_key=None,
        issuer_name: Optional[str] = None,
        sans: Iterable[str] = (),
    ) -> x509.Certificate:
        now = datetime.datetime.now(datetime.timezone.utc)
        builder = (
            x509.CertificateBuilder()
            .subject_name(_name(common_name))
            .issuer_name(_name(issuer_name or common_name))
            .public_key(subject_key.public_key())
            .serial_number(x509.random_serial_number())
            .not_valid_before(now - datetime.timedelta(days=1))
            .not_valid_after(now + datetime.timedelta(days=365))
        )
        sans = list(sans)
        if sans:
            builder = builder.add_extension(
                x509.SubjectAlternativeName([x509.DNSName(san) for san in sans]),
                critical=False,
            )
        return builder.sign(signing_key or subject_key, hashes.SHA256())

    return _factory


@pytest.fixture
def make_request() -> Callable[..., x509.CertificateSigningRequest]:
    """Factory fixture: a certificate signing request for key."""

    def _factory(key, common_name: str) -> x509.CertificateSigningRequest:
        return (
            x509.CertificateSigningRequestBuilder()
            .subject_name(_name(common_name))
            .sign(key, hashes.SHA256())
        )

    return _factory


def pem_bytes(obj) -> bytes:
    """PEM encoding of a private key, request or certificate."""
    if isinstance(obj, rsa.RSAPrivateKey):
        return obj.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.TraditionalOpenSSL,
            encryption_algorithm=serialization.NoEncryption(),
        )
    return obj.public_bytes(serialization.Encoding.PEM)


@pytest.fixture
def write_pem(tmp_path: Path) -> Callable[..., str]:
    """Factory fixture: write one or more objects as PEM into tmp_path, return the path."""

    def _factory(filename: str, *objs) -> str:
        path = tmp_path / filename
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(b"".join(pem_bytes(obj) for obj in objs))
        return str(path)

    return _factory


@pytest.fixture
def pki(rsa_key, make_certificate, make_request, write_pem, tmp_path: Path) -> Dict[str, object]:
    """root -> intermediate -> A, with A's key, request and certificate on disk."""
    root_key = rsa_key("root")
    intermediate_key = rsa_key("intermediate")
    leaf_key = rsa_key("A")

    root = make_certificate(root_key, "Example Root")
    intermediate = make_certificate(
        intermediate_key, "Example Intermediate", signing_key=root_key, issuer_name="Example Root"
    )
    leaf = make_certificate(
        leaf_key,
        "a.example.com",
        signing_key=intermediate_key,
        issuer_name="Example Intermediate",
        sans=["www.a.example.com", "a.example.com"],
    )
    request = make_request(leaf_key, "a.example.com")

    return {
        "dir": tmp_path,
        "root": root,
        "intermediate": intermediate,
        "leaf": leaf,
        "request": request,
        "leaf_key": leaf_key,
        "A.key": write_pem("A.key", leaf_key),
        "A.csr": write_pem("A.csr", request),
        "A.crt": write_pem("A.crt", leaf),
        "intermediate.crt": write_pem("intermediate.crt", intermediate),
        "root.crt": write_pem("root.crt", root),
    }
