#
# which key goes with which request/certificate, and who signed what
#

import logging
from dataclasses import dataclass
from enum import Enum
from typing import AbstractSet, List, Optional, Sequence, Tuple, Union

from asn1crypto import core
from asn1crypto import csr as asn1_csr
from asn1crypto import keys as asn1_keys
from asn1crypto import x509 as asn1_x509
from cryptography import x509
from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from pemchain.artifacts import CertificateArtifact
from pemchain.models import CertificateRecord


logger = logging.getLogger(__name__)

# rsaEncryption, the X.500 legacy RSA OID, RSAES-OAEP and RSASSA-PSS all carry
# an RSAPublicKey in the subjectPublicKey bit string
RSA_ALGORITHM_OIDS = {
    "1.2.840.113549.1.1.1",
    "2.5.8.1.1",
    "1.2.840.113549.1.1.7",
    "1.2.840.113549.1.1.10",
}

PublicKeyHolder = Union[
    rsa.RSAPrivateKey,
    rsa.RSAPublicKey,
    x509.Certificate,
    x509.CertificateSigningRequest,
]


class _RawPublicKeyInfo(core.Sequence):
    """SubjectPublicKeyInfo without asn1crypto's per-algorithm key parsing."""
    _fields = [
        ("algorithm", asn1_keys.PublicKeyAlgorithm),
        ("public_key", core.OctetBitString),
    ]


def _legacy_rsa_numbers(obj: Union[x509.Certificate, x509.CertificateSigningRequest]) -> Optional[Tuple[int, int]]:
    """Dig the RSA modulus and exponent out of the DER when cryptography won't.

    Args:
        obj: Certificate or request whose public key cryptography refused to load

    Returns:
        (modulus, exponent), or None if the key isn't RSA or can't be decoded
    """
    der = obj.public_bytes(encoding=serialization.Encoding.DER)

    try:
        if isinstance(obj, x509.Certificate):
            info = asn1_x509.Certificate.load(der)["tbs_certificate"]["subject_public_key_info"]
        else:
            info = asn1_csr.CertificationRequest.load(der)["certification_request_info"]["subject_pk_info"]

        raw = _RawPublicKeyInfo.load(info.dump())
        oid = raw["algorithm"]["algorithm"].dotted
        if oid not in RSA_ALGORITHM_OIDS:
            logger.debug(f"Public key algorithm {oid} is not RSA")
            return None

        key = asn1_keys.RSAPublicKey.load(raw["public_key"].native)
        return key["modulus"].native, key["public_exponent"].native

    except (ValueError, TypeError, KeyError) as e:
        logger.debug(f"Could not parse legacy RSA key details: {e}")
        return None


def rsa_public_key(obj: PublicKeyHolder) -> Optional[rsa.RSAPublicKey]:
    """The RSA public key of a key, request or certificate (None if it isn't RSA)."""
    if isinstance(obj, rsa.RSAPrivateKey):
        return obj.public_key()

    if isinstance(obj, rsa.RSAPublicKey):
        return obj

    if isinstance(obj, (x509.Certificate, x509.CertificateSigningRequest)):
        try:
            public_key = obj.public_key()
        except (ValueError, UnsupportedAlgorithm) as e:
            # This handles the "Unknown key type" error
            logger.debug(f"Unsupported public key type: {e}")
            numbers = _legacy_rsa_numbers(obj)
            if numbers is None:
                return None
            modulus, exponent = numbers
            try:
                return rsa.RSAPublicNumbers(exponent, modulus).public_key()
            except ValueError as e:
                logger.debug(f"Invalid legacy RSA key: {e}")
                return None

        if isinstance(public_key, rsa.RSAPublicKey):
            return public_key

    return None


def public_modulus(obj: PublicKeyHolder) -> Optional[int]:
    """RSA public modulus of obj, or None for anything that isn't RSA."""
    public_key = rsa_public_key(obj)
    if public_key is None:
        return None
    return public_key.public_numbers().n


def verify_signature(certificate: x509.Certificate, issuer_public_key: rsa.RSAPublicKey) -> bool:
    """Was certificate signed with the private half of issuer_public_key?"""
    try:
        hash_algorithm = certificate.signature_hash_algorithm
        signature_padding = certificate.signature_algorithm_parameters
    except (UnsupportedAlgorithm, ValueError) as e:
        logger.debug(f"Unsupported signature algorithm: {e}")
        return False

    if hash_algorithm is None or not isinstance(signature_padding, (padding.PKCS1v15, padding.PSS)):
        return False

    try:
        issuer_public_key.verify(
            certificate.signature,
            certificate.tbs_certificate_bytes,
            signature_padding,
            hash_algorithm,
        )
    except (InvalidSignature, ValueError, TypeError):
        # Verification failed, not the issuer
        return False

    return True


class KeyMatcher:
    """Pairs a private key with the requests/certificates embedding its public key."""

    def matches(self, private_key: rsa.RSAPrivateKey, holder: PublicKeyHolder) -> bool:
        """True iff both sides are RSA and the moduli are identical."""
        key_modulus = public_modulus(private_key)
        holder_modulus = public_modulus(holder)

        if key_modulus is None or holder_modulus is None:
            return False

        return key_modulus == holder_modulus


class Resolution(Enum):
    """How the issuer lookup for one certificate ended."""
    SELF_SIGNED = "self-signed"
    ISSUED_BY = "issued-by"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class Outcome:
    resolution: Resolution
    issuer:     Optional[CertificateArtifact] = None


class SignerResolver:
    """Finds issuers among every certificate that turned up in the input."""

    def __init__(self, pool: Sequence[CertificateArtifact]):
        """
        Args:
            pool: All certificate artifacts, in discovery order
        """
        self.pool: List[CertificateArtifact] = list(pool)

        # candidate keys and fingerprints are looked up for every certificate
        # on every lineage; work them out once
        self._public_keys: List[Optional[rsa.RSAPublicKey]] = [
            rsa_public_key(candidate.certificate) for candidate in self.pool
        ]
        self._fingerprints: List[str] = [candidate.fingerprint for candidate in self.pool]

    def resolve_issuer(self, certificate: x509.Certificate, exclude: AbstractSet[str] = frozenset()) -> Outcome:
        """Find the first pool certificate whose key verifies certificate's signature.

        Args:
            certificate: Certificate to find the issuer of
            exclude: Fingerprints that may not be picked as issuer (they are
                already further down the lineage being walked)

        Returns:
            SELF_SIGNED when the verifying candidate is the certificate itself,
            ISSUED_BY with the candidate otherwise, UNKNOWN when nothing verifies
        """
        for candidate, public_key, candidate_fp in zip(self.pool, self._public_keys, self._fingerprints):
            if public_key is None:
                continue

            if not verify_signature(certificate, public_key):
                continue

            if candidate.certificate.signature == certificate.signature:
                return Outcome(Resolution.SELF_SIGNED)

            if candidate_fp in exclude:
                logger.warning(f"Ignoring {candidate.path} as issuer: it is already part of this lineage")
                continue

            return Outcome(Resolution.ISSUED_BY, candidate)

        return Outcome(Resolution.UNKNOWN)

    def attach_lineage(self, record: CertificateRecord) -> None:
        """Walk from record towards the root, hanging a fresh issuer record off each step."""
        visited = set()
        current = record

        while True:
            visited.add(current.fingerprint)
            outcome = self.resolve_issuer(current.certificate, exclude=visited)

            if outcome.resolution is Resolution.SELF_SIGNED:
                current.self_signed = True
                logger.debug(f"{current.path} is self-signed")
                return

            if outcome.resolution is Resolution.UNKNOWN:
                logger.debug(f"No issuer found for {current.path}")
                return

            issuer = CertificateRecord(path=outcome.issuer.path, certificate=outcome.issuer.certificate)
            logger.info(f"Found issuer for {current.path}: {issuer.path}")

            current.issuer = issuer
            current = issuer
