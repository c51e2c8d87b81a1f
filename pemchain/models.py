from dataclasses import dataclass, field
from typing import List, Optional

from cryptography import x509

from pemchain.artifacts import PrivateKeyArtifact, RequestArtifact, fingerprint


@dataclass
class CertificateRecord:
    """A certificate attached to a chain, plus whatever issued it."""
    path:           str
    certificate:    x509.Certificate
    issuer:         Optional["CertificateRecord"] = None
    self_signed:    bool = False

    @property
    def fingerprint(self) -> str:
        return fingerprint(self.certificate)

    def lineage(self) -> List["CertificateRecord"]:
        """Issuers from the nearest one up to the root (or wherever resolution stopped)."""
        chain = []
        record = self.issuer
        while record is not None:
            chain.append(record)
            record = record.issuer
        return chain


@dataclass
class Chain:
    """One private key and everything that belongs with it."""
    key:            PrivateKeyArtifact
    request:        Optional[RequestArtifact] = None
    certificates:   List[CertificateRecord] = field(default_factory=list)
