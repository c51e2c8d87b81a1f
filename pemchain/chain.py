#
# keys first, then requests, then certificates, then who signed the certificates
#

import logging
import os
from pathlib import Path
from typing import List, Optional

from pemchain.artifacts import Artifact, CertificateArtifact, PrivateKeyArtifact, RequestArtifact, classify
from pemchain.matching import KeyMatcher, SignerResolver
from pemchain.models import CertificateRecord, Chain
from pemchain.settings import Settings


logger = logging.getLogger(__name__)


class ChainBuilder:
    """Groups the artifacts found in a list of files into chains."""

    def __init__(self, settings: Optional[Settings] = None):
        """Initialize the builder.

        Args:
            settings: Application settings
        """
        self.settings = settings or Settings()
        self.matcher = KeyMatcher()

    def build(self, paths: List[str]) -> List[Chain]:
        """Build one chain per private key found among paths.

        Each phase runs over every file before the next one starts.

        Args:
            paths: Files to look at, in discovery order

        Returns:
            Chains in the order their keys were found
        """
        artifacts = self.scan(paths)

        keys         = [a for a in artifacts if isinstance(a, PrivateKeyArtifact)]
        requests     = [a for a in artifacts if isinstance(a, RequestArtifact)]
        certificates = [a for a in artifacts if isinstance(a, CertificateArtifact)]

        logger.info(f"Found {len(keys)} keys, {len(requests)} requests and {len(certificates)} certificates")

        chains = self._initialize(keys)
        self._attach_requests(chains, requests)
        self._attach_certificates(chains, certificates)
        self._attach_signers(chains, certificates)

        return chains

    def scan(self, paths: List[str]) -> List[Artifact]:
        """Read and classify every file once.

        Unreadable and oversized files are skipped, not fatal.
        """
        artifacts = []

        for filename in paths:
            try:
                if os.stat(filename).st_size > self.settings.max_file_size:
                    logger.warning(f"Skipping '{filename}', larger than maximum allowed ({self.settings.max_file_size} bytes)")
                    continue

                data = Path(filename).read_bytes()
            except OSError as e:
                logger.warning(f"Skipping '{filename}': {e}")
                continue

            logger.debug(f"Processing {filename}")
            artifact = classify(filename, data)
            if artifact is not None:
                artifacts.append(artifact)

        return artifacts

    def _initialize(self, keys: List[PrivateKeyArtifact]) -> List[Chain]:
        """One chain per private key; duplicates are not merged."""
        return [Chain(key=key) for key in keys]

    def _attach_requests(self, chains: List[Chain], requests: List[RequestArtifact]) -> None:
        """First matching request wins."""
        for chain in chains:
            for request in requests:
                if self.matcher.matches(chain.key.key, request.request):
                    chain.request = request
                    logger.info(f"Found matching request for key: {chain.key.path} -> {request.path}")
                    break

    def _attach_certificates(self, chains: List[Chain], certificates: List[CertificateArtifact]) -> None:
        """Every matching certificate, in discovery order."""
        for chain in chains:
            for certificate in certificates:
                if self.matcher.matches(chain.key.key, certificate.certificate):
                    chain.certificates.append(
                        CertificateRecord(path=certificate.path, certificate=certificate.certificate)
                    )
                    logger.info(f"Found matching certificate for key: {chain.key.path} -> {certificate.path}")

    def _attach_signers(self, chains: List[Chain], certificates: List[CertificateArtifact]) -> None:
        """Resolve issuers against every certificate seen, attached to a chain or not."""
        resolver = SignerResolver(certificates)

        for chain in chains:
            for record in chain.certificates:
                resolver.attach_lineage(record)
