#
# what the user actually gets to see
#

import json
from typing import Any, Dict, List, Optional

from pemchain.artifacts import RequestArtifact, subject_alternative_names, subject_common_name
from pemchain.models import CertificateRecord, Chain


UNKNOWN_NAME = "(unknown)"


def name_from_certificate(record: CertificateRecord) -> Optional[str]:
    """Prefer a non-www SAN, then the first SAN, then the common name."""
    sans = subject_alternative_names(record.certificate)

    for san in sans:
        if not san.startswith("www."):
            return san

    if sans:
        return sans[0]

    return subject_common_name(record.certificate)


def name_from_request(request: RequestArtifact) -> Optional[str]:
    return subject_common_name(request.request)


def display_name(chain: Chain) -> str:
    """Get a friendly name for a chain.

    Args:
        chain: Chain to name

    Returns:
        Name from the first certificate, else from the request, else "(unknown)"
    """
    if chain.certificates:
        name = name_from_certificate(chain.certificates[0])
        if name:
            return name

    if chain.request is not None:
        name = name_from_request(chain.request)
        if name:
            return name

    return UNKNOWN_NAME


def _label(record: CertificateRecord) -> str:
    return f"{record.path} (self-signed)" if record.self_signed else record.path


def render_tree(chains: List[Chain]) -> str:
    """Indented, human readable listing of every chain."""
    lines = []

    for chain in chains:
        lines.append(display_name(chain))
        lines.append(f"  * Key: {chain.key.path}")
        lines.append(f"  * CSR: {chain.request.path if chain.request else 'n/a'}")

        if not chain.certificates:
            lines.append("  * Certificates: n/a")
            continue

        lines.append("  * Certificates:")
        for record in chain.certificates:
            indentation = 4
            lines.append(" " * indentation + f"- {_label(record)}")

            # each issuer one step further in
            for issuer in record.lineage():
                indentation += 2
                lines.append(" " * indentation + f"> {_label(issuer)}")

    return "\n".join(lines)


def render_oneline(chains: List[Chain], header: bool = True) -> str:
    """One row per chain: name, key, request and certificate chains."""
    lines = []

    if header:
        lines.append("name key request certificate_chain")

    for chain in chains:
        row = [
            display_name(chain),
            chain.key.path,
            chain.request.path if chain.request else "-",
        ]

        if not chain.certificates:
            row.append("-")

        for record in chain.certificates:
            links = [record.path]
            if record.self_signed:
                links.append("(self-signed)")
            links.extend(issuer.path for issuer in record.lineage())
            row.append("|".join(links))

        lines.append(" ".join(row))

    return "\n".join(lines)


def _record_to_dict(record: CertificateRecord) -> Dict[str, Any]:
    return {
        "path":         record.path,
        "fingerprint":  record.fingerprint,
        "self_signed":  record.self_signed,
    }


def chain_to_dict(chain: Chain) -> Dict[str, Any]:
    """Machine readable form of a chain."""
    certificates = []
    for record in chain.certificates:
        entry = _record_to_dict(record)
        entry["lineage"] = [_record_to_dict(issuer) for issuer in record.lineage()]
        certificates.append(entry)

    return {
        "name":         display_name(chain),
        "key":          chain.key.path,
        "request":      chain.request.path if chain.request else None,
        "certificates": certificates,
    }


def render_json(chains: List[Chain]) -> str:
    return json.dumps([chain_to_dict(chain) for chain in chains], indent=2)


def render(chains: List[Chain], output_format: str, header: bool = True) -> str:
    """Render chains in the requested format ("tree", "oneline" or "json")."""
    if output_format == "json":
        return render_json(chains)
    if output_format == "oneline":
        return render_oneline(chains, header=header)
    return render_tree(chains)
