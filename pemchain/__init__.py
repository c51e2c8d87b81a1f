"""Match private keys with their requests and certificates, and trace who signed what."""

from pemchain.chain import ChainBuilder
from pemchain.discovery import list_paths
from pemchain.models import CertificateRecord, Chain
from pemchain.settings import Settings

__version__ = "0.1.0"

__all__ = [
    "CertificateRecord",
    "Chain",
    "ChainBuilder",
    "Settings",
    "list_paths",
]
