"""RodoGuard - offline-first privacy protection for Polish legal data.

Detects personal data, anonymizes it reversibly per request, keeps a
tamper-evident audit trail of privacy decisions and encrypts stores at rest.
"""

__version__ = "0.1.0"
__author__ = "RodoGuard Contributors"

from rodoguard.config import Settings, get_settings

__all__ = ["Settings", "get_settings", "__version__"]
