# -*- coding: utf-8 -*-
"""
LedgerAudit
===========

Consistency auditing for replicated account ledgers: compares the account
state held by a canonical archiver against every node that replicates it
and reports mismatches, orphans and match rates.
"""

from ledgeraudit._version import __version__
from ledgeraudit.exceptions import (
    ConfigurationError,
    DecodeError,
    LedgerAuditException,
    SourceError,
    StoreAccessError,
)

__all__ = [
    "__version__",
    "LedgerAuditException",
    "SourceError",
    "StoreAccessError",
    "DecodeError",
    "ConfigurationError",
]
