# -*- coding: utf-8 -*-
"""Version information for ledgeraudit."""

__version__ = "0.3.0"
