#!/usr/bin/env python3
"""
Audit (and optionally repair) the payables ledger.

Same as the ``payables-reconcile`` console script; requires the package to
be installed (``pip install -e .``).

Usage:
    python3 scripts/reconcile_ledger.py [--database-url URL] [--repair] [--actor-id UUID]
"""

import sys

from payables_services.reconcile_cli import main

if __name__ == "__main__":
    sys.exit(main())
