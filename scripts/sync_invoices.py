"""Entry point that moves invoice attachments and remote archives into Google Drive."""

from __future__ import annotations

import sys
from pathlib import Path

# Ensure project root is on sys.path when running as a script
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from invoice_sync.cli import main

if __name__ == "__main__":
    sys.exit(main())
