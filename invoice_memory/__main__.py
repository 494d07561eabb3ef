"""Allow ``python -m invoice_memory``."""

import sys

from invoice_memory.cli import main


sys.exit(main())
