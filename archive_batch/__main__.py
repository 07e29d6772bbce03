import sys

from archive_batch.cli import main

sys.exit(main())
