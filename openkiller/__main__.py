import sys

from openkiller.cli import main

sys.exit(main())
