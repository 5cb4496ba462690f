import sys

from cloudsnap.cli import main

sys.exit(main())
