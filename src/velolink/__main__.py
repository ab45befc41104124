import sys

from velolink.cli import main

sys.exit(main())
