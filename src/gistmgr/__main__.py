import sys

from gistmgr.cli import main

sys.exit(main())
