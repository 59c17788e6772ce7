import sys

from baton.cli.__main__ import main

sys.exit(main())
