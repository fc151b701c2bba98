import sys

from termclock.cli import main

sys.exit(main())
