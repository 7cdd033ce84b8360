import sys

from hold_to_earn.cli import main

sys.exit(main())
