import sys

from realign.cli import main

sys.exit(main())
