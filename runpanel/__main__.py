import sys

from runpanel.cli import main

sys.exit(main())
