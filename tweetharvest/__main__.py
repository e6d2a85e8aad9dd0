import sys

from tweetharvest.cli import main

sys.exit(main())
