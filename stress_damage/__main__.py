import sys

from stress_damage.cli import main

sys.exit(main())
