import sys

from phone_pilot.cli import main

sys.exit(main())
