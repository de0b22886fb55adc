import sys

from juice.cli import main

sys.exit(main())
