import sys

from mimecraft.cli import main

sys.exit(main())
