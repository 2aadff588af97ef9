import sys

from covprune.cli import main

sys.exit(main())
