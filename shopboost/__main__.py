import sys

from shopboost.cli import main

sys.exit(main())
