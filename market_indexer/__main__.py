import sys

from market_indexer.cli import main

sys.exit(main())
