import sys

from ethindexer.main import main

sys.exit(main())
