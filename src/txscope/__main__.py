import sys

from txscope.cli.main import main

sys.exit(main())
