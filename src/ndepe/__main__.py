import sys

from ndepe.interface.cli.app import main

sys.exit(main())
