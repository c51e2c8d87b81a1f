import sys

from pemchain.cli import main


sys.exit(main())
