import sys

from kernbuild.cli import main

sys.exit(main())
