import sys

from i18n_magic.cli import main

sys.exit(main())
