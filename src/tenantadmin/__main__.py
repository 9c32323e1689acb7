import sys

from tenantadmin.cli.main import main

sys.exit(main())
