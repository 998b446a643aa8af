import sys

from eventclient.main import main

sys.exit(main())
