import sys

from xray_bridge.cli import main

sys.exit(main())
