"""
oget - Run as module

Usage: python -m oget --service-url http://host:port/servicename.svc
"""

import sys

from oget.cli import main


if __name__ == "__main__":
    sys.exit(main())
