import sys

from src.smtpd_addheader.cli import main

sys.exit(main())
