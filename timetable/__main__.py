import sys

from timetable.cli import main

sys.exit(main())
