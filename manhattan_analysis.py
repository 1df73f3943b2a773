#!/usr/bin/env python3
"""
Manhattan Taxi Trips — run the complete analysis pipeline.

Usage:
    python manhattan_analysis.py

Input, background map and output locations come from ``manhattan_taxi.config``
and can be overridden with MANHATTAN_TAXI_DATA, MANHATTAN_TAXI_MAP and
MANHATTAN_TAXI_OUTPUT.
"""

import sys

from manhattan_taxi.analysis import main

if __name__ == '__main__':
    sys.exit(main())
