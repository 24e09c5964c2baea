"""
TradeMind: personal trading journal with cloud backup.

Your journal lives on the device. A single JSON backup lives in your
drive. Every login reconciles the two so nothing you logged is lost.
"""

import os

__version__ = "0.1.0"
__author__ = "TradeMind"

TRADEMIND_HOME = os.environ.get("TRADEMIND_HOME", "~/.trademind")
