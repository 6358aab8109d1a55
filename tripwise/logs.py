"""Logging setup for TripWise entry points."""

from __future__ import annotations

import logging
import sys
from typing import Union


def configure_logging(level: Union[int, str] = logging.INFO) -> logging.Logger:
    """Configure root logging with a single stdout handler.

    Library modules only call ``logging.getLogger(__name__)``; this is
    meant for the Streamlit app or other scripts that own the process.
    """
    formatter = logging.Formatter("%(asctime)s | %(levelname)s | %(name)s | %(message)s")
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    return logging.getLogger("tripwise")
