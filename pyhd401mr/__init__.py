"""pyhd401mr Python Package

Python library for controlling the OREI HD-401MR quad multi-viewer.
"""

from pyhd401mr.switcher import ConnectionState, HD401MRSwitcher

__all__ = ["ConnectionState", "HD401MRSwitcher"]
