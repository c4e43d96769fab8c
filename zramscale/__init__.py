"""
zramscale - size ZRAM swap from installed RAM and rescale it under memory pressure.

Usage:
    zramscale start            # initial setup, then monitor if dynamic scaling is on
    zramscale status --json    # live devices and what the policy would choose now
"""

__version__ = '0.1.0'
