"""
pbscan: read Powerball tickets from photos and check them against the latest draw.
"""

__version__ = "1.0.0"
