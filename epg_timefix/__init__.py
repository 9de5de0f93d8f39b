"""
epg-timefix

Timezone normalization and per-channel time correction for XMLTV listings.
"""

__version__ = "0.1.0"
