"""
Services package for epg-timefix

This package contains the channel adjustment, stream transformation and
XMLTV streaming components.
"""
