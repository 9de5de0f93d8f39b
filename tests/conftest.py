"""
Shared fixtures for the epg-timefix test suite.
"""
import json
import os
from zoneinfo import ZoneInfo

import pytest


SAMPLE_XMLTV = b"""<?xml version="1.0" encoding="UTF-8"?>
<!DOCTYPE tv SYSTEM "xmltv.dtd">
<tv source-info-name="test-grabber" generator-info-name="unit-tests">
  <channel id="abc1">
    <display-name>ABC1</display-name>
  </channel>
  <channel id="sbs.au">
    <display-name>SBS</display-name>
  </channel>
  <programme start="20130401060000" stop="20130401070000" channel="abc1">
    <title>News Breakfast</title>
    <desc>Morning news.</desc>
  </programme>
  <programme start="20130401060000" stop="20130401070000" channel="sbs.au">
    <title>World Watch</title>
  </programme>
  <programme start="20130401070000 +1000" stop="20130401080000" channel="sbs.au">
    <title>Already Stamped</title>
  </programme>
</tv>
"""


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch, tmp_path):
    """Keep stray .env files and EPG_TIMEFIX_* variables out of every test."""
    monkeypatch.chdir(tmp_path)
    for name in list(os.environ):
        if name.upper().startswith("EPG_TIMEFIX_"):
            monkeypatch.delenv(name, raising=False)


@pytest.fixture
def sydney():
    """Zone with DST (AEST +1000 / AEDT +1100)."""
    return ZoneInfo("Australia/Sydney")


@pytest.fixture
def brisbane():
    """Fixed +1000 zone without DST."""
    return ZoneInfo("Australia/Brisbane")


@pytest.fixture
def channel_map():
    return {"ABC1": "abc1", "SBS": "sbs.au"}


@pytest.fixture
def channel_map_file(tmp_path, channel_map):
    path = tmp_path / "channels.json"
    path.write_text(json.dumps(channel_map), encoding="utf-8")
    return path


@pytest.fixture
def xmltv_file(tmp_path):
    path = tmp_path / "listings.xml"
    path.write_bytes(SAMPLE_XMLTV)
    return path


@pytest.fixture
def sample_xmltv():
    return SAMPLE_XMLTV
