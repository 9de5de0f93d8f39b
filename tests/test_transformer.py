"""
Tests for the stream transformer: shifting, offset stamping and diagnostics.
"""
import pytest

from epg_timefix.config import ConfigError, CustomSettings
from epg_timefix.services.adjustments import build_adjustment_rules
from epg_timefix.services.transform_types import ManualAdjustment, ProgrammeRecord, TransformConfig
from epg_timefix.services.transformer import (
    StreamTransformer,
    build_transform_config,
    transform_strict,
)
from epg_timefix.utils.timezone import ParseError, TimezoneMode, parse_xmltv_time


@pytest.fixture
def make_config(brisbane, channel_map):
    def _make(mode=TimezoneMode.NONE, zone=brisbane, region=None, manual=None):
        rules = build_adjustment_rules(channel_map, region=region, manual=manual)
        return TransformConfig(timezone_mode=mode, zone=zone, rules=rules)
    return _make


def record(channel="abc1", start="20130401060000", stop="20130401070000", payload=None):
    return ProgrammeRecord(channel=channel, start=start, stop=stop, payload=payload)


class TestShifting:
    def test_regional_fixup(self, make_config):
        transformer = StreamTransformer(make_config(region=63))
        result = transformer.transform(record())
        assert (result.start, result.stop) == ("20130401053000", "20130401063000")
        assert transformer.stats.shifted == 1

    def test_regional_fixup_then_stamp(self, make_config):
        transformer = StreamTransformer(make_config(mode=TimezoneMode.AUTO, region=63))
        result = transformer.transform(record())
        assert result.start == "20130401053000 +1000"
        assert result.stop == "20130401063000 +1000"

    def test_manual_adjustment_only_touches_its_channel(self, make_config):
        transformer = StreamTransformer(make_config(region=63, manual=ManualAdjustment("SBS", 30)))
        sbs = transformer.transform(record(channel="sbs.au"))
        other = transformer.transform(record(channel="nine"))
        assert (sbs.start, sbs.stop) == ("20130401063000", "20130401073000")
        assert (other.start, other.stop) == ("20130401060000", "20130401070000")

    def test_shift_drops_existing_offset_until_restamped(self, make_config):
        config = make_config(manual=ManualAdjustment("SBS", 30))
        result = StreamTransformer(config).transform(record(channel="sbs.au", start="20130401060000 +1000"))
        assert result.start == "20130401063000"

    @pytest.mark.parametrize("delta", [-90, -30, 15, 30, 60, 24 * 60])
    def test_shift_preserves_duration_across_dst(self, sydney, channel_map, delta):
        config = TransformConfig(
            timezone_mode=TimezoneMode.NONE,
            zone=sydney,
            rules=build_adjustment_rules(channel_map, manual=ManualAdjustment("SBS", delta)),
        )
        original = record(channel="sbs.au", start="20131006013000", stop="20131006040000")
        result = StreamTransformer(config).transform(original)

        def duration(item):
            return parse_xmltv_time(item.stop, sydney) - parse_xmltv_time(item.start, sydney)

        assert duration(result) == duration(original) == 90 * 60

    def test_unmatched_channel_is_untouched(self, make_config):
        transformer = StreamTransformer(make_config(region=63))
        original = record(channel="sbs.au", start="20130401060012")
        assert transformer.transform(original) == original
        assert transformer.stats.shifted == 0


class TestStamping:
    def test_auto_mode_with_host_offset(self, make_config):
        result = StreamTransformer(make_config(mode=TimezoneMode.AUTO)).transform(record())
        assert result.start == "20130401060000 +1000"

    def test_dst_aware_stamping(self, sydney, make_config):
        transformer = StreamTransformer(make_config(mode=TimezoneMode.AUTO, zone=sydney))
        result = transformer.transform(record(start="20130406230000", stop="20130407230000"))
        assert result.start == "20130406230000 +1100"
        assert result.stop == "20130407230000 +1000"

    def test_none_mode_never_adds_offsets(self, make_config):
        transformer = StreamTransformer(make_config(region=63, manual=ManualAdjustment("SBS", 30)))
        for item in (record(), record(channel="sbs.au"), record(channel="nine")):
            result = transformer.transform(item)
            assert " " not in result.start
            assert " " not in result.stop
        assert transformer.stats.start_stamped == 0
        assert transformer.stats.stop_stamped == 0

    def test_existing_offset_is_left_alone(self, make_config):
        transformer = StreamTransformer(make_config(mode=TimezoneMode.AUTO))
        result = transformer.transform(record(channel="nine", start="20130401060000 +0000"))
        assert result.start == "20130401060000 +0000"
        assert result.stop == "20130401070000 +1000"
        assert transformer.stats.start_stamped == 0
        assert transformer.stats.stop_stamped == 1

    def test_missing_stop_is_passed_through(self, make_config):
        transformer = StreamTransformer(make_config(mode=TimezoneMode.AUTO, region=63))
        result = transformer.transform(record(stop=None))
        assert result.start == "20130401053000 +1000"
        assert result.stop is None

    def test_payload_passes_through(self, make_config):
        payload = object()
        result = StreamTransformer(make_config(mode=TimezoneMode.AUTO)).transform(record(payload=payload))
        assert result.payload is payload


class TestErrors:
    def test_malformed_field_is_skipped_and_counted(self, make_config):
        transformer = StreamTransformer(make_config(mode=TimezoneMode.AUTO))
        result = transformer.transform(record(start="soon"))
        assert result.start == "soon"
        assert result.stop == "20130401070000 +1000"
        assert transformer.stats.parse_errors == 1
        assert transformer.stats.start_stamped == 0
        assert transformer.stats.stop_stamped == 1

    def test_malformed_field_is_not_shifted(self, make_config):
        transformer = StreamTransformer(make_config(region=63))
        result = transformer.transform(record(stop="20131301000000"))
        assert result.start == "20130401053000"
        assert result.stop == "20131301000000"

    def test_strict_transform_raises(self, make_config):
        with pytest.raises(ParseError):
            transform_strict(record(start="soon"), make_config(mode=TimezoneMode.AUTO))

    def test_strict_transform(self, make_config):
        result = transform_strict(record(), make_config(mode=TimezoneMode.AUTO, region=63))
        assert result.start == "20130401053000 +1000"


class TestRun:
    def test_emits_in_order_and_counts(self, make_config):
        transformer = StreamTransformer(make_config(mode=TimezoneMode.AUTO, region=63))
        records = [
            record(channel="abc1"),
            record(channel="sbs.au", start="20130401070000 +1000"),
            record(channel="nine", stop=None),
        ]
        emitted = []

        stats = transformer.run(iter(records), emitted.append)

        assert [item.channel for item in emitted] == ["abc1", "sbs.au", "nine"]
        assert stats is transformer.stats
        assert stats.records == 3
        assert stats.shifted == 1
        assert stats.start_stamped == 2
        assert stats.stop_stamped == 2


class TestBuildTransformConfig:
    def test_from_settings(self, channel_map_file):
        settings = CustomSettings(
            timezone_mode="auto",
            local_timezone="Australia/Brisbane",
            region=63,
            channel_adjust="SBS,30",
            channel_map_path=str(channel_map_file),
        )
        config = build_transform_config(settings)
        assert config.timezone_mode is TimezoneMode.AUTO
        assert config.stamps_offsets
        assert str(config.zone) == "Australia/Brisbane"
        assert [(rule.channel_id, rule.delta_minutes) for rule in config.rules] == [
            ("abc1", -30),
            ("sbs.au", 30),
        ]

    def test_explicit_zone_wins_over_local_timezone(self):
        settings = CustomSettings(timezone_mode="Australia/Sydney", local_timezone="Australia/Brisbane")
        config = build_transform_config(settings)
        assert config.timezone_mode is TimezoneMode.EXPLICIT
        assert str(config.zone) == "Australia/Sydney"

    def test_adjustment_without_channel_map(self):
        with pytest.raises(ConfigError):
            build_transform_config(CustomSettings(region=63))

    def test_unreadable_channel_map(self, tmp_path):
        path = tmp_path / "channels.json"
        path.write_text("{broken", encoding="utf-8")
        with pytest.raises(ConfigError):
            build_transform_config(CustomSettings(channel_map_path=str(path)))
