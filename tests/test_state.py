"""Tests for device state models in models/state.py"""

from conftest import DEVICE_PAYLOAD, PRESETS_PAYLOAD, RELAY_BLOCK
from models.state import Catalog, DeviceState, Preset, RelayModule, Segment, parse_presets
from models.types import Mode


class TestDeviceState:
    """Test parsing of the /json state block."""

    def test_parses_full_state(self):
        state = DeviceState.from_json(DEVICE_PAYLOAD['state'])
        assert state.on is True
        assert state.brightness == 128
        assert state.preset_id == 2
        assert state.playlist_id == -1
        assert state.segments == [Segment(effect_id=1, palette_id=0)]
        assert state.relay is None

    def test_missing_fields_default(self):
        state = DeviceState.from_json({})
        assert state.on is False
        assert state.brightness == 0
        assert state.segments == []

    def test_malformed_segments_ignored(self):
        assert DeviceState.from_json({'seg': 'oops'}).segments == []
        assert DeviceState.from_json({'seg': [None, {'fx': 'x', 'pal': 3}]}).segments == [
            Segment(effect_id=0, palette_id=3)
        ]

    def test_soft_on(self):
        assert DeviceState(on=True, brightness=10).soft_on is True
        assert DeviceState(on=True, brightness=0).soft_on is False
        assert DeviceState(on=False, brightness=200).soft_on is False

    def test_default_on(self):
        state = DeviceState.default_on(40)
        assert state.on is True
        assert state.brightness == 40
        assert len(state.segments) == 1

    def test_primary_segment_created(self):
        state = DeviceState()
        segment = state.primary_segment()
        assert state.segments == [segment]
        assert state.primary_segment() is segment


class TestRelayModule:
    """Test MultiRelay block parsing."""

    def test_parses_relays(self):
        relay = RelayModule.from_json(RELAY_BLOCK)
        assert relay.relay_count == 2
        assert relay.state_of(0) is True
        assert relay.state_of(1) is False

    def test_unknown_relay_is_off(self):
        assert RelayModule.from_json(RELAY_BLOCK).state_of(7) is False

    def test_absent_block(self):
        assert RelayModule.from_json(None) is None
        assert RelayModule.from_json({}) is None
        assert RelayModule.from_json({'relays': 'none'}) is None

    def test_empty_relay_list_means_no_module(self):
        assert RelayModule.from_json({'relays': []}) is None
        assert RelayModule.from_json({'relays': [None, 'x']}) is None

    def test_attached_to_state(self):
        state = DeviceState.from_json({'on': True, 'MultiRelay': RELAY_BLOCK})
        assert state.relay.relay_count == 2


class TestPresets:
    """Test presets.json parsing."""

    def test_skips_slot_zero_and_empty_entries(self):
        presets = parse_presets(PRESETS_PAYLOAD)
        assert presets == [Preset(1, 'Morning'), Preset(2, 'Evening'), Preset(5, 'Party')]

    def test_sorted_numerically(self):
        presets = parse_presets({'10': {'n': 'Ten'}, '9': {'n': 'Nine'}})
        assert [p.id for p in presets] == [9, 10]

    def test_unnamed_preset_gets_placeholder(self):
        assert parse_presets({'4': {'on': True}}) == [Preset(4, 'Preset 4')]

    def test_non_numeric_keys_skipped(self):
        assert parse_presets({'x': {'n': 'Bad'}}) == []

    def test_non_dict_payload(self):
        assert parse_presets([]) == []
        assert parse_presets(None) == []

    def test_catalog_lookup(self):
        catalog = Catalog(presets=parse_presets(PRESETS_PAYLOAD))
        assert catalog.find_preset(5).name == 'Party'
        assert catalog.find_preset(3) is None


class TestMode:
    """Test mode parsing."""

    def test_parse_known(self):
        assert Mode.parse('PALETTE') is Mode.PALETTE

    def test_parse_unknown_uses_default(self):
        assert Mode.parse('STROBE') is Mode.BRIGHTNESS
        assert Mode.parse(None, Mode.EFFECT) is Mode.EFFECT
