"""Tests for network discovery in core/discovery.py"""

import socket
import threading
import time
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest

from core.discovery import (
    build_candidates,
    check_device,
    get_local_subnets,
    scan,
    scan_candidates,
    sort_subnets,
)
from core.probe import ProbeResult


def iface_addr(address, family=socket.AF_INET):
    return SimpleNamespace(family=family, address=address, netmask='255.255.255.0',
                           broadcast=None, ptp=None)


class TestGetLocalSubnets:
    """Test interface enumeration."""

    @patch('core.discovery.psutil.net_if_stats')
    @patch('core.discovery.psutil.net_if_addrs')
    def test_collects_active_ipv4_prefixes(self, mock_addrs, mock_stats):
        mock_addrs.return_value = {
            'lo': [iface_addr('127.0.0.1')],
            'eth0': [iface_addr('192.168.1.23'), iface_addr('fe80::1', socket.AF_INET6)],
            'wlan0': [iface_addr('10.0.0.5')],
            'docker0': [iface_addr('172.17.0.1')],
            'eth1': [iface_addr('169.254.3.4')],
        }
        mock_stats.return_value = {
            'lo': SimpleNamespace(isup=True),
            'eth0': SimpleNamespace(isup=True),
            'wlan0': SimpleNamespace(isup=True),
            'docker0': SimpleNamespace(isup=False),
            'eth1': SimpleNamespace(isup=True),
        }

        assert get_local_subnets() == ['192.168.1', '10.0.0']

    @patch('core.discovery.psutil.net_if_stats')
    @patch('core.discovery.psutil.net_if_addrs')
    def test_deduplicates(self, mock_addrs, mock_stats):
        mock_addrs.return_value = {
            'eth0': [iface_addr('192.168.1.23')],
            'eth0:1': [iface_addr('192.168.1.24')],
        }
        mock_stats.return_value = {}

        assert get_local_subnets() == ['192.168.1']

    @patch('core.discovery.psutil.net_if_addrs')
    def test_enumeration_failure(self, mock_addrs):
        mock_addrs.side_effect = OSError('permission denied')
        assert get_local_subnets() == []


class TestCandidates:
    """Test subnet ordering and candidate lists."""

    def test_priority_subnets_first(self):
        assert sort_subnets(['10.0.0', '192.168.1', '172.16.5', '192.168.178']) == [
            '192.168.1', '192.168.178', '10.0.0', '172.16.5'
        ]

    def test_build_candidates(self):
        candidates = build_candidates(['192.168.1'])
        assert candidates[:2] == ['wled.local', 'wled-light.local']
        assert candidates[2] == '192.168.1.1'
        assert candidates[-1] == '192.168.1.254'
        assert len(candidates) == 2 + 254

    def test_no_subnets(self):
        assert build_candidates([]) == ['wled.local', 'wled-light.local']


class TestCheckDevice:
    """Test single-candidate identity probe."""

    @patch('core.client.probe')
    def test_named_device(self, mock_probe):
        mock_probe.return_value = ProbeResult(ok=True, payload={'name': 'Kitchen'})
        assert check_device('192.168.1.5', 1.5) == {'ip': '192.168.1.5', 'name': 'Kitchen'}
        mock_probe.assert_called_once_with('192.168.1.5', '/json/info', 1.5)

    @patch('core.client.probe')
    def test_unnamed_device(self, mock_probe):
        mock_probe.return_value = ProbeResult(ok=True, payload={})
        assert check_device('192.168.1.5', 1.5)['name'] == 'Unknown WLED'

    @patch('core.client.probe')
    def test_no_answer(self, mock_probe):
        mock_probe.return_value = ProbeResult(ok=False, reason='timed out', timed_out=True)
        assert check_device('192.168.1.5', 1.5) is None

    def test_uses_given_client(self):
        client = MagicMock()
        client.fetch_info.return_value = {'name': 'Desk'}

        assert check_device('192.168.1.5', 1.5, client=client) == {'ip': '192.168.1.5', 'name': 'Desk'}
        client.fetch_info.assert_called_once_with('192.168.1.5', 1.5)


def fake_check(devices):
    def check(address, timeout):
        if address in devices:
            return {'ip': address, 'name': devices[address]}
        return None
    return check


class TestScanCandidates:
    """Test batched concurrent scanning."""

    CANDIDATES = ['wled.local', 'wled-light.local'] + [f"192.168.1.{i}" for i in range(1, 40)]
    DEVICES = {'wled.local': 'Hall', '192.168.1.7': 'Desk', '192.168.1.33': 'Porch'}

    @pytest.mark.parametrize("batch_size", [1, 7, 256])
    def test_results_independent_of_batch_size(self, batch_size):
        found = scan_candidates(self.CANDIDATES, batch_size=batch_size, timeout=0.1,
                                check=fake_check(self.DEVICES))
        assert found == [
            {'ip': 'wled.local', 'name': 'Hall'},
            {'ip': '192.168.1.7', 'name': 'Desk'},
            {'ip': '192.168.1.33', 'name': 'Porch'},
        ]

    def test_deduplicates_by_address(self):
        found = scan_candidates(['192.168.1.7', '192.168.1.7'], batch_size=2, timeout=0.1,
                                check=fake_check(self.DEVICES))
        assert found == [{'ip': '192.168.1.7', 'name': 'Desk'}]

    def test_in_flight_bounded_by_batch_size(self):
        lock = threading.Lock()
        in_flight = 0
        peak = 0

        def slow_check(address, timeout):
            nonlocal in_flight, peak
            with lock:
                in_flight += 1
                peak = max(peak, in_flight)
            time.sleep(0.01)
            with lock:
                in_flight -= 1
            return None

        scan_candidates(self.CANDIDATES, batch_size=4, timeout=0.1, check=slow_check)
        assert 1 <= peak <= 4

    def test_failing_probe_is_a_miss(self):
        def check(address, timeout):
            if address == '192.168.1.2':
                raise RuntimeError('boom')
            return fake_check(self.DEVICES)(address, timeout)

        found = scan_candidates(self.CANDIDATES, batch_size=8, timeout=0.1, check=check)
        assert len(found) == 3

    def test_rejects_bad_batch_size(self):
        with pytest.raises(ValueError):
            scan_candidates(self.CANDIDATES, batch_size=0)

    def test_no_candidates(self):
        assert scan_candidates([], batch_size=4, timeout=0.1, check=fake_check({})) == []


class TestScan:
    """Test the full discovery sweep."""

    @patch('core.discovery.scan_candidates')
    def test_sweeps_sorted_subnets(self, mock_scan):
        mock_scan.return_value = []
        scan(batch_size=16, timeout=0.5, subnets=['10.0.0', '192.168.0'])

        candidates = mock_scan.call_args.args[0]
        assert candidates[2] == '192.168.0.1'
        assert candidates[256] == '10.0.0.1'
        assert mock_scan.call_args.kwargs == {'batch_size': 16, 'timeout': 0.5}

    @patch('core.discovery.get_local_subnets')
    @patch('core.discovery.scan_candidates')
    def test_defaults_to_local_subnets(self, mock_scan, mock_subnets):
        mock_subnets.return_value = ['192.168.1']
        mock_scan.return_value = [{'ip': '192.168.1.7', 'name': 'Desk'}]

        assert scan() == [{'ip': '192.168.1.7', 'name': 'Desk'}]
        mock_subnets.assert_called_once()

    @patch('core.discovery.get_local_subnets')
    @patch('core.client.probe')
    def test_nothing_found(self, mock_probe, mock_subnets):
        mock_subnets.return_value = []
        mock_probe.return_value = ProbeResult(ok=False, reason='timed out', timed_out=True)
        assert scan(timeout=0.1) == []
        assert mock_probe.call_count == 2
