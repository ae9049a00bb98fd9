"""Tests for acmer53.dns.propagation."""

from __future__ import annotations

import threading
from dataclasses import replace
from unittest.mock import MagicMock

import pytest

from acmer53.core.errors import DnsPropagationTimeout, DnsProviderError
from acmer53.dns.propagation import wait_for_change


@pytest.fixture
def provider():
    return MagicMock()


class TestWaitForChange:
    def test_returns_when_in_sync(self, provider, settings):
        provider.is_change_in_sync.side_effect = [False, False, True]

        wait_for_change(provider, "C1", settings.dns.propagation)

        assert provider.is_change_in_sync.call_count == 3
        provider.is_change_in_sync.assert_called_with("C1")

    def test_immediately_in_sync(self, provider, settings):
        provider.is_change_in_sync.return_value = True
        wait_for_change(provider, "C1", settings.dns.propagation)
        provider.is_change_in_sync.assert_called_once_with("C1")

    def test_timeout(self, provider, settings):
        provider.is_change_in_sync.return_value = False
        short = replace(settings.dns.propagation, timeout_seconds=0.01)

        with pytest.raises(DnsPropagationTimeout, match="not in sync after 0.01s"):
            wait_for_change(provider, "C1", short)
        assert provider.is_change_in_sync.call_count >= 1

    def test_cancelled(self, provider, settings):
        provider.is_change_in_sync.return_value = False
        cancel = threading.Event()
        cancel.set()

        with pytest.raises(DnsPropagationTimeout, match="cancelled"):
            wait_for_change(provider, "C1", settings.dns.propagation, cancel=cancel)
        provider.is_change_in_sync.assert_called_once()

    def test_timeout_is_a_dns_error(self):
        assert issubclass(DnsPropagationTimeout, DnsProviderError)

    def test_provider_error_propagates(self, provider, settings):
        provider.is_change_in_sync.side_effect = DnsProviderError("throttled")
        with pytest.raises(DnsProviderError, match="throttled"):
            wait_for_change(provider, "C1", settings.dns.propagation)
