"""
Tests for mode resolution — implication rules and fail-fast guards.
"""

import itertools

import pytest

from picobuild.core.errors import ModeViolation
from picobuild.core.services.mode import resolve_mode

ALL_FLAGS = list(itertools.product([False, True], repeat=3))


class TestResolveMode:
    @pytest.mark.parametrize("fast,offline,no_sudo", ALL_FLAGS)
    def test_implications(self, fast, offline, no_sudo):
        mode = resolve_mode(fast, offline, no_sudo)
        if offline:
            assert mode.fast
        if mode.fast:
            assert mode.no_sudo
        assert mode.network_allowed is (not mode.fast)
        assert mode.install_allowed is (not mode.fast)
        assert mode.privilege_allowed is (not mode.no_sudo)

    def test_normal(self):
        mode = resolve_mode()
        assert mode.label == "normal"
        assert mode.network_allowed and mode.privilege_allowed and mode.install_allowed

    def test_no_sudo_keeps_network(self):
        mode = resolve_mode(no_sudo=True)
        assert mode.label == "no-sudo"
        assert mode.network_allowed
        assert not mode.privilege_allowed

    def test_offline_label(self):
        assert resolve_mode(offline=True).label == "offline"

    def test_frozen(self):
        mode = resolve_mode()
        with pytest.raises(Exception):
            mode.fast = True


class TestGuards:
    def test_require_network_in_fast_mode(self):
        with pytest.raises(ModeViolation) as exc:
            resolve_mode(fast=True).require_network("Cloning pico-sdk")
        assert "Cloning pico-sdk" in exc.value.summary
        assert exc.value.exit_code == 3

    def test_require_privilege_in_no_sudo_mode(self):
        with pytest.raises(ModeViolation):
            resolve_mode(no_sudo=True).require_privilege("sudo mkdir")

    def test_guards_pass_in_normal_mode(self):
        mode = resolve_mode()
        mode.require_network("x")
        mode.require_privilege("y")
