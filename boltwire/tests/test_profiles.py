# Copyright 2025-2026 Gregorio Elias Roecker Momm and nxCypher contributors
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Tests for protocol version profiles."""

import pytest
from boltwire.errors import ConnectError
from boltwire.messages import Message
from boltwire.profiles import PROFILES, get_profile
from boltwire.state import ServerState
from boltwire.structures import STRUCTURES_V5, STRUCTURES_V6, Vector


class TestProfiles:
    """Test what each protocol version offers."""

    def test_known_versions(self):
        assert (1, 0) in PROFILES
        assert (4, 4) in PROFILES
        assert (5, 8) in PROFILES
        assert (6, 0) in PROFILES

    def test_unknown_version(self):
        with pytest.raises(ConnectError, match="Unsupported"):
            get_profile((7, 0))

    def test_bolt_1(self):
        profile = get_profile((1, 0))
        assert profile.supports(Message.INIT)
        assert profile.supports(Message.ACK_FAILURE)
        assert profile.supports(Message.PULL_ALL)
        assert not profile.supports(Message.HELLO)
        assert not profile.supports(Message.BEGIN)
        assert profile.ignored_interrupts
        assert profile.spec(Message.RUN).fields == ('query', 'parameters')

    def test_bolt_3(self):
        profile = get_profile((3, 0))
        assert profile.supports(Message.HELLO)
        assert profile.supports(Message.BEGIN)
        assert profile.supports(Message.PULL_ALL)
        assert not profile.supports(Message.INIT)
        assert not profile.supports(Message.ACK_FAILURE)
        assert not profile.ignored_interrupts
        assert profile.spec(Message.RUN).fields == ('query', 'parameters', 'extra')
        assert not profile.spec(Message.GOODBYE).expects_reply

    def test_bolt_4(self):
        profile = get_profile((4, 0))
        assert profile.supports(Message.PULL)
        assert not profile.supports(Message.PULL_ALL)
        assert not profile.supports(Message.ROUTE)
        assert profile.spec(Message.PULL).signature == 0x3F

    def test_route_fields(self):
        assert get_profile((4, 3)).spec(Message.ROUTE).fields == ('routing', 'bookmarks', 'db')
        assert get_profile((4, 4)).spec(Message.ROUTE).fields == ('routing', 'bookmarks', 'extra')

    def test_bolt_5_1_authentication(self):
        profile = get_profile((5, 1))
        assert profile.initial_state is ServerState.NEGOTIATION
        assert profile.spec(Message.HELLO).states == frozenset({ServerState.NEGOTIATION})
        assert profile.supports(Message.LOGON)
        assert profile.supports(Message.LOGOFF)
        assert not get_profile((5, 0)).supports(Message.LOGON)

    def test_bolt_agent_and_telemetry(self):
        assert not get_profile((5, 2)).hello_bolt_agent
        assert get_profile((5, 3)).hello_bolt_agent
        assert not get_profile((5, 3)).supports(Message.TELEMETRY)
        assert get_profile((5, 4)).supports(Message.TELEMETRY)

    def test_structures(self):
        assert get_profile((5, 0)).structures is STRUCTURES_V5
        assert get_profile((6, 0)).structures is STRUCTURES_V6
        assert Vector not in get_profile((5, 8)).structures
        assert Vector in get_profile((6, 0)).structures

    def test_reset_states(self):
        for version in PROFILES:
            states = get_profile(version).spec(Message.RESET).states
            assert ServerState.FAILED in states
            assert ServerState.INTERRUPTED in states
            assert ServerState.CONNECTED not in states
            assert ServerState.NEGOTIATION not in states
            assert ServerState.AUTHENTICATION not in states

    def test_version_string(self):
        assert get_profile((5, 4)).version_string == "5.4"

    def test_derive_leaves_parent_untouched(self):
        parent = get_profile((5, 0))
        child = parent.derive((9, 9), remove=(Message.RUN,))
        assert not child.supports(Message.RUN)
        assert parent.supports(Message.RUN)
