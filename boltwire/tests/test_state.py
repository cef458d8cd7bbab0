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

"""Tests for the server state machine."""

import pytest
from boltwire.errors import ProtocolStateError
from boltwire.messages import Message, Signature
from boltwire.state import (
    ALIVE_STATES,
    STREAMING_STATES,
    PipelineQueue,
    ServerState,
    StateMachine,
    Transition,
    resolve,
)


class TestResolve:
    """Test success transitions."""

    def test_stream_inside_transaction(self):
        assert resolve(Transition.STREAM, True, False, ServerState.TX_READY) is ServerState.TX_STREAMING
        assert resolve(Transition.STREAM, False, False, ServerState.READY) is ServerState.STREAMING

    def test_consume(self):
        assert resolve(Transition.CONSUME, False, False, ServerState.STREAMING) is ServerState.READY
        assert resolve(Transition.CONSUME, True, False, ServerState.TX_STREAMING) is ServerState.TX_READY
        assert resolve(Transition.CONSUME, False, True, ServerState.STREAMING) is ServerState.STREAMING

    def test_unchanged(self):
        assert resolve(Transition.UNCHANGED, False, False, ServerState.READY) is ServerState.READY


class TestStateMachine:
    """Test state tracking with pipelined requests."""

    def test_initial_state(self):
        assert StateMachine().state is ServerState.CONNECTED
        assert StateMachine(ServerState.NEGOTIATION).state is ServerState.NEGOTIATION

    def test_ensure_rejects_wrong_state(self):
        machine = StateMachine()
        with pytest.raises(ProtocolStateError, match="Expected READY"):
            machine.ensure(Message.RUN, frozenset({ServerState.READY}))

    def test_ensure_rejects_defunct(self):
        machine = StateMachine()
        machine.mark_defunct()
        with pytest.raises(ProtocolStateError, match="defunct"):
            machine.ensure(Message.RESET, ALIVE_STATES)

    def test_ensure_allows_anything_when_interrupted(self):
        machine = StateMachine(ServerState.INTERRUPTED)
        machine.ensure(Message.PULL_ALL, STREAMING_STATES)

    def test_pipeline_prediction(self):
        machine = StateMachine(ServerState.READY)
        machine.sent(Message.BEGIN, Transition.TX_READY)
        machine.sent(Message.RUN, Transition.STREAM)
        assert machine.state is ServerState.TX_STREAMING
        machine.sent(Message.PULL, Transition.CONSUME)
        assert machine.state is ServerState.TX_READY
        machine.sent(Message.COMMIT, Transition.READY)
        assert machine.state is ServerState.READY
        assert [p.message for p in machine.pending] == [
            Message.BEGIN, Message.RUN, Message.PULL, Message.COMMIT
        ]

    def test_record_keeps_request_pending(self):
        machine = StateMachine(ServerState.READY)
        machine.sent(Message.RUN, Transition.STREAM)
        machine.sent(Message.PULL, Transition.CONSUME)
        machine.received(Signature.SUCCESS, {'fields': ['n']})
        machine.received(Signature.RECORD, [1])
        assert len(machine.pending) == 1
        machine.received(Signature.SUCCESS, {})
        assert len(machine.pending) == 0
        assert machine.state is ServerState.READY

    def test_has_more_keeps_streaming(self):
        machine = StateMachine(ServerState.STREAMING)
        machine.sent(Message.PULL, Transition.CONSUME, has_more=True)
        machine.received(Signature.SUCCESS, {'has_more': True})
        assert machine.state is ServerState.STREAMING

    def test_failure_state(self):
        machine = StateMachine(ServerState.READY)
        machine.sent(Message.RUN, Transition.STREAM)
        machine.received(Signature.FAILURE, {'code': 'X', 'message': 'bad'})
        assert machine.state is ServerState.FAILED

    def test_failure_then_pipelined_reset(self):
        machine = StateMachine(ServerState.READY)
        machine.sent(Message.RUN, Transition.STREAM)
        machine.sent(Message.PULL, Transition.CONSUME)
        machine.sent(Message.RESET, Transition.READY, ServerState.DEFUNCT)
        machine.received(Signature.FAILURE, {})
        assert machine.state is ServerState.FAILED
        machine.received(Signature.IGNORED, {})
        assert machine.state is ServerState.FAILED
        machine.received(Signature.SUCCESS, {})
        assert machine.state is ServerState.READY

    def test_ignored_interrupts(self):
        machine = StateMachine(ServerState.READY, ignored_interrupts=True)
        machine.sent(Message.RUN, Transition.STREAM)
        machine.received(Signature.IGNORED, {})
        assert machine.state is ServerState.INTERRUPTED

    def test_ignored_without_interrupts(self):
        machine = StateMachine(ServerState.FAILED)
        machine.sent(Message.RUN, Transition.STREAM)
        machine.received(Signature.IGNORED, {})
        assert machine.state is ServerState.FAILED

    def test_interrupted_waits_for_reset(self):
        machine = StateMachine(ServerState.INTERRUPTED)
        machine.sent(Message.RUN, Transition.STREAM)
        assert machine.state is ServerState.INTERRUPTED
        machine.sent(Message.RESET, Transition.READY)
        assert machine.state is ServerState.READY

    def test_received_without_pending(self):
        with pytest.raises(ProtocolStateError, match="No response"):
            StateMachine().received(Signature.SUCCESS, {})

    def test_mark_defunct_clears_pending(self):
        machine = StateMachine(ServerState.READY)
        machine.sent(Message.RUN, Transition.STREAM)
        machine.mark_defunct()
        assert machine.is_defunct()
        assert len(machine.pending) == 0

    def test_predicates(self):
        machine = StateMachine(ServerState.TX_STREAMING)
        assert machine.is_in_transaction()
        assert machine.is_streaming()
        assert not machine.is_defunct()


class TestPipelineQueue:
    """Test the FIFO of pending requests."""

    def test_empty(self):
        queue = PipelineQueue()
        assert queue.peek() is None
        assert queue.last() is None
        assert len(queue) == 0
