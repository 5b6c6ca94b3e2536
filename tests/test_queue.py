"""Unit tests for the send queue."""

import pytest

from lifx_queue import SendQueue, Transaction
from tests.conftest import FakeClock


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def send_queue(clock):
    return SendQueue(max_retries=3, retry_delay=0.15, clock=clock)


class Recorder:
    def __init__(self):
        self.sent = []
        self.exhausted = []

    def transmit(self, entry):
        self.sent.append(entry.sequence)

    def on_exhausted(self, entry):
        self.exhausted.append(entry.sequence)


class TestSendQueue:
    """Tests for SendQueue.tick."""

    def test_empty_queue_reports_idle(self, send_queue):
        recorder = Recorder()

        assert send_queue.tick(recorder.transmit, recorder.on_exhausted) is False
        assert recorder.sent == []

    def test_one_way_sent_once(self, send_queue):
        recorder = Recorder()
        send_queue.enqueue(b'data', None, Transaction.ONE_WAY, 1)

        assert send_queue.tick(recorder.transmit, recorder.on_exhausted) is True
        assert send_queue.tick(recorder.transmit, recorder.on_exhausted) is False
        assert recorder.sent == [1]
        assert len(send_queue) == 0

    def test_fifo_order(self, send_queue):
        recorder = Recorder()
        for sequence in (1, 2, 3):
            send_queue.enqueue(b'data', None, Transaction.ONE_WAY, sequence)

        while send_queue.tick(recorder.transmit, recorder.on_exhausted):
            pass

        assert recorder.sent == [1, 2, 3]

    def test_request_response_exhausts_after_max_retries(self, send_queue, clock):
        recorder = Recorder()
        send_queue.enqueue(b'data', '192.168.0.50', Transaction.REQUEST_RESPONSE, 9)

        for _ in range(10):
            send_queue.tick(recorder.transmit, recorder.on_exhausted)
            clock.advance(0.2)

        assert recorder.sent == [9, 9, 9]
        assert recorder.exhausted == [9]
        assert len(send_queue) == 0

    def test_resend_waits_for_retry_delay(self, send_queue, clock):
        recorder = Recorder()
        send_queue.enqueue(b'data', None, Transaction.REQUEST_RESPONSE, 5)

        send_queue.tick(recorder.transmit, recorder.on_exhausted)
        clock.advance(0.1)
        send_queue.tick(recorder.transmit, recorder.on_exhausted)
        assert recorder.sent == [5]
        assert len(send_queue) == 1

        clock.advance(0.1)
        send_queue.tick(recorder.transmit, recorder.on_exhausted)
        assert recorder.sent == [5, 5]

    def test_pending_entry_goes_to_back(self, send_queue):
        recorder = Recorder()
        send_queue.enqueue(b'data', None, Transaction.REQUEST_RESPONSE, 1)
        send_queue.enqueue(b'data', None, Transaction.ONE_WAY, 2)

        send_queue.tick(recorder.transmit, recorder.on_exhausted)

        assert [entry.sequence for entry in send_queue] == [2, 1]

    def test_remove_sequence_only_drops_request_response(self, send_queue):
        send_queue.enqueue(b'data', None, Transaction.REQUEST_RESPONSE, 4)
        send_queue.enqueue(b'data', None, Transaction.ONE_WAY, 4)

        assert send_queue.remove_sequence(4) == 1
        assert [entry.transaction for entry in send_queue] == [Transaction.ONE_WAY]
