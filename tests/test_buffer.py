"""Tests for the event buffer."""

import threading

from interlog.telemetry.buffer import EventBuffer


class TestEventBuffer:
    def test_append_returns_length(self, make_record):
        buffer = EventBuffer()
        assert buffer.append(make_record()) == 1
        assert buffer.append(make_record()) == 2
        assert len(buffer) == 2

    def test_drain_all_in_insertion_order(self, make_record):
        buffer = EventBuffer()
        for i in range(4):
            buffer.append(make_record(seq=i))

        batch = buffer.drain_all()
        assert [r.attributes["seq"] for r in batch] == [0, 1, 2, 3]
        assert len(buffer) == 0

    def test_drain_empty_returns_none(self):
        assert EventBuffer().drain_all() is None

    def test_snapshot_leaves_buffer_intact(self, make_record):
        buffer = EventBuffer()
        buffer.append(make_record())

        snapshot = buffer.snapshot()
        buffer.append(make_record())

        assert len(snapshot) == 1
        assert len(buffer) == 2

    def test_stats(self, make_record):
        buffer = EventBuffer()
        buffer.append(make_record())
        buffer.append(make_record())
        buffer.drain_all()
        buffer.append(make_record())

        assert buffer.stats == {"appended": 3, "drained": 2, "buffered": 1}

    def test_concurrent_append_and_drain_loses_nothing(self, make_record):
        buffer = EventBuffer()
        drained = []
        producers_done = threading.Event()

        def produce(worker: int):
            for i in range(500):
                buffer.append(make_record(worker=worker, seq=i))

        def drain():
            while not producers_done.is_set():
                batch = buffer.drain_all()
                if batch:
                    drained.extend(batch)

        drainer = threading.Thread(target=drain)
        drainer.start()
        producers = [threading.Thread(target=produce, args=(w,)) for w in range(4)]
        for t in producers:
            t.start()
        for t in producers:
            t.join()
        producers_done.set()
        drainer.join()

        final = buffer.drain_all()
        if final:
            drained.extend(final)

        keys = [(r.attributes["worker"], r.attributes["seq"]) for r in drained]
        assert len(keys) == 2000
        assert len(set(keys)) == 2000

        # Per-producer order is preserved across drains
        for worker in range(4):
            seqs = [seq for w, seq in keys if w == worker]
            assert seqs == list(range(500))
