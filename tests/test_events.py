# =============================================================================
# Unit Tests — Job Event Bus
# =============================================================================

import dataclasses
import logging

import pytest

from pdf_chat.workers.events import JobEvent, JobEventBus, JobEventType, log_job_event


class TestJobEventBus:
    def test_listeners_receive_events_in_order(self):
        bus = JobEventBus()
        seen = []
        bus.subscribe(seen.append)

        bus.publish(JobEvent(JobEventType.ACTIVE, "j1", attempt=1))
        bus.publish(JobEvent(JobEventType.COMPLETED, "j1", attempt=1, result={}))

        assert [e.type for e in seen] == [JobEventType.ACTIVE, JobEventType.COMPLETED]

    def test_multiple_listeners(self):
        bus = JobEventBus()
        first, second = [], []
        bus.subscribe(first.append)
        bus.subscribe(second.append)

        bus.publish(JobEvent(JobEventType.PROGRESS, "j1", progress=40))

        assert len(first) == len(second) == 1

    def test_unsubscribe(self):
        bus = JobEventBus()
        seen = []
        unsubscribe = bus.subscribe(seen.append)
        unsubscribe()
        unsubscribe()  # second call is harmless

        bus.publish(JobEvent(JobEventType.ACTIVE, "j1"))

        assert seen == []

    def test_raising_listener_is_isolated(self, caplog):
        bus = JobEventBus()
        seen = []

        def broken(event):
            raise RuntimeError("listener bug")

        bus.subscribe(broken)
        bus.subscribe(seen.append)

        with caplog.at_level(logging.ERROR):
            bus.publish(JobEvent(JobEventType.FAILED, "j1", error="boom"))

        assert len(seen) == 1
        assert "listener" in caplog.text

    def test_events_are_immutable(self):
        event = JobEvent(JobEventType.ACTIVE, "j1")
        with pytest.raises(dataclasses.FrozenInstanceError):
            event.job_id = "other"


class TestLogJobEvent:
    def test_failed_logged_as_error(self, caplog):
        with caplog.at_level(logging.INFO, logger="pdf_chat.workers.events"):
            log_job_event(JobEvent(JobEventType.FAILED, "j9", attempt=3, error="boom"))

        record = caplog.records[-1]
        assert record.levelno == logging.ERROR
        assert "j9" in record.getMessage()
        assert "boom" in record.getMessage()

    def test_progress_logged(self, caplog):
        with caplog.at_level(logging.INFO, logger="pdf_chat.workers.events"):
            log_job_event(JobEvent(JobEventType.PROGRESS, "j9", progress=70))

        assert "70%" in caplog.records[-1].getMessage()
