"""
Tests for AlertDispatcher and ScheduleMonitor.

Covers:
- Payload delivery per alert
- Suppression of alerts unchanged since the previous report
- Sink failures are counted and logged, never raised, and retried next report
- Monitor loop stops after N iterations or on a stop event, and survives failing scans
"""

import threading
from datetime import UTC, date, datetime
from uuid import UUID

from construction_kernel.domain.dtos import AlertKind, AssignmentStatus, ScanReport, ScheduleAlert
from construction_kernel.services.alert_dispatcher import (
    AlertDispatcher,
    CollectingNotificationSink,
    LoggingNotificationSink,
    ScheduleMonitor,
)

TODAY = date(2024, 6, 10)


def _alert(n, kind=AlertKind.DELAYED, days=3):
    return ScheduleAlert(
        kind=kind,
        assignment_id=UUID(int=n),
        days=days,
        project_id=UUID(int=100),
        unit_id=UUID(int=200),
        category_id=UUID(int=300),
        team_id=UUID(int=400),
        status=AssignmentStatus.IN_PROGRESS,
        start_date=date(2024, 5, 1),
        end_date=date(2024, 6, 7),
    )


def _report(delayed=(), imminent=()):
    return ScanReport(
        scanned_at=datetime(2024, 6, 10, tzinfo=UTC),
        today=TODAY,
        horizon_days=2,
        delayed=tuple(delayed),
        imminent=tuple(imminent),
    )


class _FailingSink:
    def publish(self, payload):
        raise ConnectionError("sink unavailable")


class _FlakySink(CollectingNotificationSink):
    """Fails the first publish, then delivers."""

    def __init__(self):
        super().__init__()
        self.attempts = 0

    def publish(self, payload):
        self.attempts += 1
        if self.attempts == 1:
            raise ConnectionError("sink unavailable")
        super().publish(payload)


class TestAlertDispatcher:
    def test_delivers_every_alert(self):
        sink = CollectingNotificationSink()
        report = _report([_alert(1)], [_alert(2, AlertKind.IMMINENT, 1)])

        summary = AlertDispatcher(sink).dispatch(report)

        assert summary.delivered == 2
        assert [p["kind"] for p in sink.payloads] == ["delayed", "imminent"]
        assert sink.payloads[1]["days_until_start"] == 1

    def test_unchanged_alerts_are_suppressed(self):
        sink = CollectingNotificationSink()
        dispatcher = AlertDispatcher(sink)
        dispatcher.dispatch(_report([_alert(1)]))

        summary = dispatcher.dispatch(_report([_alert(1), _alert(2)]))

        assert (summary.delivered, summary.suppressed) == (1, 1)
        assert len(sink.payloads) == 2

    def test_changed_days_are_redelivered(self):
        sink = CollectingNotificationSink()
        dispatcher = AlertDispatcher(sink)
        dispatcher.dispatch(_report([_alert(1, days=3)]))

        summary = dispatcher.dispatch(_report([_alert(1, days=4)]))

        assert summary.delivered == 1

    def test_resolved_alert_can_fire_again(self):
        sink = CollectingNotificationSink()
        dispatcher = AlertDispatcher(sink)
        dispatcher.dispatch(_report([_alert(1)]))
        dispatcher.dispatch(_report())

        assert dispatcher.dispatch(_report([_alert(1)])).delivered == 1

    def test_dedupe_disabled(self):
        sink = CollectingNotificationSink()
        dispatcher = AlertDispatcher(sink, dedupe=False)
        dispatcher.dispatch(_report([_alert(1)]))

        assert dispatcher.dispatch(_report([_alert(1)])).delivered == 1

    def test_sink_failure_is_counted_and_logged(self, captured_logs):
        summary = AlertDispatcher(_FailingSink()).dispatch(_report([_alert(1), _alert(2)]))

        assert (summary.delivered, summary.failed) == (0, 2)
        failures = [r for r in captured_logs() if r["message"] == "alert_delivery_failed"]
        assert len(failures) == 2
        assert failures[0]["exc_type"] == "ConnectionError"

    def test_failed_alert_is_retried_on_next_report(self):
        sink = _FlakySink()
        dispatcher = AlertDispatcher(sink)

        first = dispatcher.dispatch(_report([_alert(1)]))
        second = dispatcher.dispatch(_report([_alert(1)]))
        third = dispatcher.dispatch(_report([_alert(1)]))

        assert (first.delivered, first.failed) == (0, 1)
        assert (second.delivered, second.suppressed) == (1, 0)
        assert (third.delivered, third.suppressed) == (0, 1)
        assert len(sink.payloads) == 1

    def test_logging_sink(self, captured_logs):
        AlertDispatcher(LoggingNotificationSink()).dispatch(_report([_alert(1)]))

        record = next(r for r in captured_logs() if r["message"] == "schedule_alert")
        assert record["level"] == "WARNING"
        assert record["alert"]["days_overdue"] == 3


class TestScheduleMonitor:
    def test_runs_requested_iterations(self):
        calls = []

        def scan():
            calls.append(1)
            return _report([_alert(1)])

        sink = CollectingNotificationSink()
        ticks = ScheduleMonitor(scan, AlertDispatcher(sink)).run(iterations=3, interval_seconds=0)

        assert ticks == 3
        assert len(calls) == 3
        assert len(sink.payloads) == 1

    def test_failing_scan_does_not_stop_polling(self, captured_logs):
        calls = []

        def scan():
            calls.append(1)
            if len(calls) == 1:
                raise RuntimeError("database unavailable")
            return _report([_alert(1)])

        sink = CollectingNotificationSink()
        ticks = ScheduleMonitor(scan, AlertDispatcher(sink)).run(iterations=3, interval_seconds=0)

        assert ticks == 3
        assert len(calls) == 3
        assert len(sink.payloads) == 1
        failure = next(r for r in captured_logs() if r["message"] == "schedule_monitor_tick_failed")
        assert failure["exc_type"] == "RuntimeError"
        assert failure["tick"] == 1

    def test_stop_event_ends_loop(self):
        stop = threading.Event()

        def scan():
            stop.set()
            return _report()

        monitor = ScheduleMonitor(scan, AlertDispatcher(CollectingNotificationSink()), interval_seconds=60)

        assert monitor.run(stop_event=stop) == 1

    def test_preset_stop_event_runs_nothing(self):
        stop = threading.Event()
        stop.set()
        monitor = ScheduleMonitor(lambda: _report(), AlertDispatcher(CollectingNotificationSink()))

        assert monitor.run(stop_event=stop) == 0

    def test_scans_live_data(self, session, scanner, hierarchy_service, unit, add_assignment):
        late = hierarchy_service.create_category(
            unit.id, "Excavation", date(2024, 5, 1), date(2024, 6, 5), order=1
        )
        add_assignment(late.id, status="IN_PROGRESS")
        sink = CollectingNotificationSink()

        summary = ScheduleMonitor(scanner.scan, AlertDispatcher(sink)).tick()

        assert summary.delivered == 1
        assert sink.payloads[0]["days_overdue"] == 5
