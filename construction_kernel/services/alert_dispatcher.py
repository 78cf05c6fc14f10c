"""
Alert dispatch -- publish schedule-risk alerts and poll for new ones.

Responsibility:
    Hands the alerts of a ``ScanReport`` to a notification sink and runs the
    polling loop that re-scans on a fixed interval.

Architecture position:
    Kernel > Services.  Performs no database writes.  Delivery transport
    (push, e-mail) lives behind the ``NotificationSink`` protocol.

Invariants enforced:
    - Alerts are derived and ephemeral.  The dispatcher remembers only what
      it sent for the previous report, so an alert is re-sent when its day
      count changes and forgotten once it leaves the report.
    - A sink failure for one alert is logged and counted; the remaining
      alerts are still delivered and the failed one is retried next report.
    - A tick that raises is logged and the monitor keeps polling.
"""

import threading
from dataclasses import dataclass
from typing import Any, Callable, Protocol

from construction_kernel.domain.dtos import AlertKind, ScanReport, ScheduleAlert
from construction_kernel.domain.schedule import DEFAULT_POLL_INTERVAL_SECONDS
from construction_kernel.logging_config import get_logger

logger = get_logger("services.alerts")


class NotificationSink(Protocol):
    def publish(self, payload: dict[str, Any]) -> None: ...


class LoggingNotificationSink:
    """Writes each alert as a structured log line."""

    def __init__(self) -> None:
        self._logger = get_logger("notifications")

    def publish(self, payload: dict[str, Any]) -> None:
        if payload["kind"] == AlertKind.DELAYED.value:
            self._logger.warning("schedule_alert", extra={"alert": payload})
        else:
            self._logger.info("schedule_alert", extra={"alert": payload})


class CollectingNotificationSink:
    """Keeps every payload in memory."""

    def __init__(self) -> None:
        self.payloads: list[dict[str, Any]] = []

    def publish(self, payload: dict[str, Any]) -> None:
        self.payloads.append(payload)


@dataclass(frozen=True)
class DispatchSummary:
    delivered: int
    suppressed: int
    failed: int


class AlertDispatcher:
    def __init__(self, sink: NotificationSink, dedupe: bool = True):
        self._sink = sink
        self._dedupe = dedupe
        self._sent: set[tuple[str, str, int]] = set()

    def dispatch(self, report: ScanReport) -> DispatchSummary:
        current = {_key(alert): alert for alert in report.alerts}
        sent: set[tuple[str, str, int]] = set()
        delivered = suppressed = failed = 0

        for key, alert in current.items():
            if self._dedupe and key in self._sent:
                sent.add(key)
                suppressed += 1
                continue
            try:
                self._sink.publish(alert.to_payload())
            except Exception:
                failed += 1
                logger.exception(
                    "alert_delivery_failed",
                    extra={"assignment_id": str(alert.assignment_id)},
                )
                continue
            sent.add(key)
            delivered += 1

        # Failed keys stay out so the next report retries them.
        self._sent = sent
        summary = DispatchSummary(delivered=delivered, suppressed=suppressed, failed=failed)
        logger.info(
            "alerts_dispatched",
            extra={
                "delivered": delivered,
                "suppressed": suppressed,
                "failed": failed,
            },
        )
        return summary


def _key(alert: ScheduleAlert) -> tuple[str, str, int]:
    return (alert.kind.value, str(alert.assignment_id), alert.days)


class ScheduleMonitor:
    """
    Polling loop: scan, dispatch, sleep.

    ``scan`` is any zero-argument callable returning a fresh ``ScanReport``;
    callers typically open a short-lived session inside it so each tick
    reads current data.
    """

    def __init__(
        self,
        scan: Callable[[], ScanReport],
        dispatcher: AlertDispatcher,
        interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS,
    ):
        self._scan = scan
        self._dispatcher = dispatcher
        self._interval = interval_seconds

    def tick(self) -> DispatchSummary:
        return self._dispatcher.dispatch(self._scan())

    def run(
        self,
        iterations: int | None = None,
        interval_seconds: float | None = None,
        stop_event: threading.Event | None = None,
    ) -> int:
        """
        Run until ``iterations`` ticks have completed or ``stop_event`` is set.

        Returns:
            Number of ticks run, failed ones included.
        """
        interval = self._interval if interval_seconds is None else interval_seconds
        stop = stop_event or threading.Event()
        ticks = 0

        logger.info(
            "schedule_monitor_started",
            extra={"interval_seconds": interval, "iterations": iterations},
        )
        while not stop.is_set():
            try:
                self.tick()
            except Exception:
                logger.exception("schedule_monitor_tick_failed", extra={"tick": ticks + 1})
            ticks += 1
            if iterations is not None and ticks >= iterations:
                break
            if stop.wait(interval):
                break

        logger.info("schedule_monitor_stopped", extra={"ticks": ticks})
        return ticks
