"""
Deployment pipeline events fanned out to Slack and an audit log.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import IntEnum
from typing import Callable, List, Optional

from ...logging_config import get_logger
from ...registry import Category, demo, run_module

logger = get_logger(__name__)


class Severity(IntEnum):
    INFO = 1
    WARNING = 2
    ERROR = 3


@dataclass
class PipelineEvent:
    stage: str
    status: str
    severity: Severity
    detail: str = ""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class PipelineObserver(ABC):
    @abstractmethod
    def on_event(self, event: PipelineEvent) -> None: ...


class DeploymentPipeline:
    STAGES = ["build", "test", "security-scan", "deploy"]

    def __init__(self, service: str, failing_stage: Optional[str] = None, slow_stage: Optional[str] = None):
        self.service = service
        self.failing_stage = failing_stage
        self.slow_stage = slow_stage
        self._observers: List[PipelineObserver] = []

    def subscribe(self, observer: PipelineObserver) -> Callable[[], None]:
        self._observers.append(observer)
        return lambda: self._observers.remove(observer)

    def emit(self, event: PipelineEvent) -> None:
        for observer in self._observers:
            observer.on_event(event)

    def run(self, version: str) -> bool:
        self.emit(PipelineEvent("pipeline", "started", Severity.INFO, f"{self.service} {version}"))
        for stage in self.STAGES:
            if stage == self.failing_stage:
                self.emit(PipelineEvent(stage, "failed", Severity.ERROR, f"{stage} exited with code 1"))
                return False
            if stage == self.slow_stage:
                self.emit(PipelineEvent(stage, "slow", Severity.WARNING, f"{stage} took longer than expected"))
            self.emit(PipelineEvent(stage, "passed", Severity.INFO))
        self.emit(PipelineEvent("pipeline", "succeeded", Severity.INFO, f"{self.service} {version} is live"))
        return True


class SlackObserver(PipelineObserver):
    ICONS = {Severity.INFO: ":white_check_mark:", Severity.WARNING: ":warning:", Severity.ERROR: ":red_circle:"}

    def __init__(self, channel: str, min_severity: Severity = Severity.WARNING):
        self.channel = channel
        self.min_severity = min_severity
        self.posted: List[str] = []

    def on_event(self, event: PipelineEvent) -> None:
        if event.severity < self.min_severity:
            return
        message = f"{self.ICONS[event.severity]} *{event.stage}* {event.status}"
        if event.detail:
            message += f": {event.detail}"
        self.posted.append(message)
        logger.info("Slack message posted", channel=self.channel, severity=event.severity.name)


class AuditObserver(PipelineObserver):
    def __init__(self) -> None:
        self.events: List[PipelineEvent] = []

    def on_event(self, event: PipelineEvent) -> None:
        self.events.append(event)

    def lines(self) -> List[str]:
        return [f"{e.timestamp:%H:%M:%S} {e.severity.name:<7} {e.stage}:{e.status}" for e in self.events]


@demo(
    "observer.slack-notification",
    pattern="Observer",
    category=Category.BEHAVIORAL,
    title="Deployment events filtered to Slack and recorded for audit",
)
def run_demo() -> None:
    slack = SlackObserver("#deploys")
    audit = AuditObserver()

    for pipeline, version in [
        (DeploymentPipeline("checkout", slow_stage="test"), "v2.4.0"),
        (DeploymentPipeline("payments", failing_stage="security-scan"), "v1.9.3"),
    ]:
        pipeline.subscribe(slack)
        pipeline.subscribe(audit)
        ok = pipeline.run(version)
        print(f"{pipeline.service} {version}: {'deployed' if ok else 'failed'}")

    print(f"\nSlack {slack.channel}:")
    for message in slack.posted:
        print(f"  {message}")
    print(f"\nAudit trail ({len(audit.events)} events):")
    for line in audit.lines():
        print(f"  {line}")


if __name__ == "__main__":
    run_module(run_demo)
