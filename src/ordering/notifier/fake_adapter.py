"""Fake notifier — records notices in memory for test assertions."""

from uuid import uuid4

from ordering.notifier.port import Notice, NotifierPort


class FakeNotifier(NotifierPort):
    def __init__(self):
        self.sent: list[Notice] = []
        self.should_succeed = True
        self.failure_reason = "Notification delivery failed"

    def configure(self, should_succeed: bool = True, failure_reason: str = "Notification delivery failed"):
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def send(self, notice: Notice) -> dict:
        if not self.should_succeed:
            return {"message_id": None, "status": "failed", "error": self.failure_reason}

        self.sent.append(notice)
        return {"message_id": f"ntf-{uuid4().hex[:12]}", "status": "sent"}

    def reset(self):
        self.sent.clear()
        self.should_succeed = True
        self.failure_reason = "Notification delivery failed"
