from __future__ import annotations

from ..backend_client import BackendClient
from .actions import ActionOutcome, deliver_text
from .selection import CandidateUser
from .state import ActivityTracker


def format_report(outcome: ActionOutcome) -> str:
    if not outcome.success:
        return f"❌ Failed to {outcome.action} {outcome.target}: {outcome.error}"
    if outcome.action == "message":
        return f'✅ Sent message to @{outcome.target}: "{outcome.content}"'
    return f'✅ Commented on {outcome.target}: "{outcome.content}"'


async def send_report(
    client: BackendClient,
    tracker: ActivityTracker,
    observer: CandidateUser,
    outcome: ActionOutcome,
) -> bool:
    """Relay ``outcome`` to the observer. Best effort: failures are only logged."""
    try:
        await deliver_text(client, tracker, observer.id, format_report(outcome))
    except Exception as e:
        tracker.record(f"Failed to send report to @{observer.username}: {e}", "error")
        return False
    tracker.record(f"Sent report to @{observer.username}", "success")
    return True
