from __future__ import annotations

import random
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from ..backend_client import BackendClient
from .selection import CandidatePost, CandidateUser, pick_random
from .state import ActivityTracker, utc_now


MESSAGE_TEMPLATES = [
    "Hey! How are you doing?",
    "Just checking in! 👋",
    "Hope you're having a great day!",
    "What's new with you?",
    "Greetings from the bot! 🤖",
    "Random message incoming!",
    "Testing the chat system!",
    "Bot says hello! 👋",
    "Beep boop! 🤖",
]

COMMENT_TEMPLATES = [
    "Great post! 👍",
    "Interesting perspective!",
    "Thanks for sharing!",
    "Love this! ❤️",
    "Very insightful!",
    "Couldn't agree more!",
    "This is awesome! 🔥",
    "Well said!",
    "Bot approved! ✅",
]


@dataclass(frozen=True)
class ActionOutcome:
    success: bool
    action: str
    target: str
    content: Optional[str] = None
    error: Optional[str] = None
    timestamp: datetime = field(default_factory=utc_now)

    def as_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "success": self.success,
            "action": self.action,
            "target": self.target,
            "timestamp": self.timestamp.isoformat(),
        }
        if self.success:
            out["content"] = self.content
        else:
            out["error"] = self.error
        return out


async def open_direct_chat(client: BackendClient, tracker: ActivityTracker, user_id: Any) -> Any:
    try:
        return await client.open_direct_chat(user_id)
    except Exception as e:
        tracker.record(f"Error creating chat with user {user_id}: {e}", "error")
        raise


async def deliver_text(client: BackendClient, tracker: ActivityTracker, user_id: Any, content: str) -> Any:
    """Resolve the direct chat with ``user_id`` and post one text message to it."""
    chat_id = await open_direct_chat(client, tracker, user_id)
    await client.send_chat_message(chat_id, content)
    return chat_id


async def send_message(
    client: BackendClient,
    tracker: ActivityTracker,
    user: CandidateUser,
    rng: Optional[random.Random] = None,
) -> ActionOutcome:
    try:
        content = pick_random(MESSAGE_TEMPLATES, rng)
        await deliver_text(client, tracker, user.id, content)
    except Exception as e:
        tracker.record_failure()
        tracker.record(f"Failed to send message to @{user.username}: {e}", "error")
        return ActionOutcome(success=False, action="message", target=user.username, error=str(e))

    tracker.record(f'Sent message to @{user.username} (ID: {user.id}): "{content}"', "success")
    tracker.record_success()
    return ActionOutcome(success=True, action="message", target=user.username, content=content)


async def comment_on_post(
    client: BackendClient,
    tracker: ActivityTracker,
    post: CandidatePost,
    rng: Optional[random.Random] = None,
) -> ActionOutcome:
    try:
        content = pick_random(COMMENT_TEMPLATES, rng)
        await client.create_comment(post.id, content)
    except Exception as e:
        tracker.record_failure()
        tracker.record(f"Failed to comment on post {post.id}: {e}", "error")
        return ActionOutcome(success=False, action="comment", target=f"post {post.id}", error=str(e))

    tracker.record(f'Commented on post {post.id} by @{post.owner_username}: "{content}"', "success")
    tracker.record_success()
    return ActionOutcome(
        success=True,
        action="comment",
        target=f"post {post.id} by @{post.owner_username}",
        content=content,
    )
