from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, TypeVar

from ..backend_client import BackendClient
from .state import ActivityTracker


# Backend search needs at least two characters, so a handful of common
# bigrams stands in for a "list users" endpoint.
SEARCH_TERMS = ["er", "an", "on", "in", "ar", "te", "st"]

T = TypeVar("T")


@dataclass(frozen=True)
class CandidateUser:
    id: Any
    username: str


@dataclass(frozen=True)
class CandidatePost:
    id: Any
    owner_id: Any
    owner_username: str
    is_deleted: bool = False


def _same_id(left: Any, right: Any) -> bool:
    if left is None or right is None:
        return False
    return str(left) == str(right)


def _extract_items(payload: Any, keys: Sequence[str]) -> List[Dict[str, Any]]:
    if isinstance(payload, list):
        return [item for item in payload if isinstance(item, dict)]
    if not isinstance(payload, dict):
        return []
    for key in keys:
        value = payload.get(key)
        if isinstance(value, list):
            return [item for item in value if isinstance(item, dict)]
    return []


def extract_users(payload: Any) -> List[CandidateUser]:
    users: List[CandidateUser] = []
    for item in _extract_items(payload, ("users", "results", "data")):
        if item.get("id") is None:
            continue
        users.append(CandidateUser(id=item["id"], username=str(item.get("username") or "")))
    return users


def extract_posts(payload: Any) -> List[CandidatePost]:
    posts: List[CandidatePost] = []
    for item in _extract_items(payload, ("posts", "data", "items", "results")):
        if item.get("id") is None:
            continue
        posts.append(
            CandidatePost(
                id=item["id"],
                owner_id=item.get("user_id"),
                owner_username=str(item.get("username") or ""),
                is_deleted=bool(item.get("is_deleted")),
            )
        )
    return posts


def pick_random(items: Sequence[T], rng: Optional[random.Random] = None) -> Optional[T]:
    if not items:
        return None
    chooser = rng or random
    return items[chooser.randrange(len(items))]


async def find_user(client: BackendClient, username: str) -> Optional[CandidateUser]:
    """Exact-username lookup through the search endpoint."""
    payload = await client.search_users(username)
    for user in extract_users(payload):
        if user.username == username:
            return user
    return None


async def fetch_candidate_users(
    client: BackendClient,
    tracker: ActivityTracker,
    rng: Optional[random.Random] = None,
) -> List[CandidateUser]:
    term = pick_random(SEARCH_TERMS, rng)
    try:
        payload = await client.search_users(term)
    except Exception as e:
        tracker.record(f"Error fetching users: {e}", "error")
        return []

    users = [user for user in extract_users(payload) if not _same_id(user.id, client.actor_id)]
    if not users:
        tracker.record("No active users found", "warning")
    return users


async def fetch_candidate_posts(client: BackendClient, tracker: ActivityTracker) -> List[CandidatePost]:
    try:
        payload = await client.list_posts()
    except Exception as e:
        tracker.record(f"Error fetching posts: {e}", "error")
        return []

    posts = [
        post
        for post in extract_posts(payload)
        if not post.is_deleted and not _same_id(post.owner_id, client.actor_id)
    ]
    if not posts:
        tracker.record("No posts available to comment on", "warning")
    return posts
