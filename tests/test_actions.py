import unittest

from botcop.autonomy.actions import (
    COMMENT_TEMPLATES,
    MESSAGE_TEMPLATES,
    ActionOutcome,
    comment_on_post,
    send_message,
)
from botcop.autonomy.reporting import format_report, send_report
from botcop.autonomy.selection import CandidatePost, CandidateUser
from botcop.autonomy.state import ActivityTracker

from backend_fakes import FakeHttp, _Resp, make_client, signin_ok


def _backend():
    http = FakeHttp()
    http.on("POST", "/api/auth/signin", signin_ok(user_id=1))
    return http


class CommentActionTests(unittest.IsolatedAsyncioTestCase):
    async def test_comment_success_outcome(self):
        http = _backend().on("POST", "/api/comments", _Resp(201, {"id": 900}))
        client, _ = make_client(http)
        tracker = ActivityTracker(consecutive_errors=3)

        outcome = await comment_on_post(client, tracker, CandidatePost(id=55, owner_id=9, owner_username="alice"))

        self.assertTrue(outcome.success)
        self.assertEqual(outcome.action, "comment")
        self.assertEqual(outcome.target, "post 55 by @alice")
        self.assertIn(outcome.content, COMMENT_TEMPLATES)
        self.assertIsNone(outcome.error)
        self.assertEqual(tracker.consecutive_errors, 0)
        self.assertEqual(http.calls_to("POST", "/api/comments")[0].json, {"post_id": 55, "content": outcome.content})

    async def test_comment_failure_becomes_failed_outcome(self):
        http = _backend().on("POST", "/api/comments", _Resp(404, {"error": "Post not found"}))
        client, _ = make_client(http, max_retries=0)
        tracker = ActivityTracker(consecutive_errors=1)

        outcome = await comment_on_post(client, tracker, CandidatePost(id=55, owner_id=9, owner_username="alice"))

        self.assertFalse(outcome.success)
        self.assertEqual(outcome.target, "post 55")
        self.assertIn("Post not found", outcome.error)
        self.assertIsNone(outcome.content)
        self.assertEqual(tracker.consecutive_errors, 2)
        self.assertEqual(tracker.log[-1].kind, "error")


class MessageActionTests(unittest.IsolatedAsyncioTestCase):
    async def test_message_resolves_chat_then_sends_text(self):
        http = _backend()
        http.on("POST", "/api/chats/direct", _Resp(200, {"chatId": "c1"}))
        http.on("POST", "/api/chats/c1/messages", _Resp(201, {"delivered": True}))
        client, _ = make_client(http)
        tracker = ActivityTracker()

        outcome = await send_message(client, tracker, CandidateUser(id=7, username="bo"))

        self.assertTrue(outcome.success)
        self.assertEqual((outcome.action, outcome.target), ("message", "bo"))
        self.assertIn(outcome.content, MESSAGE_TEMPLATES)
        self.assertEqual(http.calls_to("POST", "/api/chats/direct")[0].json, {"otherUserId": 7})
        self.assertEqual(
            http.calls_to("POST", "/api/chats/c1/messages")[0].json,
            {"content": outcome.content, "type": "text"},
        )
        self.assertEqual(tracker.log[-1].kind, "success")

    async def test_chat_resolution_failure_skips_send(self):
        http = _backend().on("POST", "/api/chats/direct", _Resp(500, {"error": "chat service down"}))
        client, _ = make_client(http, max_retries=0)
        tracker = ActivityTracker()

        outcome = await send_message(client, tracker, CandidateUser(id=7, username="bo"))

        self.assertFalse(outcome.success)
        self.assertIn("chat service down", outcome.error)
        self.assertEqual(tracker.consecutive_errors, 1)
        self.assertFalse([call for call in http.calls if call.path.endswith("/messages")])

    async def test_outcome_serialises_content_or_error(self):
        ok = ActionOutcome(success=True, action="message", target="bo", content="hi")
        bad = ActionOutcome(success=False, action="comment", target="post 1", error="boom")
        self.assertEqual(ok.as_dict()["content"], "hi")
        self.assertNotIn("error", ok.as_dict())
        self.assertEqual(bad.as_dict()["error"], "boom")
        self.assertNotIn("content", bad.as_dict())


class ReportTests(unittest.IsolatedAsyncioTestCase):
    def test_format_report_phrasing(self):
        self.assertEqual(
            format_report(ActionOutcome(success=True, action="message", target="bo", content="Hi")),
            '✅ Sent message to @bo: "Hi"',
        )
        self.assertEqual(
            format_report(ActionOutcome(success=True, action="comment", target="post 5 by @al", content="Nice")),
            '✅ Commented on post 5 by @al: "Nice"',
        )
        self.assertEqual(
            format_report(ActionOutcome(success=False, action="comment", target="post 5", error="gone")),
            "❌ Failed to comment post 5: gone",
        )

    async def test_report_is_sent_to_observer_chat(self):
        http = _backend()
        http.on("POST", "/api/chats/direct", _Resp(200, {"chatId": "obs"}))
        http.on("POST", "/api/chats/obs/messages", _Resp(201, {}))
        client, _ = make_client(http)
        tracker = ActivityTracker()
        outcome = ActionOutcome(success=True, action="message", target="bo", content="Hi")

        self.assertTrue(await send_report(client, tracker, CandidateUser(id=3, username="phone"), outcome))

        self.assertEqual(http.calls_to("POST", "/api/chats/direct")[0].json, {"otherUserId": 3})
        self.assertEqual(http.calls_to("POST", "/api/chats/obs/messages")[0].json["content"], format_report(outcome))

    async def test_report_failure_is_swallowed(self):
        http = _backend().on("POST", "/api/chats/direct", _Resp(500, {"error": "down"}))
        client, _ = make_client(http, max_retries=0)
        tracker = ActivityTracker(consecutive_errors=2)
        outcome = ActionOutcome(success=False, action="message", target="bo", error="x")

        self.assertFalse(await send_report(client, tracker, CandidateUser(id=3, username="phone"), outcome))

        self.assertEqual(tracker.log[-1].kind, "error")
        self.assertIn("Failed to send report to @phone", tracker.log[-1].message)
        self.assertEqual(tracker.consecutive_errors, 2)


if __name__ == "__main__":
    unittest.main()
