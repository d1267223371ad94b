import asyncio
import json
import unittest

from streamrelay.models import ChatMessage, LiveEvent
from streamrelay.relay.session import KEEPALIVE_FRAME, BackoffLadder, ChatRelay, sse_frame


class FakeSession:
    def __init__(self, events=(), *, reject=None, hang=False, broken=None):
        self._events = list(events)
        self.reject = reject
        self.hang = hang
        self.broken = broken
        self.disconnects = 0

    async def connect(self):
        if self.hang:
            await asyncio.Event().wait()
        if self.reject is not None:
            raise self.reject

    async def events(self):
        for event in self._events:
            yield event
        if self.broken is not None:
            raise self.broken

    async def disconnect(self):
        self.disconnects += 1


class FakeSleep:
    """Returns at once until ``block_after`` calls, then parks forever."""

    def __init__(self, block_after):
        self.block_after = block_after
        self.waits = []

    async def __call__(self, delay):
        self.waits.append(delay)
        if len(self.waits) >= self.block_after:
            await asyncio.Event().wait()


def parse(frame):
    event, data = frame.strip().split("\n")
    return event.removeprefix("event: "), json.loads(data.removeprefix("data: "))


async def take(relay, count):
    frames = relay.frames()
    out = []
    try:
        async for frame in frames:
            out.append(frame)
            if len(out) == count:
                break
    finally:
        await frames.aclose()
    return out


def chat(comment, user_id="u1", nickname="Una"):
    return LiveEvent(kind="chat", chat=ChatMessage(comment=comment, user_id=user_id, nickname=nickname))


class TestSseFrame(unittest.TestCase):
    def test_frame_format(self):
        self.assertEqual(sse_frame("chat", {"a": 1}), 'event: chat\ndata: {"a": 1}\n\n')
        self.assertEqual(KEEPALIVE_FRAME, ":\n\n")


class TestBackoffLadder(unittest.TestCase):
    def test_ladder_saturates_and_resets(self):
        ladder = BackoffLadder([1, 2])
        self.assertEqual([ladder.next_delay() for _ in range(3)], [1, 2, 2])
        ladder.reset()
        self.assertEqual(ladder.next_delay(), 1)


class TestChatRelay(unittest.IsolatedAsyncioTestCase):
    async def test_reject_then_chat_then_disconnect(self):
        sessions = [
            FakeSession(reject=RuntimeError("offline")),
            FakeSession([chat("hi"), LiveEvent(kind="disconnected")]),
        ]
        created = list(sessions)
        sleep = FakeSleep(block_after=2)
        relay = ChatRelay("sam", lambda user: sessions.pop(0), keepalive_seconds=5, sleep=sleep)

        frames = [parse(f) for f in await take(relay, 8)]

        self.assertEqual(
            [name for name, _ in frames],
            ["status", "debug", "debug", "debug", "open", "chat", "status", "debug"],
        )
        self.assertEqual(frames[0][1], {"state": "connected", "user": "sam"})
        self.assertEqual(frames[1][1]["trigger"], "init")
        self.assertEqual(frames[2][1]["inMs"], 2000)
        self.assertEqual(frames[3][1]["trigger"], "retry")
        self.assertEqual(frames[5][1], {"comment": "hi", "userId": "u1", "nickname": "Una"})
        self.assertEqual(frames[6][1], {"state": "disconnected"})
        self.assertEqual(frames[7][1]["inMs"], 2000)
        self.assertEqual(sleep.waits, [2, 2])
        self.assertEqual([s.disconnects for s in created], [1, 1])
        self.assertTrue(relay.closed)

    async def test_backoff_ladder_without_success(self):
        sleep = FakeSleep(block_after=7)
        relay = ChatRelay(
            "sam",
            lambda user: FakeSession(reject=RuntimeError("offline")),
            keepalive_seconds=5,
            sleep=sleep,
        )

        frames = [parse(f) for f in await take(relay, 15)]

        self.assertEqual(sleep.waits, [2, 5, 10, 20, 30, 60, 60])
        retries = [data["inMs"] for name, data in frames if data.get("stage") == "retry"]
        self.assertEqual(retries, [2000, 5000, 10000, 20000, 30000, 60000, 60000])
        self.assertNotIn("open", [name for name, _ in frames])

    async def test_keepalive_while_connecting_and_cleanup(self):
        session = FakeSession(hang=True)
        relay = ChatRelay("sam", lambda user: session, keepalive_seconds=0.05, sleep=FakeSleep(1))

        frames = await take(relay, 3)

        self.assertEqual(frames[2], KEEPALIVE_FRAME)
        self.assertTrue(relay.closed)
        self.assertEqual(session.disconnects, 1)

    async def test_error_and_stream_end_events(self):
        sessions = [
            FakeSession([LiveEvent(kind="error", error="room closed")]),
            FakeSession([LiveEvent(kind="streamEnd")]),
        ]
        relay = ChatRelay("sam", lambda user: sessions.pop(0), keepalive_seconds=5, sleep=FakeSleep(2))

        frames = [parse(f) for f in await take(relay, 9)]
        statuses = [data for name, data in frames if name == "status"]

        self.assertEqual(
            statuses,
            [
                {"state": "connected", "user": "sam"},
                {"state": "error", "error": "room closed"},
                {"state": "ended"},
            ],
        )
        self.assertEqual(frames[4][1]["reason"], "error")
        self.assertEqual(frames[8][1]["reason"], "streamEnd")

    async def test_session_failures_keep_retrying(self):
        def factory(user):
            if not attempts:
                attempts.append(user)
                raise RuntimeError("no client")
            return FakeSession(broken=RuntimeError("socket reset"))

        attempts = []
        relay = ChatRelay("sam", factory, keepalive_seconds=5, sleep=FakeSleep(2))

        frames = [parse(f) for f in await take(relay, 8)]

        self.assertEqual(frames[2][1], {"state": "error", "error": "no client"})
        self.assertEqual(frames[3][1]["reason"], "connect:reject")
        self.assertEqual(frames[6][1], {"state": "error", "error": "socket reset"})
        self.assertEqual(frames[7][1]["reason"], "error")

    async def test_close_is_idempotent(self):
        relay = ChatRelay("sam", lambda user: FakeSession(hang=True), sleep=FakeSleep(1))
        relay.start()
        await asyncio.sleep(0)
        await relay.close()
        await relay.close()
        self.assertTrue(relay.closed)


if __name__ == "__main__":
    unittest.main()
