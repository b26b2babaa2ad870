import pytest

from core import fcm, settings
from notifications.push import DeliveryTally, chunk_tokens, send_batch


class RecordingSender:
    def __init__(self, fail_chunks: set[int] = frozenset()) -> None:
        self.calls: list[list[str]] = []
        self.payloads: list[dict[str, str]] = []
        self.fail_chunks = fail_chunks

    async def __call__(self, tokens: list[str], data: dict[str, str]) -> fcm.MulticastResult:
        index = len(self.calls)
        self.calls.append(tokens)
        self.payloads.append(data)
        if index in self.fail_chunks:
            raise fcm.FcmError("quota exceeded")
        # One invalid token per chunk.
        return fcm.MulticastResult(success_count=len(tokens) - 1, failure_count=1)


def _tokens(n: int) -> list[str]:
    return [f"token-{i}" for i in range(n)]


async def test_tokens_are_sent_in_chunks_of_500() -> None:
    sender = RecordingSender()

    tally = await send_batch(_tokens(1200), {"type": "assignment"}, sender=sender)

    assert [len(c) for c in sender.calls] == [500, 500, 200]
    assert sender.calls[0][0] == "token-0"
    assert sender.calls[2][-1] == "token-1199"
    assert tally == DeliveryTally(success=1197, failed=3)


async def test_no_tokens_means_no_calls() -> None:
    sender = RecordingSender()

    tally = await send_batch([], {"type": "notification"}, sender=sender)

    assert sender.calls == []
    assert tally.as_dict() == {"success": 0, "failed": 0}


async def test_a_failing_chunk_counts_all_its_tokens_and_later_chunks_still_go() -> None:
    sender = RecordingSender(fail_chunks={0})

    tally = await send_batch(_tokens(700), {"type": "assignment"}, sender=sender)

    assert [len(c) for c in sender.calls] == [500, 200]
    assert tally.failed == 500 + 1
    assert tally.success == 199
    assert tally.attempted == 700


async def test_payload_values_are_strings() -> None:
    sender = RecordingSender()

    await send_batch(["t"], {"assignmentId": 7, "body": None}, sender=sender)

    assert sender.payloads == [{"assignmentId": "7", "body": ""}]


@pytest.mark.parametrize("size, expected", [(2, [2, 2, 1]), (0, [1] * 5), (10_000, [5])])
def test_chunk_size_is_clamped(size, expected) -> None:
    assert [len(c) for c in chunk_tokens(_tokens(5), size)] == expected


def test_configured_chunk_size_never_exceeds_multicast_limit(monkeypatch) -> None:
    monkeypatch.setenv("PUSH_CHUNK_SIZE", "2000")
    assert settings.push_chunk_size() == 500


async def test_unconfigured_firebase_raises() -> None:
    fcm.close_app()
    with pytest.raises(fcm.FcmError):
        await fcm.send_multicast(["t"], {"type": "notification"})
