"""Scan orchestration: credit gate, persistence, corpus comparison and match assembly."""

import asyncio

import pytest

from docscan.core.exceptions import BadRequestError, InsufficientCreditError, StorageError
from docscan.models.scan_document import ScanDocument
from docscan.models.user import User
from docscan.services.corpus import CorpusStore
from docscan.services.scans import ScanOrchestrator, ScanState
from docscan.storage.local import LocalStorage

pytestmark = pytest.mark.asyncio


class FlakyStorage(LocalStorage):
    """Reads of any key containing 'broken' fail like a permission problem."""

    async def get(self, key):
        if "broken" in key:
            raise PermissionError(13, "Permission denied", key)
        return await super().get(key)


class ReadOnlyStorage(LocalStorage):
    async def put(self, key, body, content_type=None):
        raise PermissionError(13, "Permission denied", key)


@pytest.fixture
def orchestrator(corpus) -> ScanOrchestrator:
    return ScanOrchestrator(corpus=corpus, threshold=0.6, concurrency=4, refund_on_storage_failure=False)


async def test_first_scan_has_no_matches(make_user, orchestrator):
    user = await make_user(credits=5)
    result = await orchestrator.submit(user.id, "some original text", "first.txt")
    assert result.state == ScanState.COMPLETED
    assert result.matches == []
    assert result.credits_left == 4
    assert result.file_name == "first.txt"
    assert await ScanDocument.get(result.document_id) is not None


async def test_identical_submission_matches_at_100(make_user, orchestrator):
    owner = await make_user()
    other = await make_user()
    text = "The mitochondria is the powerhouse of the cell."
    original = await orchestrator.submit(owner.id, text, "bio.txt")
    result = await orchestrator.submit(other.id, text, "copy.txt")
    assert len(result.matches) == 1
    match = result.matches[0]
    assert match.document_id == original.document_id
    assert match.file_name == "bio.txt"
    assert match.similarity_percent == 100.0


async def test_threshold_is_strict(make_user, orchestrator):
    user = await make_user()
    await orchestrator.submit(user.id, "aaaaa", "five.txt")
    # distance 2 over length 5 -> similarity exactly 0.6
    result = await orchestrator.submit(user.id, "aaabb", "exact.txt")
    assert all(m.file_name != "five.txt" for m in result.matches)


async def test_just_above_threshold_is_included(make_user, orchestrator):
    user = await make_user()
    await orchestrator.submit(user.id, "a" * 100, "hundred.txt")
    result = await orchestrator.submit(user.id, "a" * 61 + "b" * 39, "close.txt")
    assert [m.file_name for m in result.matches] == ["hundred.txt"]
    assert result.matches[0].similarity_percent == pytest.approx(61.0)


async def test_matches_follow_corpus_order(make_user, orchestrator):
    user = await make_user()
    await orchestrator.submit(user.id, "abcdefghij", "older.txt")
    await orchestrator.submit(user.id, "abcdefghiz", "newer.txt")
    await orchestrator.submit(user.id, "zzzzzzzzzz", "unrelated.txt")
    result = await orchestrator.submit(user.id, "abcdefghiz", "probe.txt")
    assert [m.file_name for m in result.matches] == ["older.txt", "newer.txt"]
    assert [m.similarity_percent for m in result.matches] == [90.0, 100.0]


async def test_insufficient_credit_has_no_side_effects(make_user, orchestrator):
    user = await make_user(credits=0)
    with pytest.raises(InsufficientCreditError):
        await orchestrator.submit(user.id, "text", "a.txt")
    assert await ScanDocument.find_all().count() == 0
    assert (await User.get(user.id)).credits == 0


@pytest.mark.parametrize(
    "text,file_name",
    [("", "a.txt"), ("text", ""), (None, "a.txt"), ("text", "   "), ("text", ".."), ("text", "/"), ("text", "../")],
)
async def test_validation_happens_before_deduction(make_user, orchestrator, text, file_name):
    user = await make_user(credits=3)
    with pytest.raises(BadRequestError):
        await orchestrator.submit(user.id, text, file_name)
    assert (await User.get(user.id)).credits == 3


async def test_concurrent_scans_with_one_credit(make_user, orchestrator):
    user = await make_user(credits=1)
    results = await asyncio.gather(
        orchestrator.submit(user.id, "first concurrent text", "one.txt"),
        orchestrator.submit(user.id, "second concurrent text", "two.txt"),
        return_exceptions=True,
    )
    succeeded = [r for r in results if not isinstance(r, BaseException)]
    failed = [r for r in results if isinstance(r, BaseException)]
    assert len(succeeded) == 1
    assert len(failed) == 1
    assert isinstance(failed[0], InsufficientCreditError)
    assert succeeded[0].credits_left == 0
    assert (await User.get(user.id)).credits == 0
    assert await ScanDocument.find_all().count() == 1


async def test_unreadable_document_is_skipped(make_user, tmp_path):
    user = await make_user()
    orchestrator = ScanOrchestrator(corpus=CorpusStore(FlakyStorage(tmp_path / "flaky"), timeout=5.0), threshold=0.6)
    text = "shared paragraph about plagiarism detection"
    await orchestrator.submit(user.id, text, "broken.txt")
    await orchestrator.submit(user.id, text, "fine.txt")
    result = await orchestrator.submit(user.id, text, "probe.txt")
    assert result.state == ScanState.COMPLETED
    assert result.skipped == 1
    assert [m.file_name for m in result.matches] == ["fine.txt"]
    assert await ScanDocument.get(result.document_id) is not None


async def test_missing_body_is_skipped(make_user, corpus, orchestrator):
    user = await make_user()
    gone = await orchestrator.submit(user.id, "text that will vanish", "gone.txt")
    doc = await ScanDocument.get(gone.document_id)
    await corpus.backend.delete(doc.storage_key)
    result = await orchestrator.submit(user.id, "text that will vanish", "probe.txt")
    assert result.matches == []
    assert result.skipped == 1


async def test_storage_failure_keeps_deduction(make_user, tmp_path):
    user = await make_user(credits=2)
    orchestrator = ScanOrchestrator(
        corpus=CorpusStore(ReadOnlyStorage(tmp_path / "ro"), timeout=5.0),
        refund_on_storage_failure=False,
    )
    with pytest.raises(StorageError):
        await orchestrator.submit(user.id, "text", "a.txt")
    assert (await User.get(user.id)).credits == 1
    assert await ScanDocument.find_all().count() == 0


async def test_storage_failure_refund_when_enabled(make_user, tmp_path):
    user = await make_user(credits=2)
    orchestrator = ScanOrchestrator(
        corpus=CorpusStore(ReadOnlyStorage(tmp_path / "ro"), timeout=5.0),
        refund_on_storage_failure=True,
    )
    with pytest.raises(StorageError):
        await orchestrator.submit(user.id, "text", "a.txt")
    assert (await User.get(user.id)).credits == 2


@pytest.mark.parametrize("file_name", ["..", "/", "../"])
async def test_unusable_file_name_costs_nothing_even_with_refunds(make_user, corpus, file_name):
    user = await make_user(credits=3)
    orchestrator = ScanOrchestrator(corpus=corpus, refund_on_storage_failure=True)
    with pytest.raises(BadRequestError):
        await orchestrator.submit(user.id, "some text", file_name)
    assert (await User.get(user.id)).credits == 3
    assert await ScanDocument.find_all().count() == 0


async def test_metadata_failure_is_refunded_when_enabled(make_user, corpus, monkeypatch):
    user = await make_user(credits=2)

    async def failing_insert(self, *args, **kwargs):
        raise RuntimeError("write concern error")

    monkeypatch.setattr(ScanDocument, "insert", failing_insert)
    orchestrator = ScanOrchestrator(corpus=corpus, refund_on_storage_failure=True)
    with pytest.raises(StorageError):
        await orchestrator.submit(user.id, "text", "a.txt")
    assert (await User.get(user.id)).credits == 2


async def test_uses_injected_ledger(make_user, corpus):
    user = await make_user(credits=0)
    calls = []

    class RecordingLedger:
        async def try_deduct(self, user_id, amount=1, **kwargs):
            calls.append(("deduct", user_id, amount))
            return 41

        async def grant(self, user_id, amount, **kwargs):
            calls.append(("grant", user_id, amount))
            return 42

    orchestrator = ScanOrchestrator(corpus=corpus, ledger=RecordingLedger())
    result = await orchestrator.submit(user.id, "text", "a.txt")
    assert result.credits_left == 41
    assert calls == [("deduct", user.id, 1)]
    # the real balance was never touched
    assert (await User.get(user.id)).credits == 0
