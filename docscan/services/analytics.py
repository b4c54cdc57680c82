"""Admin dashboard numbers: scan volume, per-user scan counts, most common words."""

from collections import Counter

from beanie.operators import In

from docscan.core.exceptions import AppError
from docscan.core.logging import get_logger
from docscan.models.scan_document import ScanDocument
from docscan.models.user import User
from docscan.services.corpus import CorpusStore

log = get_logger(__name__)

TOP_WORDS = 10


async def scans_per_user() -> list[dict]:
    rows = await ScanDocument.find_all().aggregate(
        [
            {"$group": {"_id": "$owner_id", "scan_count": {"$sum": 1}}},
            {"$sort": {"scan_count": -1}},
        ]
    ).to_list()
    owner_ids = [r["_id"] for r in rows]
    users = await User.find(In(User.id, owner_ids)).to_list() if owner_ids else []
    names = {u.id: u.username for u in users}
    return [{"username": names.get(r["_id"]), "scan_count": r["scan_count"]} for r in rows]


async def common_words(corpus: CorpusStore, limit: int = TOP_WORDS) -> list[dict]:
    counts: Counter[str] = Counter()
    async for doc in ScanDocument.find_all():
        try:
            text = await corpus.read(doc.storage_key)
        except AppError as e:
            log.warning("analytics_document_skipped", storage_key=doc.storage_key, reason=e.message)
            continue
        counts.update(text.split())
    return [{"word": w, "count": c} for w, c in counts.most_common(limit)]


async def dashboard(corpus: CorpusStore) -> dict:
    return {
        "total_scans": await ScanDocument.find_all().count(),
        "top_users": await scans_per_user(),
        "most_common_words": await common_words(corpus),
    }
