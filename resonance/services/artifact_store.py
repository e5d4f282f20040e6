"""
Artifact store: persisted series outlines and episode scripts, plus the
cross-account sharing lookup and the daily generation log.
"""
import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Protocol

from ..core.constants import ARTIFACT_EPISODE, ARTIFACT_SERIES, ARCHIVE_FILE
from ..models.library import Artifact, BookIdentity, BookRecord
from ..models.tones import Tone
from ..utils.logging import log_error


class ArtifactStore(Protocol):
    async def add_book(self, book: BookRecord) -> None: ...

    async def get_book(self, book_id: str) -> Optional[BookRecord]: ...

    async def query(
        self,
        owner_id: str,
        type: Optional[str] = None,
        book_id: Optional[str] = None,
        tone_id: Optional[str] = None,
    ) -> list[Artifact]: ...

    async def insert(self, artifact: Artifact) -> str: ...

    async def trash(self, owner_id: str, artifact_id: str) -> None: ...

    async def find_series(self, owner_id: str, book_id: str, tone: Tone) -> Optional[Artifact]: ...

    async def find_episode(self, owner_id: str, book_id: str, tone: Tone, number: int) -> Optional[Artifact]: ...

    async def copy_shared_artifacts(
        self, owner_id: str, target_book_id: str, tone: Tone, identity: BookIdentity
    ) -> bool: ...

    async def count_generations_today(self, owner_id: str) -> int: ...

    async def record_generation(self, owner_id: str, book_id: str, tone_id: str) -> None: ...


def _today_utc() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%d")


def _matches_tone(artifact: Artifact, tone: Tone) -> bool:
    """_toneId가 있으면 그것으로, 없는 예전 아티팩트는 tone 라벨로 비교"""
    tone_id = artifact.content.get("_toneId")
    if tone_id:
        return tone_id == tone.id
    return artifact.content.get("tone") == tone.label or artifact.content.get("_toneLabel") == tone.label


def _author_keyword(author: str) -> str:
    """저자 이름에서 가장 구별되는 마지막 단어 (4글자 이상)"""
    words = [w for w in author.strip().split() if len(w) > 3]
    return words[-1] if words else author.strip()


class InMemoryArtifactStore:
    """
    프로세스 메모리에 아티팩트를 보관하는 저장소.
    JsonArtifactStore가 _persist()만 바꿔서 파일에 저장합니다.
    """

    def __init__(self):
        self._books: dict[str, BookRecord] = {}
        self._artifacts: list[Artifact] = []
        self._generation_log: list[dict] = []

    def _persist(self) -> None:
        """변경 후 호출되는 훅 (메모리 저장소는 아무것도 하지 않음)"""

    # ── Books ────────────────────────────────────────────────────────────

    async def add_book(self, book: BookRecord) -> None:
        self._books[book.id] = book
        self._persist()

    async def get_book(self, book_id: str) -> Optional[BookRecord]:
        return self._books.get(book_id)

    # ── Artifacts ────────────────────────────────────────────────────────

    async def query(
        self,
        owner_id: str,
        type: Optional[str] = None,
        book_id: Optional[str] = None,
        tone_id: Optional[str] = None,
    ) -> list[Artifact]:
        """삭제되지 않은 owner의 아티팩트를 최신순으로 반환"""
        results = [
            a for a in self._artifacts
            if a.owner_id == owner_id
            and a.deleted_at is None
            and (type is None or a.type == type)
            and (book_id is None or a.book_id == book_id)
            and (tone_id is None or a.tone_id == tone_id)
        ]
        return sorted(results, key=lambda a: a.created_at, reverse=True)

    async def insert(self, artifact: Artifact) -> str:
        self._artifacts.append(artifact.model_copy(deep=True))
        self._persist()
        return artifact.id

    async def trash(self, owner_id: str, artifact_id: str) -> None:
        for artifact in self._artifacts:
            if artifact.id == artifact_id and artifact.owner_id == owner_id:
                artifact.deleted_at = datetime.now(timezone.utc).isoformat()
        self._persist()

    async def find_series(self, owner_id: str, book_id: str, tone: Tone) -> Optional[Artifact]:
        for artifact in await self.query(owner_id, type=ARTIFACT_SERIES, book_id=book_id):
            if _matches_tone(artifact, tone):
                return artifact
        return None

    async def find_episode(self, owner_id: str, book_id: str, tone: Tone, number: int) -> Optional[Artifact]:
        for artifact in await self.query(owner_id, type=ARTIFACT_EPISODE, book_id=book_id):
            if _matches_tone(artifact, tone) and artifact.content.get("episodeNumber") == number:
                return artifact
        return None

    # ── Sharing ──────────────────────────────────────────────────────────

    def _related_book_ids(self, target_book_id: str, identity: BookIdentity) -> list[str]:
        if identity.store_book_id:
            return [b.id for b in self._books.values() if b.store_book_id == identity.store_book_id]

        if not identity.title:
            return []
        title_key = identity.title[:60].lower()
        author_key = _author_keyword(identity.author).lower() if identity.author else ""
        related = []
        for book in self._books.values():
            if book.id == target_book_id:
                continue
            if title_key not in book.title.lower():
                continue
            if author_key and author_key not in (book.author or "").lower():
                continue
            related.append(book.id)
        return related

    async def copy_shared_artifacts(
        self, owner_id: str, target_book_id: str, tone: Tone, identity: BookIdentity
    ) -> bool:
        """
        다른 계정이 같은 책(+톤)으로 이미 만든 시리즈와 에피소드를 owner 계정으로 복사합니다.

        Returns:
            복사했으면 True, 원본이 없으면 False
        """
        book_ids = set(self._related_book_ids(target_book_id, identity))
        book_ids.discard(target_book_id)
        if not book_ids:
            return False

        live = [a for a in self._artifacts if a.deleted_at is None and a.book_id in book_ids]

        series_candidates = [a for a in live if a.type == ARTIFACT_SERIES and a.content.get("_toneId") == tone.id]
        if not series_candidates:
            series_candidates = [a for a in live if a.type == ARTIFACT_SERIES and a.content.get("tone") == tone.label]
        if not series_candidates:
            print(f"  [Sharing] No source series found for tone='{tone.id}', will generate fresh.", flush=True)
            return False
        source_series = series_candidates[0]
        tone_label = source_series.content.get("tone") or tone.label

        source_episodes = [
            a for a in live
            if a.type == ARTIFACT_EPISODE
            and a.book_id == source_series.book_id
            and a.content.get("_toneId") == tone.id
        ]
        if not source_episodes:
            source_episodes = [
                a for a in live
                if a.type == ARTIFACT_EPISODE
                and a.book_id == source_series.book_id
                and f"({tone_label})" in a.title
            ]
        if not source_episodes:
            print("  [Sharing] Source series has no episodes, will generate fresh.", flush=True)
            return False

        print(
            f"  [Sharing] Copying series '{source_series.title}' and {len(source_episodes)} episodes.",
            flush=True,
        )
        for source in [source_series, *source_episodes]:
            self._artifacts.append(Artifact(
                owner_id=owner_id,
                book_id=target_book_id,
                type=source.type,
                title=source.title,
                content=json.loads(json.dumps(source.content)),
            ))
        self._persist()
        return True

    # ── Daily generation log ─────────────────────────────────────────────

    async def count_generations_today(self, owner_id: str) -> int:
        today = _today_utc()
        return sum(1 for row in self._generation_log if row["owner_id"] == owner_id and row["date"] == today)

    async def record_generation(self, owner_id: str, book_id: str, tone_id: str) -> None:
        self._generation_log.append({
            "owner_id": owner_id,
            "book_id": book_id,
            "tone_id": tone_id,
            "date": _today_utc(),
        })
        self._persist()


class JsonArtifactStore(InMemoryArtifactStore):
    """
    InMemoryArtifactStore와 같지만 변경될 때마다 JSON 파일로 저장합니다.
    """

    def __init__(self, root: Path):
        super().__init__()
        self.path = Path(root) / ARCHIVE_FILE
        self._load()

    def _load(self) -> None:
        if not self.path.exists():
            return
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            log_error(f"Failed to load archive {self.path}: {e}", context="artifact_store", exception=e)
            raise
        self._books = {b["id"]: BookRecord.model_validate(b) for b in data.get("books", [])}
        self._artifacts = [Artifact.model_validate(a) for a in data.get("artifacts", [])]
        self._generation_log = list(data.get("generation_log", []))

    def _persist(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = {
            "books": [b.model_dump() for b in self._books.values()],
            "artifacts": [a.model_dump() for a in self._artifacts],
            "generation_log": self._generation_log,
        }
        tmp_path = self.path.with_suffix(".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(payload, f, ensure_ascii=False, indent=2)
        tmp_path.replace(self.path)
