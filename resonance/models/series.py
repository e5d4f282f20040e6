"""
Series / Season / Episode / Script models and the normalization boundary
for model output and stored content.
"""
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..core.constants import DEFAULT_SEASON_TITLE


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class DialogueLine(_CamelModel):
    speaker: str
    text: str


class GeneratedScript(_CamelModel):
    title: str = ""
    episode_number: int = Field(0, alias="episodeNumber")
    tone: str = ""
    dialogue: list[DialogueLine] = Field(default_factory=list)


class Episode(_CamelModel):
    number: int
    title: str = ""
    description: str = ""
    content_focus: str = Field("", alias="contentFocus")
    script: Optional[GeneratedScript] = None
    status: Literal["planned", "ready"] = "planned"


class Season(_CamelModel):
    number: int
    title: str = ""
    description: str = ""
    episodes: list[Episode] = Field(default_factory=list)


class Series(_CamelModel):
    title: str
    tone: str = ""
    tone_id: str = Field("", alias="_toneId")
    total_seasons: int = Field(1, alias="totalSeasons")
    seasons: list[Season] = Field(default_factory=list)

    def all_episodes(self) -> list[tuple[Season, Episode]]:
        """(season, episode) 쌍을 읽는 순서대로 펼칩니다."""
        return [(season, episode) for season in self.seasons for episode in season.episodes]

    def episode_count(self) -> int:
        return sum(len(season.episodes) for season in self.seasons)

    def neighbours(self, number: int) -> tuple[Optional[Episode], Optional[Episode]]:
        """number 에피소드의 이전/다음 에피소드"""
        flat = [episode for _, episode in self.all_episodes()]
        for index, episode in enumerate(flat):
            if episode.number == number:
                previous = flat[index - 1] if index > 0 else None
                following = flat[index + 1] if index + 1 < len(flat) else None
                return previous, following
        return None, None

    def to_content(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


def _as_int(value: Any, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def normalize_series(raw: dict[str, Any], tone: str = "", tone_id: str = "") -> Series:
    """
    모델 출력이나 저장된 content를 항상 완전한 시즌 목록을 가진 Series로 바꿉니다.

    - seasons가 없고 episodes만 있으면 기본 시즌 (1, "Archive Echoes") 하나로 감쌉니다.
    - 시즌 번호는 1부터 차례대로, totalSeasons는 실제 시즌 수로 맞춥니다.
    - 시즌마다 에피소드 번호가 다시 1부터 시작하는 등 번호가 겹치면
      전체 에피소드를 읽는 순서대로 1..N으로 다시 매깁니다.
    """
    if not isinstance(raw, dict):
        raise ValueError("Series outline must be a JSON object")

    raw_seasons = raw.get("seasons")
    if not raw_seasons:
        raw_seasons = [{
            "number": 1,
            "title": DEFAULT_SEASON_TITLE,
            "description": "",
            "episodes": raw.get("episodes") or [],
        }]

    seasons: list[Season] = []
    for season_index, raw_season in enumerate(raw_seasons, start=1):
        if not isinstance(raw_season, dict):
            continue
        episodes = []
        for episode_index, raw_episode in enumerate(raw_season.get("episodes") or [], start=1):
            if not isinstance(raw_episode, dict):
                continue
            data = dict(raw_episode)
            data["number"] = _as_int(data.get("number"), episode_index)
            focus = data.pop("content_focus", None)
            data["contentFocus"] = str(data.get("contentFocus") or focus or "")
            for key in ("title", "description"):
                data[key] = str(data.get(key) or "")
            if not isinstance(data.get("script"), dict):
                data.pop("script", None)
            if data.get("status") not in ("planned", "ready"):
                data.pop("status", None)
            episodes.append(Episode.model_validate(data))
        seasons.append(Season(
            number=season_index,
            title=str(raw_season.get("title") or ""),
            description=str(raw_season.get("description") or ""),
            episodes=episodes,
        ))

    numbers = [episode.number for season in seasons for episode in season.episodes]
    if len(set(numbers)) != len(numbers) or any(n < 1 for n in numbers):
        counter = 1
        for season in seasons:
            for episode in season.episodes:
                episode.number = counter
                counter += 1

    return Series(
        title=str(raw.get("title") or "Untitled Series"),
        tone=tone or str(raw.get("tone") or ""),
        tone_id=tone_id or str(raw.get("_toneId") or ""),
        total_seasons=max(1, len(seasons)),
        seasons=seasons,
    )


def parse_script(raw: dict[str, Any], episode: Episode, tone: str) -> GeneratedScript:
    """
    에피소드 스크립트 JSON을 GeneratedScript로 바꿉니다.
    episodeNumber는 항상 소속 에피소드 번호로 맞춥니다.
    """
    if not isinstance(raw, dict):
        raise ValueError("Episode script must be a JSON object")
    lines = []
    for item in raw.get("dialogue") or []:
        if not isinstance(item, dict):
            continue
        text = str(item.get("text") or "").strip()
        if not text:
            continue
        lines.append(DialogueLine(speaker=str(item.get("speaker") or "Host"), text=text))
    if not lines:
        raise ValueError(f"Episode {episode.number} script has no dialogue")
    return GeneratedScript(
        title=str(raw.get("title") or episode.title),
        episode_number=episode.number,
        tone=tone or str(raw.get("tone") or ""),
        dialogue=lines,
    )
