"""
Prompt builders for the outline (planner) and episode (writer) steps
"""
from typing import Optional

from ..models.series import Episode, Season, Series

JSON_QUOTE_RULE = (
    "- CRITICAL JSON RULE: Do NOT use unescaped double quotes inside string values. "
    "If you need to quote something, use 'single quotes' or escape them like \\\"this\\\". "
    "Unescaped double quotes will corrupt the JSON."
)


def build_outline_prompt(book_title: str, book_author: str, content: str, tone_label: str) -> str:
    """
    시리즈 아웃라인 프롬프트를 생성합니다.

    Args:
        book_title: 책 제목
        book_author: 저자
        content: optimize_for_outline으로 줄인 본문
        tone_label: 사용자가 고른 톤 라벨

    Returns:
        프롬프트 문자열
    """
    author = book_author or "an unknown author"
    return f"""
You are an award-winning podcast producer.
Analyze the following contents from the book "{book_title}" by {author}.
Architect a grand, multi-season podcast epic if the content is substantial. For complex, long books, create 2-4 seasons with 4-6 episodes each. For shorter works, a single season is sufficient.
Create a professional podcast series outline using a "{tone_label}" tone.

Content:
{content}

Format the output as a JSON object:
{{
  "title": "Series Title",
  "tone": "{tone_label}",
  "totalSeasons": number,
  "seasons": [
    {{
      "number": 1,
      "title": "Season Title (e.g., The Awakening)",
      "description": "Thematic focus of this season",
      "episodes": [
        {{
          "number": 1,
          "title": "Episode Title",
          "description": "Brief catchy description",
          "contentFocus": "Summary of what specific parts/themes of the provided text this episode will cover"
        }}
      ]
    }}
  ]
}}

- Number episodes continuously across the whole series (season 2 continues where season 1 ended).
{JSON_QUOTE_RULE}
"""


def build_episode_prompt(
    series: Series,
    season: Season,
    episode: Episode,
    excerpt: str,
    previous_recap: Optional[str] = None,
    next_tease: Optional[str] = None,
) -> str:
    """
    에피소드 스크립트 프롬프트를 생성합니다.

    Args:
        series: 정규화된 시리즈 아웃라인
        season: 에피소드가 속한 시즌
        episode: 생성할 에피소드
        excerpt: optimize_for_episode로 고른 발췌문
        previous_recap: 이전 에피소드 요약 (없으면 시작 에피소드)
        next_tease: 다음 에피소드 예고

    Returns:
        프롬프트 문자열
    """
    position = next((i for i, ep in enumerate(season.episodes, start=1) if ep.number == episode.number), 1)
    total_in_season = len(season.episodes) or 1

    return f"""
You are an award-winning podcast producer and master scriptwriter. Your task is to write a highly engaging, professional podcast script based on specific extracted content from a book.

This is Episode {position} of {total_in_season} in Season {season.number} ("{season.title}"). This is part of the larger series "{series.title}" which spans {series.total_seasons} seasons.

The script must NOT read like an audiobook or a dry summary. It must be a dynamic, thought-provoking conversation that brings the book's concepts, characters, or themes to life.

Here is the context for this episode:
- Series Title: {series.title}
- Season {season.number}: {season.title}
- Episode Title: {episode.title}
- User's Chosen Tone: {series.tone}. YOU MUST STRICTLY ADHERE TO THIS TONE.
- Core Content to Cover in this Episode: {episode.content_focus}
- Source Excerpt: {excerpt}
- Previous Episode Recap: {previous_recap or "This is the start of this exploration."}
- Next Episode Teaser: {next_tease or "To be continued..."}

SCRIPT REQUIREMENTS & FORMATTING:

1. Host Setup: Format the script for 2 hosts. Invent TWO RANDOM FIRST NAMES for the hosts. Give them natural chemistry, interruptions, and banter.
2. Strictly Spoken Word Only: Write ONLY the exact spoken dialogue. No stage directions, audio cues, or sound effects (no [SFX], [MUSIC], or *laughs*). The text goes directly to a Text-to-Speech engine.
3. Pacing: Use short, punchy sentences for tension and longer, reflective lines for deep analysis.
4. Structure:
   - The Hook: open with a provocative question, a striking quote from the text, or a captivating scenario.
   - Intro & Continuity: welcome the listener and weave in a 2-sentence reference to the season's thematic journey.
   - Main Exploration: analyze, debate, and relate the text to broader human experience. Do not just summarize.
   - The "Echo" Segment: pause to deeply analyze one specific, profound quote or moment from the excerpt.
   - Outro: wrap up the core theme and tease the next episode if there is one.

RULES:
- Avoid robotic transitions like "Moving on to the next point."
- Make the dialogue sound spoken, not read.
- Aim for roughly 5-8 minutes of spoken audio.
{JSON_QUOTE_RULE}

Format the output as a JSON object:
{{
  "title": "{episode.title}",
  "episodeNumber": {episode.number},
  "tone": "{series.tone}",
  "dialogue": [
    {{ "speaker": "[Random Host 1]", "text": "..." }},
    {{ "speaker": "[Random Host 2]", "text": "..." }}
  ]
}}
"""
