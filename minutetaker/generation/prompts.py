"""Instruction text sent with every generation request."""

from datetime import date
from typing import Dict, Optional, Sequence

from ..models.diarization import DiarizationResult
from ..models.generation import MeetingMode
from .minutes import MINUTES_START, MINUTES_END

BASE_PROMPT = "あなたは優秀な議事録作成アシスタントです。提供された音声またはテキストから、構造化された議事録を作成してください。"

MODE_PROMPTS: Dict[MeetingMode, str] = {
    MeetingMode.INTERNAL: "## 社内MTGモード\n- 決定事項とアクションアイテムを明確に。",
    MeetingMode.BUSINESS: "## 商談モード\n- 顧客の課題とネクストアクションを整理。",
    MeetingMode.OTHER: "## その他モード\n- 要点を簡潔に。",
}

GUIDELINES = """## 重要な指示
- 添付された補足資料（PDF、画像等）の内容を読み取り、会議中の言及と結びつけてください。
- 発言者を区別して記載してください。名前が特定できない場合は「話者A」「話者B」のように記載してください。
- 冒頭に「■ 会議概要」として【タイトル】【開催日時】【参加メンバー】を1行ずつ記載してください。"""


def build_instructions(mode: MeetingMode,
                       meeting_date: date,
                       participants: Sequence[str] = (),
                       speakers: Optional[DiarizationResult] = None,
                       feedback: str = "",
                       terminology: str = "") -> str:
    """Assemble the instruction block for one generation attempt.

    Args:
        mode: Meeting mode selecting the mode-specific section
        meeting_date: Date printed in the header
        participants: Confirmed attendee names
        speakers: Diarization result whose speaker names are passed as hints
        feedback: Free-text correction from the user for a regeneration
        terminology: Spelling rules for names and terms

    Returns:
        The instruction text, ending with the required output markers
    """
    sections = [BASE_PROMPT, MODE_PROMPTS[mode]]

    if terminology:
        sections.append(f"## 用語・表記ルール\n{terminology}")

    if speakers is not None and speakers.speaker_names:
        speaker_list = "\n".join(f"- {name}（話者{tag}）" for tag, name in sorted(speakers.speaker_names.items()))
        sections.append(f"## 話者情報（自動認識済み）\n{speaker_list}")

    if participants:
        attendee_list = "\n".join(f"- {name}" for name in participants)
        sections.append(f"## 会議参加者（事前に確認済み）\n{attendee_list}\n"
                        "話者識別では可能な限り上記の参加者名を使用してください。")

    if feedback:
        sections.append(f"## 前回の出力への修正依頼\n{feedback}")

    sections.append(f"---\n日付: {meeting_date.strftime('%Y/%m/%d')}")
    sections.append(GUIDELINES)
    sections.append(f"出力は必ず以下の形式に従ってください：\n\n{MINUTES_START}\n"
                    f"(ここに構造化された議事録をMarkdownで記述)\n{MINUTES_END}")
    return "\n\n".join(sections)
