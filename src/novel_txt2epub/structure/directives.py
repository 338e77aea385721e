"""본문에 섞여 있는 구조 지시어

`[LongPreface]` 처럼 대괄호로 감싼 고정 토큰 한 줄. 지시어 줄은 서문/본문에 포함되지 않고
해당 파트의 플래그만 켠다. 등록되지 않은 대괄호 텍스트는 일반 텍스트로 취급한다.
"""

from enum import Enum
from typing import Dict, Optional


class NovelDirective(Enum):
    """지시어 (closed set). value 는 원문 토큰"""
    LONG_PREFACE = "[LongPreface]"

    @property
    def flag(self) -> str:
        return self.name.lower()

    @classmethod
    def parse(cls, line: str) -> Optional["NovelDirective"]:
        """trim 후 토큰과 정확히 일치하면 해당 지시어, 아니면 None"""
        return _BY_TOKEN.get(line.strip())

    @classmethod
    def default_flags(cls) -> Dict[str, bool]:
        return {d.flag: False for d in cls}


_BY_TOKEN = {d.value: d for d in NovelDirective}


def is_directive(line: str) -> bool:
    return NovelDirective.parse(line) is not None
