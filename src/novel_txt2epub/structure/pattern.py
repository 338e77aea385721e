"""제목 패턴 (Part / Chapter)

캡처 그룹이 최소 1개 있는 정규식만 허용한다. 그룹 1이 제목 텍스트가 된다.
"""

import re
from dataclasses import dataclass
from typing import Optional
from novel_txt2epub.errors import InvalidPatternError


@dataclass(frozen=True)
class TitlePattern:
    """검증된 제목 매칭 규칙

    `TitlePattern.compile()` 로만 생성할 것. 생성 이후에는 읽기 전용이므로
    배치 내 모든 문서/스레드에서 공유해도 안전하다.
    """
    source: str
    regex: re.Pattern

    @classmethod
    def compile(cls, source: str) -> "TitlePattern":
        """패턴 문자열을 검증하고 컴파일

        Raises:
            InvalidPatternError: 컴파일 실패 또는 캡처 그룹 없음
        """
        try:
            regex = re.compile(source)
        except re.error as e:
            raise InvalidPatternError(source, f"does not compile ({e})") from e

        if regex.groups < 1:
            raise InvalidPatternError(source, "no capture group")

        return cls(source=source, regex=regex)

    def match_title(self, line: str) -> Optional[str]:
        """줄이 패턴에 맞으면 캡처된 제목을, 아니면 None 반환"""
        m = self.regex.search(line)
        if m is None:
            return None
        return (m.group(1) or "").strip()

    def is_match(self, line: str) -> bool:
        return self.regex.search(line) is not None

    def __repr__(self):
        return f"<TitlePattern {self.source!r}>"
