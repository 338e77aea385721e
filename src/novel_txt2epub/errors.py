"""변환 에러 정의

설정 에러(패턴)는 배치 전체를 중단시키고, 문서 에러(IO/메타데이터)는 해당 문서만 중단시킨다.
"""

from typing import Optional


class Txt2EpubError(Exception):
    """모든 변환 에러의 기반 클래스"""


class InvalidPatternError(Txt2EpubError):
    """제목 패턴이 컴파일되지 않거나 캡처 그룹이 없음"""

    def __init__(self, pattern: str, reason: str):
        self.pattern = pattern
        self.reason = reason
        super().__init__(f"Invalid pattern {pattern!r}: {reason}")


class DocumentError(Txt2EpubError):
    """단일 문서에 한정된 에러 (배치의 다른 문서에는 영향 없음)"""

    def __init__(self, document: str, detail: str, offset: Optional[int] = None):
        self.document = document
        self.detail = detail
        self.offset = offset
        where = f" at byte {offset}" if offset is not None else ""
        super().__init__(f"{document}{where}: {detail}")


class DocumentReadError(DocumentError):
    """파일 열기/읽기/seek 실패 또는 디코딩 실패"""


class MetadataParseError(DocumentError):
    """메타데이터 블록을 key/value 레코드로 해석할 수 없음"""
