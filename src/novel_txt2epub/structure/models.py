"""소설 구조 데이터 클래스

Novel -> Part -> Chapter -> Line. 스캔이 끝난 뒤에는 읽기 전용으로 렌더러에 넘긴다.
start/end 는 원본 파일의 바이트 범위 [start, end) 이며 스캔 중에만 의미가 있다.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional
from novel_txt2epub.structure.directives import NovelDirective

# 메타데이터 블록의 키 별칭 (중국어 원문 키 포함)
METADATA_ALIASES = {
    "book_name": ("book_name", "书名"),
    "author": ("author", "作者"),
    "cover": ("cover", "封面"),
    "description": ("description", "简介"),
}


@dataclass
class Metadata:
    """소설 메타데이터

    Attributes:
        book_name: 책 제목
        author: 작가
        cover: 표지 이미지 URL 또는 로컬 경로 (선택)
        description: 소개글 (문단 리스트)
    """
    book_name: str = ""
    author: str = ""
    cover: Optional[str] = None
    description: List[str] = field(default_factory=list)

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Metadata":
        """YAML 레코드에서 생성. 모르는 키는 무시, 없는 키는 기본값

        Raises:
            ValueError: 인식되는 키의 값 형태가 잘못됨
        """
        values = {}
        for name, aliases in METADATA_ALIASES.items():
            for alias in aliases:
                if alias in record and record[alias] not in (None, ""):
                    values[name] = record[alias]
                    break

        metadata = cls()
        for name in ("book_name", "author", "cover"):
            if name in values:
                value = values[name]
                if isinstance(value, (dict, list)):
                    raise ValueError(f"'{name}' must be a scalar, got {type(value).__name__}")
                setattr(metadata, name, str(value))

        if "description" in values:
            value = values["description"]
            if isinstance(value, list):
                if any(isinstance(v, (dict, list)) for v in value):
                    raise ValueError("'description' must be a list of paragraphs")
                metadata.description = [str(v) for v in value]
            elif isinstance(value, dict):
                raise ValueError("'description' must be a list of paragraphs")
            else:
                metadata.description = [p.strip() for p in str(value).splitlines() if p.strip()]

        return metadata


class LineType(Enum):
    CONTENT = "content"
    DIVIDER = "divider"


@dataclass
class Line:
    line_type: LineType
    content: str

    @property
    def is_divider(self) -> bool:
        return self.line_type is LineType.DIVIDER


@dataclass
class Chapter:
    """파트 안의 한 챕터

    Attributes:
        id: 문서 전체 기준 전역 번호 (1부터)
        no: 파트 내 번호 (파트마다 1부터)
        part_no: 소속 파트 번호 (암묵 파트는 0)
        title: 패턴 캡처 그룹 텍스트
        raw_title: 원문 제목 줄
        content: 본문 줄
    """
    id: int
    no: int
    part_no: int
    title: str
    raw_title: str
    start: int
    end: int = 0
    content: List[Line] = field(default_factory=list)

    def __repr__(self):
        return f"<Chapter {self.id} (P{self.part_no}C{self.no}): {self.title} ({len(self.content)} lines)>"


@dataclass
class Part:
    """챕터 묶음 (권/부)

    no 가 0 이면 명시적 파트가 없는 문서의 암묵 파트다.
    """
    no: int
    title: str
    raw_title: str
    start: int
    end: int = 0
    chapters: List[Chapter] = field(default_factory=list)
    preface: List[str] = field(default_factory=list)
    current_chapter_no: int = 0
    options: Dict[str, bool] = field(default_factory=NovelDirective.default_flags)

    @property
    def is_implicit(self) -> bool:
        return self.no == 0

    @property
    def is_long_preface(self) -> bool:
        return self.options.get(NovelDirective.LONG_PREFACE.flag, False)

    def apply_directive(self, directive: NovelDirective) -> None:
        self.options[directive.flag] = True

    def open_chapter(self, global_no: int, title: str, raw_title: str, marker_start: int, start: int) -> Chapter:
        """새 챕터를 열고 이전 챕터 범위를 제목 줄 시작 위치에서 닫는다

        Args:
            global_no: 전역 챕터 번호
            title: 캡처된 제목
            raw_title: 원문 제목 줄
            marker_start: 제목 줄 시작 오프셋
            start: 제목 줄 바로 다음 오프셋 (본문 시작)
        """
        self.close_current(marker_start)
        self.current_chapter_no += 1
        chapter = Chapter(
            id=global_no,
            no=self.current_chapter_no,
            part_no=self.no,
            title=title,
            raw_title=raw_title,
            start=start,
        )
        self.chapters.append(chapter)
        return chapter

    def close_current(self, end: int) -> None:
        if self.chapters:
            self.chapters[-1].end = end

    @property
    def current_chapter(self) -> Optional[Chapter]:
        return self.chapters[-1] if self.chapters else None

    def __repr__(self):
        return f"<Part {self.no}: {self.title!r} ({len(self.chapters)} chapters)>"


@dataclass
class Novel:
    parts: List[Part] = field(default_factory=list)
    metadata: Optional[Metadata] = None

    @property
    def chapter_count(self) -> int:
        return sum(len(p.chapters) for p in self.parts)

    def iter_chapters(self):
        for part in self.parts:
            yield from part.chapters


@dataclass
class ParsedNovel:
    """스캔 결과

    has_parts 는 렌더러로 명시적으로 전달되는 값이며 전역 상태로 두지 않는다.
    """
    novel: Novel
    has_parts: bool
    source: str = ""
    encoding: str = "utf-8"
