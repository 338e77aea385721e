"""구조 조립 (렌더러용 직렬화 뷰)

ParsedNovel 을 읽기 전용 뷰로 변환한다. 파트/챕터 라벨은 중국어 숫자로 표기하고,
지시어 상태에서 long preface 플래그를 확정한다. 원본 트리는 변경하지 않는다.
"""

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional, Tuple
from novel_txt2epub.structure.models import Chapter, Metadata, ParsedNovel, Part
from novel_txt2epub.utils.text_cleaner import to_chinese_number


@dataclass(frozen=True)
class LineView:
    type: str
    text: str


@dataclass(frozen=True)
class MetadataView:
    title: str
    author: str
    cover: Optional[str]
    description: Tuple[str, ...]


@dataclass(frozen=True)
class ChapterView:
    id: int
    no: int
    part_no: int
    title: str
    label: str
    global_title: str
    lines: Tuple[LineView, ...]


@dataclass(frozen=True)
class PartView:
    no: int
    title: str
    label: str
    preface: Tuple[str, ...]
    is_long_preface: bool
    chapters: Tuple[ChapterView, ...]


@dataclass(frozen=True)
class NovelView:
    metadata: MetadataView
    has_parts: bool
    parts: Tuple[PartView, ...] = field(default_factory=tuple)

    @property
    def chapter_count(self) -> int:
        return sum(len(p.chapters) for p in self.parts)

    def to_dict(self) -> Dict[str, Any]:
        """JSON 직렬화용 dict"""
        return asdict(self)


def part_label(no: int, title: str) -> str:
    """예: 第一卷 起"""
    return f"第{to_chinese_number(no)}卷 {title}".strip()


def chapter_label(no: int, title: str) -> str:
    """예: 第十二章 开始"""
    return f"第{to_chinese_number(no)}章 {title}".strip()


def _metadata_view(metadata: Optional[Metadata]) -> MetadataView:
    metadata = metadata or Metadata()
    return MetadataView(
        title=metadata.book_name,
        author=metadata.author,
        cover=metadata.cover,
        description=tuple(metadata.description),
    )


def _chapter_view(chapter: Chapter) -> ChapterView:
    return ChapterView(
        id=chapter.id,
        no=chapter.no,
        part_no=chapter.part_no,
        title=chapter.title,
        label=chapter_label(chapter.no, chapter.title),
        global_title=f"第{chapter.id}章 {chapter.title}".strip(),
        lines=tuple(LineView(type=line.line_type.value, text=line.content) for line in chapter.content),
    )


def _part_view(part: Part) -> PartView:
    return PartView(
        no=part.no,
        title=part.title,
        label=part_label(part.no, part.title) if not part.is_implicit else "",
        preface=tuple(part.preface),
        is_long_preface=part.is_long_preface,
        chapters=tuple(_chapter_view(c) for c in part.chapters),
    )


def assemble(parsed: ParsedNovel) -> NovelView:
    """렌더러에 넘길 최종 뷰 생성"""
    return NovelView(
        metadata=_metadata_view(parsed.novel.metadata),
        has_parts=parsed.has_parts,
        parts=tuple(_part_view(p) for p in parsed.novel.parts),
    )


def outline(view: NovelView) -> List[Dict[str, Any]]:
    """파트별 요약 (CLI inspect 용)"""
    rows = []
    for part in view.parts:
        first = part.chapters[0].id if part.chapters else None
        last = part.chapters[-1].id if part.chapters else None
        rows.append({
            "no": part.no,
            "label": part.label or "(no part)",
            "chapters": len(part.chapters),
            "range": f"{first}-{last}" if part.chapters else "-",
            "preface": len(part.preface),
            "long_preface": part.is_long_preface,
        })
    return rows
