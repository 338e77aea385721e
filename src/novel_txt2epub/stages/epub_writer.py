"""EPUB 생성

EbookLib 기반 EPUB2 생성. 렌더링 대상은 Metadata / Part / Chapter 세 종류의 노드로 닫혀 있고
`render()` 한 곳에서 분기한다. has_parts 는 NovelView 에서 명시적으로 넘어온다.
"""

import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple, Union
from ebooklib import epub
from novel_txt2epub.config.loader import ConvertOptions
from novel_txt2epub.stages.cover import CoverFetcher
from novel_txt2epub.stages.epub_templates import (
    create_chapter_page, create_cover_html, create_intro_page, create_no_part_page, create_part_page, create_toc_page,
    get_css
)
from novel_txt2epub.structure.assembler import ChapterView, MetadataView, NovelView, PartView
from novel_txt2epub.utils.logger import get_logger
from novel_txt2epub.utils.text_cleaner import quote_replace

logger = get_logger(__name__)

Node = Union[MetadataView, PartView, ChapterView]


@dataclass
class _BookState:
    """한 권을 만드는 동안의 누적 상태 (spine / toc)"""
    book: epub.EpubBook
    has_parts: bool
    spine: List[epub.EpubItem] = field(default_factory=list)
    toc: List = field(default_factory=list)
    part_links: List[epub.Link] = field(default_factory=list)
    # 목차 페이지가 들어갈 spine 위치 (简介 바로 뒤)
    toc_position: int = 0


class EPUBGenerator:
    """NovelView -> EPUB 파일"""

    def __init__(self, options: ConvertOptions, cover_fetcher: Optional[CoverFetcher] = None):
        """
        Args:
            options: 변환 옵션 (replace_quote, language 등)
            cover_fetcher: 표지 가져오기 (None 이면 기본 설정)
        """
        self.options = options
        self.cover_fetcher = cover_fetcher or CoverFetcher()

    def _text(self, text: str) -> str:
        return quote_replace(text) if self.options.replace_quote else text

    def build(self, view: NovelView) -> Tuple[epub.EpubBook, int]:
        """EpubBook 객체 구성

        Returns:
            (book, chapter_count)
        """
        book = epub.EpubBook()
        book.FOLDER_NAME = 'OEBPS'  # 표준 폴더명 강제 (EbookLib 기본값 EPUB에서 변경)
        book.EPUB_VERSION = 2

        state = _BookState(book=book, has_parts=view.has_parts)

        book.add_item(epub.EpubItem(
            uid="style",
            file_name="Styles/style.css",
            media_type="text/css",
            content=get_css().encode("utf-8"),
        ))

        self.render(view.metadata, state)

        chapter_count = 0
        for part in view.parts:
            self.render(part, state)
            for chapter in part.chapters:
                self.render(chapter, state)
                chapter_count += 1

        self._flush_part_links(state)
        self._add_toc_page(state)

        book.toc = tuple(state.toc)
        book.add_item(epub.EpubNcx())
        book.spine = state.spine

        logger.debug(f"total {chapter_count} chapters.")
        return book, chapter_count

    def render(self, node: Node, state: _BookState) -> _BookState:
        """노드 하나를 book 에 기록"""
        if isinstance(node, MetadataView):
            self._render_metadata(node, state)
        elif isinstance(node, PartView):
            self._render_part(node, state)
        elif isinstance(node, ChapterView):
            self._render_chapter(node, state)
        else:
            raise TypeError(f"Unsupported node: {type(node).__name__}")
        return state

    def _render_metadata(self, metadata: MetadataView, state: _BookState) -> None:
        book = state.book
        lang = self.options.language

        book.set_identifier(f"txt2epub-{uuid.uuid5(uuid.NAMESPACE_URL, metadata.title + '/' + metadata.author)}")
        book.set_title(metadata.title)
        book.set_language(lang)
        if metadata.author:
            book.add_author(metadata.author)

        description = [self._text(p) for p in metadata.description]
        if description:
            book.add_metadata("DC", "description", "\n".join(description))

        if metadata.cover:
            cover = self.cover_fetcher.fetch(metadata.cover)
            if cover:
                book.set_cover("Images/cover.jpg", cover, create_page=False)
                cover_page = create_cover_html(file_name="Text/cover.xhtml", image_path="../Images/cover.jpg")
                book.add_item(cover_page)
                state.spine.append(cover_page)

        intro = create_intro_page(metadata.title, metadata.author, description, lang=lang)
        book.add_item(intro)
        state.spine.append(intro)
        state.toc.append(epub.Link(intro.file_name, "简介", intro.id))
        state.toc_position = len(state.spine)

    def _render_part(self, part: PartView, state: _BookState) -> None:
        self._flush_part_links(state)
        preface = [self._text(p) for p in part.preface]

        if state.has_parts:
            label = self._text(part.label)
            logger.debug(f"writing part: {label}")
            page = create_part_page(
                label, preface, f"Text/P{part.no:02d}.xhtml",
                long_preface=part.is_long_preface, lang=self.options.language,
            )
            state.book.add_item(page)
            state.spine.append(page)
            state.toc.append((epub.Link(page.file_name, label, page.id), state.part_links))
        elif preface:
            page = create_no_part_page("序", preface, lang=self.options.language)
            state.book.add_item(page)
            state.spine.append(page)
            state.toc.append(epub.Link(page.file_name, "序", page.id))

    def _render_chapter(self, chapter: ChapterView, state: _BookState) -> None:
        label = self._text(chapter.label)
        logger.debug(f"writing chapter: {label}")

        if state.has_parts:
            file_name = f"Text/P{chapter.part_no:02d}C{chapter.no:04d}.xhtml"
        else:
            file_name = f"Text/C{chapter.id:04d}.xhtml"

        lines = [
            (line.type, line.text if line.type == "divider" else self._text(line.text))
            for line in chapter.lines
        ]
        page = create_chapter_page(label, lines, file_name, lang=self.options.language)
        state.book.add_item(page)
        state.spine.append(page)

        link = epub.Link(file_name, label, page.id)
        if state.has_parts:
            state.part_links.append(link)
        else:
            state.toc.append(link)

    def _add_toc_page(self, state: _BookState) -> None:
        """NCX 와 같은 구조의 목차 페이지 (output.toc_name) 를 简介 뒤에 삽입"""
        toc_name = self.options.toc_name
        entries = []
        for entry in state.toc:
            if isinstance(entry, tuple):
                link, children = entry
                entries.append((Path(link.href).name, link.title, 0))
                entries.extend((Path(c.href).name, c.title, 1) for c in children)
            else:
                entries.append((Path(entry.href).name, entry.title, 0))

        page = create_toc_page(toc_name, entries, lang=self.options.language)
        state.book.add_item(page)
        state.spine.insert(state.toc_position, page)
        state.book.guide.append({"type": "toc", "title": toc_name, "href": page.file_name})

    def _flush_part_links(self, state: _BookState) -> None:
        # 파트 TOC 튜플이 현재 리스트를 참조하므로 새 리스트로 교체만 하면 됨
        state.part_links = []

    def write(self, view: NovelView, output_path: Union[str, Path]) -> Tuple[Path, int]:
        """EPUB 파일 저장

        Returns:
            (epub_path, chapter_count)
        """
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        book, chapter_count = self.build(view)
        epub.write_epub(str(output_path), book, {})

        logger.info(f"✅ EPUB created: {output_path} ({chapter_count} chapters)")
        return output_path, chapter_count
