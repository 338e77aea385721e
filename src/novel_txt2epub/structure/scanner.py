"""TXT 소설 구조 스캐너

하나의 커서 위에서 순서대로 실행되는 다중 패스 스캔:
    1. 메타데이터 블록 (첫 파트/챕터 제목 줄 이전까지)
    2. 파트 경계 (파일 전체, 지시어 기록 포함)
    3. 파트별 챕터 스캔 (각 파트 시작 오프셋으로 seek)

파트의 끝을 알아야 챕터를 스캔할 수 있으므로 패스를 합치지 않는다.
파일은 줄 단위로만 읽으며 전체를 메모리에 올리지 않는다.
"""

import io
from pathlib import Path
from typing import BinaryIO, List, Optional, Union
import yaml
from novel_txt2epub.config.loader import ConvertOptions
from novel_txt2epub.errors import MetadataParseError
from novel_txt2epub.structure.cursor import LineCursor, detect_encoding
from novel_txt2epub.structure.directives import NovelDirective
from novel_txt2epub.structure.models import (
    Line, LineType, Metadata, Novel, ParsedNovel, Part
)
from novel_txt2epub.utils.logger import get_logger

logger = get_logger(__name__)


class NovelScanner:
    """LineCursor 하나로 Novel 트리를 만드는 스캐너 (문서당 1개, 스레드 간 공유 금지)"""

    def __init__(self, cursor: LineCursor, options: ConvertOptions):
        """
        Args:
            cursor: 문서 커서
            options: 검증된 변환 옵션 (읽기 전용)
        """
        self.cursor = cursor
        self.options = options
        # 메타데이터 블록이 끝난 오프셋 (첫 제목 줄 시작 또는 EOF)
        self.metadata_end = 0
        # 메타데이터 구간에서 만난 지시어 (파트가 없는 문서의 암묵 파트에 적용)
        self.leading_directives: List[NovelDirective] = []

    def scan(self) -> ParsedNovel:
        """전체 패스 실행"""
        novel = Novel()

        novel.metadata = self.scan_metadata()
        self.scan_part_ranges(novel)

        has_parts = bool(novel.parts)
        if not has_parts:
            logger.info("No part has been found. Treat whole novel as a part.")
            self.make_implicit_part(novel)

        global_chapter_no = 0
        for part in novel.parts:
            global_chapter_no = self.scan_chapters(part, global_chapter_no)

        logger.debug(f"total {global_chapter_no} chapters in {len(novel.parts)} parts.")
        return ParsedNovel(novel=novel, has_parts=has_parts, source=self.cursor.name, encoding=self.cursor.encoding)

    def scan_metadata(self) -> Metadata:
        """Pass 1: 첫 파트/챕터 제목 줄 직전까지를 YAML 레코드로 해석

        Raises:
            MetadataParseError: 블록이 YAML 매핑이 아님
        """
        logger.debug("scanning novel metadata.")
        cursor = self.cursor
        cursor.rewind()
        self.leading_directives = []

        block: List[str] = []
        while True:
            line, eof = cursor.read_line()
            if eof:
                self.metadata_end = cursor.position()
                break

            trimmed = line.strip()

            # 지시어는 어느 텍스트에도 포함되지 않음
            directive = NovelDirective.parse(trimmed)
            if directive is not None:
                self.leading_directives.append(directive)
                continue

            if self.options.part_pattern.is_match(trimmed) or self.options.chapter_pattern.is_match(trimmed):
                self.metadata_end = cursor.line_start()
                break

            block.append(line)

        metadata = self._parse_metadata_block("".join(block))
        logger.debug(f"metadata: {metadata}")
        return metadata

    def _parse_metadata_block(self, text: str) -> Metadata:
        if not text.strip():
            return Metadata()

        # BaseLoader: 값은 적힌 그대로 문자열 (010, no, 3.10 등 타입 추정 없음)
        try:
            record = yaml.load(text, Loader=yaml.BaseLoader)
        except yaml.YAMLError as e:
            raise MetadataParseError(self.cursor.name, f"metadata block is not valid YAML ({e})", offset=0) from e

        if record is None:
            return Metadata()
        if not isinstance(record, dict):
            raise MetadataParseError(
                self.cursor.name,
                f"metadata block must be key/value pairs, got {type(record).__name__}",
                offset=0,
            )

        try:
            return Metadata.from_record(record)
        except ValueError as e:
            raise MetadataParseError(self.cursor.name, str(e), offset=0) from e

    def scan_part_ranges(self, novel: Novel) -> None:
        """Pass 2: 파트 제목 줄을 찾아 각 파트의 [start, end) 범위 기록

        지시어 줄은 제목 패턴과 겹쳐도 제목으로 보지 않고 직전에 열린 파트에 기록한다.
        파트/챕터 패턴이 동시에 맞는 줄은 항상 파트로 처리된다.
        """
        logger.debug("scanning novel parts.")
        cursor = self.cursor
        cursor.rewind()

        part_no = 1
        first_marker: Optional[int] = None

        while True:
            line, eof = cursor.read_line()
            if eof:
                break

            trimmed = line.strip()

            directive = NovelDirective.parse(trimmed)
            if directive is not None:
                if novel.parts:
                    novel.parts[-1].apply_directive(directive)
                else:
                    logger.debug(f"directive {directive.value} before any part, ignored for now")
                continue

            title = self.options.part_pattern.match_title(trimmed)
            if title is None:
                continue

            line_start = cursor.line_start()
            if self.options.chapter_pattern.is_match(trimmed):
                logger.warning(f"line at byte {line_start} matches both part and chapter patterns, "
                               f"treated as part: {trimmed!r} ({cursor.name})")
            if novel.parts:
                novel.parts[-1].end = line_start
            else:
                first_marker = line_start

            novel.parts.append(Part(
                no=part_no,
                title=title,
                raw_title=line.rstrip("\r\n"),
                start=cursor.position(),
            ))
            part_no += 1

        if novel.parts:
            novel.parts[-1].end = cursor.position()

            if first_marker is not None and first_marker > self.metadata_end:
                logger.warning(
                    f"{first_marker - self.metadata_end} bytes between metadata and the first part are not "
                    f"inside any part and will be skipped ({cursor.name})"
                )

        logger.debug(f"found {len(novel.parts)} parts: {[p.title for p in novel.parts]}")

    def make_implicit_part(self, novel: Novel) -> Part:
        """파트 제목이 없는 문서: 메타데이터 이후 전체를 번호 0 의 파트로"""
        part = Part(
            no=0,
            title="",
            raw_title="",
            start=self.metadata_end,
            end=self.cursor.end_offset(),
        )
        for directive in self.leading_directives:
            part.apply_directive(directive)
        novel.parts.append(part)
        return part

    def scan_chapters(self, part: Part, global_chapter_no: int) -> int:
        """Pass 3: 파트 범위 안에서 챕터/서문/본문 분류

        Args:
            part: 대상 파트 (start/end 가 정해져 있어야 함)
            global_chapter_no: 지금까지의 전역 챕터 수

        Returns:
            갱신된 전역 챕터 수
        """
        if part.is_implicit:
            logger.debug("scanning novel chapters.")
        else:
            logger.debug(f"scanning novel chapter of part: {part.title}.")

        cursor = self.cursor
        cursor.seek(part.start)

        chapter_pattern = self.options.chapter_pattern

        while cursor.position() < part.end:
            line, eof = cursor.read_line()
            if eof:
                break

            trimmed = line.strip()
            if not trimmed:
                continue

            directive = NovelDirective.parse(trimmed)
            if directive is not None:
                part.apply_directive(directive)
                continue

            title = chapter_pattern.match_title(trimmed)
            if title is not None:
                global_chapter_no += 1
                part.open_chapter(
                    global_no=global_chapter_no,
                    title=title,
                    raw_title=line.rstrip("\r\n"),
                    marker_start=cursor.line_start(),
                    start=cursor.position(),
                )
            elif part.current_chapter is None:
                part.preface.append(trimmed)
            else:
                line_type = LineType.DIVIDER if self.options.is_divider(trimmed) else LineType.CONTENT
                part.current_chapter.content.append(Line(line_type=line_type, content=trimmed))

        part.close_current(cursor.position())

        logger.debug(f"found {len(part.chapters)} chapters.")
        return global_chapter_no


def parse_stream(stream: BinaryIO, options: ConvertOptions, name: str = "<stream>", encoding: Optional[str] = None) -> ParsedNovel:
    """seek 가능한 바이너리 스트림 파싱"""
    cursor = LineCursor(stream, encoding=encoding or options.encoding, name=name)
    return NovelScanner(cursor, options).scan()


def parse_txt(file_path: Union[str, Path], options: ConvertOptions) -> ParsedNovel:
    """TXT 파일 하나를 파싱

    Raises:
        DocumentReadError: 열기/읽기/디코딩 실패
        MetadataParseError: 메타데이터 블록 해석 실패
    """
    encoding = options.encoding
    if encoding.lower() == "auto":
        encoding = detect_encoding(file_path)

    logger.debug(f"parsing txt: {file_path} ({encoding})")
    with LineCursor.open(file_path, encoding=encoding) as cursor:
        return NovelScanner(cursor, options).scan()


def parse_text(text: str, options: ConvertOptions, name: str = "<text>") -> ParsedNovel:
    """문자열 파싱 (UTF-8 로 인코딩해서 스캔)"""
    return parse_stream(io.BytesIO(text.encode("utf-8")), options, name=name, encoding="utf-8")
