"""구조 스캐너 테스트

메타데이터 / 파트 경계 / 챕터 분류 / 지시어 / 번호 규칙 검증
"""

import io
import pytest
from novel_txt2epub.config.loader import Config, ParsingConfig, build_convert_options
from novel_txt2epub.errors import DocumentReadError, MetadataParseError
from novel_txt2epub.structure.cursor import LineCursor
from novel_txt2epub.structure.models import LineType, Metadata
from novel_txt2epub.structure.scanner import NovelScanner, parse_text, parse_txt


def make_options(**parsing):
    return build_convert_options(Config(parsing=ParsingConfig(**parsing)))


OPTIONS = make_options()

MULTI_PART = """书名: 测试
作者: 某某

第一卷 起
卷首语
第一章 开始
正文一
第二章 继续
正文二
第二卷 承
第一章 再起
正文三
第二章 又起
正文四
第三章 终
正文五
"""


def test_scenario_a_metadata_part_chapter():
    """메타데이터 + 파트 1개 + 챕터 1개"""
    parsed = parse_text("书名: X\n作者: Y\n第一卷 起\n第一章 开始\n正文\n", OPTIONS)
    novel = parsed.novel

    assert novel.metadata == Metadata(book_name="X", author="Y")
    assert parsed.has_parts is True
    assert len(novel.parts) == 1

    part = novel.parts[0]
    assert (part.no, part.title) == (1, "起")
    assert part.raw_title == "第一卷 起"
    assert part.preface == []

    assert len(part.chapters) == 1
    chapter = part.chapters[0]
    assert (chapter.id, chapter.no, chapter.part_no) == (1, 1, 1)
    assert chapter.title == "开始"
    assert [line.content for line in chapter.content] == ["正文"]
    assert all(line.line_type is LineType.CONTENT for line in chapter.content)


def test_scenario_a_byte_ranges():
    """파트/챕터 범위는 제목 줄 바로 뒤에서 시작"""
    text = "书名: X\n作者: Y\n第一卷 起\n第一章 开始\n正文\n"
    parsed = parse_text(text, OPTIONS)
    data = text.encode("utf-8")

    part = parsed.novel.parts[0]
    chapter = part.chapters[0]
    assert part.start == data.index("第一章".encode("utf-8"))
    assert part.end == len(data)
    assert chapter.start == data.index("正文".encode("utf-8"))
    assert chapter.end == len(data)


def test_scenario_b_no_part_marker():
    """파트 제목이 없으면 번호 0 의 암묵 파트 하나"""
    parsed = parse_text("第一章 开始\n正文\n", OPTIONS)
    novel = parsed.novel

    assert parsed.has_parts is False
    assert len(novel.parts) == 1
    part = novel.parts[0]
    assert part.no == 0
    assert part.title == "" and part.raw_title == ""
    assert part.start == 0

    assert len(part.chapters) == 1
    chapter = part.chapters[0]
    assert (chapter.id, chapter.no, chapter.part_no) == (1, 1, 0)
    assert novel.metadata == Metadata()


def test_implicit_part_starts_after_metadata():
    text = "书名: X\n第一章 开始\n正文\n"
    parsed = parse_text(text, OPTIONS)
    part = parsed.novel.parts[0]

    assert part.start == len("书名: X\n".encode("utf-8"))
    assert part.end == len(text.encode("utf-8"))
    assert parsed.novel.metadata.book_name == "X"


def test_scenario_c_divider():
    """구분선은 trim 후 정확히 일치할 때만"""
    text = "第一章 开始\n正文\n---\n  ---  \n----\n-- -\n正文\n"
    chapter = parse_text(text, OPTIONS).novel.parts[0].chapters[0]

    types = [(line.line_type, line.content) for line in chapter.content]
    assert types == [
        (LineType.CONTENT, "正文"),
        (LineType.DIVIDER, "---"),
        (LineType.DIVIDER, "---"),
        (LineType.CONTENT, "----"),
        (LineType.CONTENT, "-- -"),
        (LineType.CONTENT, "正文"),
    ]


def test_divider_is_case_sensitive():
    options = make_options(dividers=["* * *", "END"])
    chapter = parse_text("第一章 开始\nEND\nend\n* * *\n", options).novel.parts[0].chapters[0]

    assert [line.is_divider for line in chapter.content] == [True, False, True]


def test_scenario_d_long_preface_directive():
    """지시어 줄은 서문에서 빠지고 파트 플래그만 켠다"""
    text = "第一卷 起\n[LongPreface]\n卷首语\n第一章 开始\n正文\n第二卷 承\n第二章 x\n"
    parsed = parse_text(text, OPTIONS)
    first, second = parsed.novel.parts

    assert first.preface == ["卷首语"]
    assert first.is_long_preface is True
    assert second.is_long_preface is False


def test_directive_never_in_content():
    text = "第一卷 起\n第一章 开始\n正文\n[LongPreface]\n正文二\n"
    part = parse_text(text, OPTIONS).novel.parts[0]

    contents = [line.content for line in part.chapters[0].content]
    assert "[LongPreface]" not in contents
    assert contents == ["正文", "正文二"]
    assert part.is_long_preface is True


def test_unknown_bracket_text_is_ordinary():
    text = "第一卷 起\n[ShortPreface]\n[LongPreface] 多余\n第一章 开始\n"
    part = parse_text(text, OPTIONS).novel.parts[0]

    assert part.preface == ["[ShortPreface]", "[LongPreface] 多余"]
    assert part.is_long_preface is False


def test_directive_in_document_without_parts():
    parsed = parse_text("[LongPreface]\n第一章 开始\n正文\n", OPTIONS)
    part = parsed.novel.parts[0]

    assert parsed.has_parts is False
    assert part.is_long_preface is True
    assert part.preface == []
    assert parsed.novel.metadata == Metadata()


def test_directive_matching_title_pattern_is_not_a_marker():
    """지시어는 제목 패턴과 겹쳐도 제목이 아님"""
    options = make_options(part_pattern=r"^\[(.+)\]$", chapter_pattern=r"^#\s*(.*)$")
    parsed = parse_text("[卷一]\n[LongPreface]\n# 一\n正文\n", options)

    assert [p.title for p in parsed.novel.parts] == ["卷一"]
    assert parsed.novel.parts[0].is_long_preface is True


def test_part_pattern_takes_precedence_over_chapter_pattern():
    options = make_options(part_pattern=r"^##\s*(.*)$", chapter_pattern=r"^#+\s*(.*)$")
    parsed = parse_text("## Book\n# One\ntext\n## Two\n# Three\n", options)
    novel = parsed.novel

    assert [p.title for p in novel.parts] == ["Book", "Two"]
    assert [c.title for c in novel.iter_chapters()] == ["One", "Three"]


def test_global_and_local_numbering():
    parsed = parse_text(MULTI_PART, OPTIONS)
    chapters = list(parsed.novel.iter_chapters())

    assert [c.id for c in chapters] == [1, 2, 3, 4, 5]
    assert [[c.no for c in p.chapters] for p in parsed.novel.parts] == [[1, 2], [1, 2, 3]]
    assert [c.part_no for c in chapters] == [1, 1, 2, 2, 2]
    assert [p.no for p in parsed.novel.parts] == [1, 2]


def test_preface_and_content_classification():
    parsed = parse_text(MULTI_PART, OPTIONS)
    first, second = parsed.novel.parts

    assert first.preface == ["卷首语"]
    assert second.preface == []
    assert [line.content for line in first.chapters[1].content] == ["正文二"]
    assert [line.content for line in second.chapters[2].content] == ["正文五"]


def test_chapter_ranges_are_contiguous():
    text = MULTI_PART
    parsed = parse_text(text, OPTIONS)
    data = text.encode("utf-8")

    for part in parsed.novel.parts:
        for prev, nxt in zip(part.chapters, part.chapters[1:]):
            assert prev.end < nxt.start
            assert data[prev.end:nxt.start].decode("utf-8").strip() == nxt.raw_title
        assert part.chapters[-1].end == part.end

    first, second = parsed.novel.parts
    assert data[first.end:second.start].decode("utf-8").strip() == "第二卷 承"


def test_blank_lines_are_skipped():
    text = "第一卷 起\n\n   \n序\n\n第一章 开始\n\n正文\n　　\n"
    part = parse_text(text, OPTIONS).novel.parts[0]

    assert part.preface == ["序"]
    assert [line.content for line in part.chapters[0].content] == ["正文"]


def test_lines_are_trimmed():
    text = "第一章 开始\n　　他说。  \r\n"
    chapter = parse_text(text, OPTIONS).novel.parts[0].chapters[0]

    assert chapter.content[0].content == "他说。"


def test_empty_part_between_markers():
    text = "第一卷 甲\n第二卷 乙\n第一章 开始\n正文\n"
    parsed = parse_text(text, OPTIONS)
    first, second = parsed.novel.parts

    assert first.chapters == [] and first.preface == []
    assert first.start == first.end
    assert [(c.id, c.no) for c in second.chapters] == [(1, 1)]


def test_chapters_before_first_part_are_skipped():
    text = "第一章 楔子\n文字\n第一卷 起\n第二章 开始\n正文\n"
    parsed = parse_text(text, OPTIONS)

    assert parsed.has_parts is True
    assert [c.title for c in parsed.novel.iter_chapters()] == ["开始"]
    assert parsed.novel.parts[0].chapters[0].id == 1


def test_document_without_chapters():
    parsed = parse_text("书名: X\n", OPTIONS)

    assert parsed.has_parts is False
    assert parsed.novel.parts[0].chapters == []
    assert parsed.novel.metadata.book_name == "X"


def test_metadata_aliases_and_description():
    text = "book_name: Name\n作者: 作者甲\n封面: cover.jpg\n简介:\n  - 第一段\n  - 第二段\nextra: ignored\n第一章 开始\n"
    metadata = parse_text(text, OPTIONS).novel.metadata

    assert metadata.book_name == "Name"
    assert metadata.author == "作者甲"
    assert metadata.cover == "cover.jpg"
    assert metadata.description == ["第一段", "第二段"]


def test_metadata_values_kept_as_written():
    """YAML 타입 추정 없이 적힌 문자열 그대로"""
    text = "书名: 010\n作者: no\n封面: 12:30\n简介:\n  - 3.10\n  - on\n第一章 开始\n正文\n"
    metadata = parse_text(text, OPTIONS).novel.metadata

    assert metadata.book_name == "010"
    assert metadata.author == "no"
    assert metadata.cover == "12:30"
    assert metadata.description == ["3.10", "on"]


def test_metadata_empty_value_is_missing():
    metadata = parse_text("书名: X\n封面:\n第一章 开始\n", OPTIONS).novel.metadata

    assert metadata.book_name == "X"
    assert metadata.cover is None


def test_metadata_not_a_record():
    with pytest.raises(MetadataParseError) as exc:
        parse_text("这是一段没有键值的正文。\n第一章 开始\n正文\n", OPTIONS, name="plain.txt")

    assert exc.value.document == "plain.txt"
    assert exc.value.offset == 0


def test_metadata_invalid_yaml():
    with pytest.raises(MetadataParseError):
        parse_text("书名: [未闭合\n第一章 开始\n", OPTIONS)


def test_metadata_wrong_shape():
    with pytest.raises(MetadataParseError):
        parse_text("作者:\n  name: 某某\n第一章 开始\n", OPTIONS)


def test_idempotent_rescan():
    """같은 스트림을 두 번 스캔해도 동일한 트리"""
    stream = io.BytesIO(MULTI_PART.encode("utf-8"))
    scanner = NovelScanner(LineCursor(stream, name="same"), OPTIONS)

    first = scanner.scan()
    second = scanner.scan()
    assert first == second

    assert parse_text(MULTI_PART, OPTIONS) == parse_text(MULTI_PART, OPTIONS)


def test_parse_txt_from_file(tmp_path):
    path = tmp_path / "novel.txt"
    path.write_bytes(MULTI_PART.replace("\n", "\r\n").encode("utf-8"))

    parsed = parse_txt(path, OPTIONS)
    assert parsed.source == str(path)
    assert parsed.novel.chapter_count == 5
    assert parsed.novel.parts[0].chapters[0].raw_title == "第一章 开始"


def test_parse_txt_decode_error(tmp_path):
    path = tmp_path / "broken.txt"
    path.write_bytes("第一章 开始\n".encode("utf-8") + b"\xff\xfe\n")

    with pytest.raises(DocumentReadError) as exc:
        parse_txt(path, OPTIONS)
    assert exc.value.offset == len("第一章 开始\n".encode("utf-8"))


def test_parse_txt_missing_file(tmp_path):
    with pytest.raises(DocumentReadError):
        parse_txt(tmp_path / "missing.txt", OPTIONS)


def test_parse_txt_gbk(tmp_path):
    path = tmp_path / "gbk.txt"
    path.write_bytes("第一卷 起\n第一章 开始\n正文\n".encode("gbk"))

    parsed = parse_txt(path, make_options(encoding="gbk"))
    assert parsed.novel.parts[0].title == "起"
    assert parsed.novel.parts[0].chapters[0].content[0].content == "正文"
