"""EPUB XHTML 템플릿 및 CSS 정의

템플릿 레지스트리는 임포트 시 한 번 만들어지는 읽기 전용 매핑이라 워커 스레드 간 공유해도 안전하다.
삽입되는 텍스트는 모두 HTML 이스케이프한다.
"""

from html import escape
from pathlib import Path
from types import MappingProxyType
from typing import Iterable, Sequence
from ebooklib import epub

_PAGE = """<?xml version='1.0' encoding='utf-8'?>
<!DOCTYPE html PUBLIC "-//W3C//DTD XHTML 1.1//EN" "http://www.w3.org/TR/xhtml11/DTD/xhtml11.dtd">
<html xmlns="http://www.w3.org/1999/xhtml" xml:lang="{lang}">
<head>
    <title>{title}</title>
    <link href="../Styles/style.css" rel="stylesheet" type="text/css"/>
</head>
<body>
{body}
</body>
</html>"""

TEMPLATES = MappingProxyType({
    "page": _PAGE,
    "intro": """    <div class="intro">
        <h1>{book_name}</h1>
        <p class="author">{author}</p>
        <h2>简介</h2>
{paragraphs}
    </div>""",
    "part": """    <div class="{css_class}">
        <h1>{label}</h1>
{paragraphs}
    </div>""",
    "no_part": """    <div class="preface">
{paragraphs}
    </div>""",
    "chapter": """    <h2>{label}</h2>
{paragraphs}""",
    "toc": """    <div class="toc">
        <h1>{toc_name}</h1>
{entries}
    </div>""",
    "cover": """<?xml version='1.0' encoding='utf-8'?>
<!DOCTYPE html PUBLIC "-//W3C//DTD XHTML 1.1//EN" "http://www.w3.org/TR/xhtml11/DTD/xhtml11.dtd">
<html xmlns="http://www.w3.org/1999/xhtml">
<head>
    <title>Cover</title>
    <style type="text/css">
        body {{ margin: 0; padding: 0; text-align: center; }}
        div {{ text-align: center; }}
        img {{ max-width: 100%; height: auto; }}
    </style>
</head>
<body>
    <div>
        <img src="{image_path}" alt="Cover"/>
    </div>
</body>
</html>""",
})


def get_css() -> str:
    """기본 스타일 CSS 반환 (중국어 세로 리듬 기준)"""
    return """@namespace epub "http://www.idpf.org/2007/ops";

body {
    font-family: "Noto Serif CJK SC", "Source Han Serif SC", "Songti SC", serif;
    margin: 5%;
    line-height: 1.8;
    text-align: justify;
}

h1 {
    font-size: 1.6em;
    font-weight: bold;
    margin-top: 2em;
    margin-bottom: 1em;
    text-align: center;
    page-break-after: avoid;
}

h2 {
    font-size: 1.3em;
    font-weight: bold;
    margin-top: 1.5em;
    margin-bottom: 0.8em;
    text-align: center;
    page-break-after: avoid;
}

p {
    margin-top: 0.3em;
    margin-bottom: 0.3em;
    text-indent: 2em;
}

hr.divider {
    border: none;
    text-align: center;
    margin: 1.5em 0;
}

hr.divider:after {
    content: "＊　＊　＊";
}

.intro .author {
    text-align: center;
    text-indent: 0;
    color: #555;
}

.toc p {
    text-indent: 0;
    margin: 0.4em 0;
}

.toc p.toc-child {
    margin-left: 2em;
}

.part-title {
    text-align: center;
    margin-top: 30%;
}

/* 서문이 긴 파트는 제목 페이지처럼 가운데 정렬하지 않음 */
.part-title.long-preface {
    text-align: justify;
    margin-top: 5%;
}

img {
    max-width: 100%;
    height: auto;
}
"""


def render_template(name: str, **context: str) -> str:
    return TEMPLATES[name].format(**context)


def paragraphs_html(lines: Iterable[str], indent: str = "        ") -> str:
    return "\n".join(f"{indent}<p>{escape(line)}</p>" for line in lines)


def _page_item(title: str, body: str, file_name: str, lang: str) -> epub.EpubItem:
    content = render_template("page", lang=lang, title=escape(title), body=body)
    return epub.EpubItem(
        uid=Path(file_name).stem,
        file_name=file_name,
        media_type="application/xhtml+xml",
        content=content.encode("utf-8"),
    )


def create_intro_page(book_name: str, author: str, description: Sequence[str], file_name: str = "Text/intro.xhtml",
                      lang: str = "zh-CN") -> epub.EpubItem:
    """简介 페이지 생성"""
    body = render_template(
        "intro",
        book_name=escape(book_name),
        author=escape(author),
        paragraphs=paragraphs_html(description),
    )
    return _page_item("简介", body, file_name, lang)


def create_part_page(label: str, preface: Sequence[str], file_name: str, long_preface: bool = False,
                     lang: str = "zh-CN") -> epub.EpubItem:
    """권/부(Part) 타이틀 페이지 생성"""
    css_class = "part-title long-preface" if long_preface else "part-title"
    body = render_template(
        "part",
        css_class=css_class,
        label=escape(label),
        paragraphs=paragraphs_html(preface),
    )
    return _page_item(label, body, file_name, lang)


def create_no_part_page(title: str, preface: Sequence[str], file_name: str = "Text/preface.xhtml",
                        lang: str = "zh-CN") -> epub.EpubItem:
    """파트가 없는 문서의 서문 페이지 생성"""
    body = render_template("no_part", paragraphs=paragraphs_html(preface))
    return _page_item(title, body, file_name, lang)


def create_chapter_page(label: str, lines: Sequence[tuple], file_name: str, lang: str = "zh-CN") -> epub.EpubItem:
    """챕터 본문 페이지 생성

    Args:
        label: 챕터 제목 (예: 第一章 开始)
        lines: (type, text) 목록. type 이 "divider" 이면 구분선
        file_name: EPUB 내부 경로
    """
    body_lines = []
    for line_type, text in lines:
        if line_type == "divider":
            body_lines.append('    <hr class="divider"/>')
        else:
            body_lines.append(f"    <p>{escape(text)}</p>")

    body = render_template("chapter", label=escape(label), paragraphs="\n".join(body_lines))
    return _page_item(label, body, file_name, lang)


def create_toc_page(toc_name: str, entries: Sequence[tuple], file_name: str = "Text/toc.xhtml",
                    lang: str = "zh-CN") -> epub.EpubItem:
    """책 안의 목차 페이지 생성

    Args:
        toc_name: 목차 제목 (output.toc_name)
        entries: (href, label, depth) 목록. href 는 이 페이지 기준 상대 경로, depth 1 은 파트 아래 챕터
    """
    rows = []
    for href, label, depth in entries:
        css = ' class="toc-child"' if depth else ""
        rows.append(f'        <p{css}><a href="{escape(href)}">{escape(label)}</a></p>')

    body = render_template("toc", toc_name=escape(toc_name), entries="\n".join(rows))
    return _page_item(toc_name, body, file_name, lang)


def create_cover_html(file_name: str = "Text/cover.xhtml", image_path: str = "../Images/cover.jpg") -> epub.EpubItem:
    """표지용 HTML 페이지 생성"""
    content = render_template("cover", image_path=image_path)

    return epub.EpubItem(
        uid=Path(file_name).stem,
        file_name=file_name,
        media_type="application/xhtml+xml",
        content=content.encode("utf-8"),
    )
