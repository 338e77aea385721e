"""배치 변환 테스트

문서 단위 에러 격리, 결과 순서, 출력 경로 검증
"""

from pathlib import Path
from novel_txt2epub.config.loader import Config, build_convert_options
from novel_txt2epub.stages.batch import BatchConverter, BatchReport, ConvertResult
from novel_txt2epub.stages.cover import CoverFetcher

OPTIONS = build_convert_options(Config())

GOOD = "书名: 好\n第一卷 起\n第一章 开始\n正文\n第二章 继续\n正文\n"


class NoCover(CoverFetcher):
    def fetch(self, ref):
        return None


def write(path: Path, text: str) -> Path:
    path.write_text(text, encoding="utf-8")
    return path


def test_output_path(tmp_path):
    converter = BatchConverter(OPTIONS, cover_fetcher=NoCover())
    assert converter.output_path(Path("/novels/a.txt")) == Path("/novels/a.epub")

    converter = BatchConverter(OPTIONS, out_dir=tmp_path, cover_fetcher=NoCover())
    assert converter.output_path(Path("/novels/a?b.txt")) == tmp_path / "ab.epub"


def test_same_stem_does_not_overwrite(tmp_path):
    """폴더만 다른 같은 이름의 입력은 출력 파일이 겹치지 않음"""
    (tmp_path / "a").mkdir()
    (tmp_path / "b").mkdir()
    first = write(tmp_path / "a" / "x.txt", GOOD)
    second = write(tmp_path / "b" / "x.txt", GOOD.replace("第二章 继续\n正文\n", ""))
    out = tmp_path / "out"

    report = BatchConverter(OPTIONS, out_dir=out, max_workers=2, cover_fetcher=NoCover()).run([first, second])

    assert [r.ok for r in report.results] == [True, True]
    assert [r.output for r in report.results] == [out / "x.epub", out / "x (2).epub"]
    assert [r.chapter_count for r in report.results] == [2, 1]
    assert (out / "x.epub").exists() and (out / "x (2).epub").exists()


def test_plan_outputs_skips_taken_names(tmp_path):
    converter = BatchConverter(OPTIONS, out_dir=tmp_path, cover_fetcher=NoCover())
    sources = [Path("a/x.txt"), Path("x (2).txt"), Path("b/x.txt"), Path("c/y.txt")]

    assert converter.plan_outputs(sources) == [
        tmp_path / "x.epub",
        tmp_path / "x (2).epub",
        tmp_path / "x (3).epub",
        tmp_path / "y.epub",
    ]


def test_one_bad_document_does_not_stop_batch(tmp_path):
    good = write(tmp_path / "good.txt", GOOD)
    bad = write(tmp_path / "bad.txt", "作者:\n  - 甲\n  - 乙\n第一章 开始\n")
    missing = tmp_path / "missing.txt"

    report = BatchConverter(OPTIONS, out_dir=tmp_path / "out", max_workers=3, cover_fetcher=NoCover()).run(
        [bad, good, missing]
    )

    assert (report.total, report.success, report.failed) == (3, 1, 2)
    assert [r.source for r in report.results] == [bad, good, missing]

    bad_result, good_result, missing_result = report.results
    assert good_result.ok
    assert good_result.output == tmp_path / "out" / "good.epub"
    assert good_result.output.exists()
    assert good_result.chapter_count == 2
    assert good_result.has_parts is True

    assert not bad_result.ok and "author" in bad_result.error
    assert not missing_result.ok
    assert set(report.errors) == {str(bad), str(missing)}


def test_decode_error_is_isolated(tmp_path):
    broken = tmp_path / "broken.txt"
    broken.write_bytes("第一章 开始\n".encode("utf-8") + b"\xff\n")
    good = write(tmp_path / "good.txt", GOOD)

    report = BatchConverter(OPTIONS, max_workers=2, cover_fetcher=NoCover()).run([broken, good])

    assert report.results[0].error is not None
    assert "at byte" in report.results[0].error
    assert report.results[1].ok
    assert (tmp_path / "good.epub").exists()


def test_same_result_as_sequential(tmp_path):
    sources = [write(tmp_path / f"n{i}.txt", GOOD.replace("好", str(i))) for i in range(4)]

    parallel = BatchConverter(OPTIONS, out_dir=tmp_path / "p", max_workers=4, cover_fetcher=NoCover()).run(sources)
    sequential = BatchConverter(OPTIONS, out_dir=tmp_path / "s", max_workers=1, cover_fetcher=NoCover()).run(sources)

    assert [(r.chapter_count, r.has_parts, r.ok) for r in parallel.results] == \
        [(r.chapter_count, r.has_parts, r.ok) for r in sequential.results]


def test_empty_batch():
    report = BatchConverter(OPTIONS, cover_fetcher=NoCover()).run([])
    assert report.total == 0
    assert report.as_dict() == {"total": 0, "success": 0, "failed": 0, "errors": {}}


def test_report_counts():
    report = BatchReport(results=[
        ConvertResult(source=Path("a.txt")),
        ConvertResult(source=Path("b.txt"), error="boom"),
    ])
    assert (report.total, report.success, report.failed) == (2, 1, 1)
    assert report.errors == {"b.txt": "boom"}
