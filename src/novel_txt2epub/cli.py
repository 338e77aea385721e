"""CLI 인터페이스

Typer 기반 명령줄 인터페이스, Rich 기반 출력
"""

import glob
import json
from pathlib import Path
from typing import List, Optional
import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from novel_txt2epub.config.loader import (
    Config, build_convert_options, load_config, override_parsing, save_config
)
from novel_txt2epub.errors import InvalidPatternError, Txt2EpubError
from novel_txt2epub.stages.batch import BatchConverter
from novel_txt2epub.stages.cover import CoverFetcher
from novel_txt2epub.structure.assembler import assemble, outline
from novel_txt2epub.structure.scanner import parse_txt
from novel_txt2epub.utils.logger import get_logger, setup_logging

logger = get_logger(__name__)
console = Console()
app = typer.Typer(help="txt2epub - TXT 소설을 EPUB 으로 변환")


def expand_inputs(files: List[str]) -> List[Path]:
    """glob 패턴 확장. 매칭이 없는 인자는 그대로 사용 (이후 열기 실패로 보고됨)"""
    paths: List[Path] = []
    for item in files:
        matches = sorted(glob.glob(item)) if glob.has_magic(item) else []
        if matches:
            paths.extend(Path(m) for m in matches)
        else:
            paths.append(Path(item))
    return paths


def _load(config_path: Optional[str], **parsing_overrides) -> Config:
    try:
        config = load_config(config_path)
    except (FileNotFoundError, ValueError, TypeError) as e:
        console.print(f"[red]Config error:[/red] {e}")
        raise typer.Exit(code=2)
    return override_parsing(config, **parsing_overrides)


@app.command()
def convert(
    files: List[str] = typer.Argument(..., help="변환할 TXT 파일 (glob 패턴 가능)"),
    out_dir: Optional[Path] = typer.Option(None, "--out-dir", "-o", help="출력 폴더"),
    config_path: Optional[str] = typer.Option(None, "--config", "-c", help="config.yml 경로"),
    part_pattern: Optional[str] = typer.Option(None, "--part-pattern", help="파트 제목 정규식 (캡처 그룹 1개 이상)"),
    chapter_pattern: Optional[str] = typer.Option(None, "--chapter-pattern", help="챕터 제목 정규식 (캡처 그룹 1개 이상)"),
    divider: Optional[List[str]] = typer.Option(None, "--divider", "-d", help="구분선 문자열 (여러 번 지정 가능)"),
    replace_quote: Optional[bool] = typer.Option(None, "--replace-quote/--no-replace-quote", help="인용부호 치환"),
    encoding: Optional[str] = typer.Option(None, "--encoding", "-e", help="입력 인코딩 (auto = 자동 감지)"),
    workers: Optional[int] = typer.Option(None, "--workers", "-w", help="병렬 워커 수"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="DEBUG 로그를 콘솔에 출력"),
):
    """TXT -> EPUB 변환"""
    config = _load(
        config_path,
        part_pattern=part_pattern,
        chapter_pattern=chapter_pattern,
        dividers=list(divider) if divider else None,
        replace_quote=replace_quote,
        encoding=encoding,
    )
    if verbose or config_path:
        try:
            setup_logging(config.logging.file_level, "DEBUG" if verbose else config.logging.console_level)
        except ValueError as e:
            console.print(f"[red]Config error:[/red] {e}")
            raise typer.Exit(code=2)

    try:
        options = build_convert_options(config)
    except InvalidPatternError as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        raise typer.Exit(code=2)

    console.print(Panel.fit("📖 TXT -> EPUB", style="bold blue"))

    converter = BatchConverter(
        options,
        out_dir=out_dir or config.output.folder,
        max_workers=workers or config.processing.max_workers,
        cover_fetcher=CoverFetcher(config.cover),
    )
    report = converter.run(expand_inputs(files))

    table = Table(title="변환 결과")
    table.add_column("파일", style="cyan")
    table.add_column("챕터", style="green", justify="right")
    table.add_column("파트", style="yellow")
    table.add_column("결과")
    for r in report.results:
        if r.ok:
            table.add_row(r.source.name, str(r.chapter_count), "yes" if r.has_parts else "no", f"[green]{r.output}[/green]")
        else:
            table.add_row(r.source.name, "-", "-", f"[red]{r.error}[/red]")
    console.print(table)
    console.print(f"total {report.total}, success {report.success}, failed {report.failed}")

    if report.failed:
        raise typer.Exit(code=1)


@app.command()
def inspect(
    file: Path = typer.Argument(..., help="검사할 TXT 파일"),
    config_path: Optional[str] = typer.Option(None, "--config", "-c", help="config.yml 경로"),
    part_pattern: Optional[str] = typer.Option(None, "--part-pattern", help="파트 제목 정규식"),
    chapter_pattern: Optional[str] = typer.Option(None, "--chapter-pattern", help="챕터 제목 정규식"),
    encoding: Optional[str] = typer.Option(None, "--encoding", "-e", help="입력 인코딩 (auto = 자동 감지)"),
    as_json: bool = typer.Option(False, "--json", help="전체 구조를 JSON 으로 출력"),
):
    """파싱만 수행하고 구조를 출력 (패턴 확인용)"""
    config = _load(config_path, part_pattern=part_pattern, chapter_pattern=chapter_pattern, encoding=encoding)

    try:
        options = build_convert_options(config)
    except InvalidPatternError as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        raise typer.Exit(code=2)

    try:
        view = assemble(parse_txt(file, options))
    except Txt2EpubError as e:
        console.print(f"[red]Failed to parse {file}:[/red] {e}")
        raise typer.Exit(code=1)

    if as_json:
        typer.echo(json.dumps(view.to_dict(), ensure_ascii=False, indent=2))
        return

    console.print(Panel.fit(f"{view.metadata.title or file.name} / {view.metadata.author or '-'}", style="bold blue"))

    table = Table(title="구조")
    table.add_column("No", style="cyan", justify="right")
    table.add_column("Part", style="green")
    table.add_column("Chapters", justify="right")
    table.add_column("Range")
    table.add_column("Preface", justify="right")
    table.add_column("LongPreface")
    for row in outline(view):
        table.add_row(
            str(row["no"]), row["label"], str(row["chapters"]), row["range"],
            str(row["preface"]), "yes" if row["long_preface"] else "no",
        )
    console.print(table)
    console.print(f"has parts: {'yes' if view.has_parts else 'no'}, chapters: {view.chapter_count}")


@app.command("init-config")
def init_config(
    path: str = typer.Argument("config/config.yml", help="생성할 설정 파일 경로"),
    force: bool = typer.Option(False, "--force", "-f", help="기존 파일 덮어쓰기"),
):
    """기본 설정 파일 생성"""
    if Path(path).exists() and not force:
        console.print(f"[yellow]{path} already exists (use --force)[/yellow]")
        raise typer.Exit(code=1)

    save_config(Config(), path)
    console.print(f"✅ [green]{path}[/green]")


def main():
    app()


if __name__ == "__main__":
    main()
