"""배치 변환

문서마다 독립된 커서/Novel 로 파싱 -> 조립 -> EPUB 저장. 워커 풀에서 병렬 실행한다.
한 문서의 실패는 로그와 결과에만 남고 다른 문서에는 영향을 주지 않는다.
"""

import os
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union
from novel_txt2epub.config.loader import ConvertOptions
from novel_txt2epub.errors import Txt2EpubError
from novel_txt2epub.stages.cover import CoverFetcher
from novel_txt2epub.stages.epub_writer import EPUBGenerator
from novel_txt2epub.structure.assembler import assemble
from novel_txt2epub.structure.scanner import parse_txt
from novel_txt2epub.utils.logger import get_logger
from novel_txt2epub.utils.text_cleaner import safe_file_stem

logger = get_logger(__name__)


def _path_key(path: Path) -> str:
    return os.path.normcase(os.path.abspath(path))


@dataclass
class ConvertResult:
    """문서 하나의 변환 결과"""
    source: Path
    output: Optional[Path] = None
    chapter_count: int = 0
    has_parts: bool = False
    error: Optional[str] = None
    elapsed: float = 0.0

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class BatchReport:
    results: List[ConvertResult] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def success(self) -> int:
        return sum(1 for r in self.results if r.ok)

    @property
    def failed(self) -> int:
        return self.total - self.success

    @property
    def errors(self) -> Dict[str, str]:
        return {str(r.source): r.error for r in self.results if not r.ok}

    def as_dict(self) -> Dict[str, object]:
        return {"total": self.total, "success": self.success, "failed": self.failed, "errors": self.errors}


class BatchConverter:
    """TXT -> EPUB 배치 처리기"""

    def __init__(
        self,
        options: ConvertOptions,
        out_dir: Optional[Union[str, Path]] = None,
        max_workers: int = 4,
        cover_fetcher: Optional[CoverFetcher] = None,
    ):
        """
        Args:
            options: 검증된 변환 옵션 (모든 워커가 공유, 읽기 전용)
            out_dir: 출력 폴더 (None 이면 입력 파일과 같은 폴더)
            max_workers: 워커 수
            cover_fetcher: 표지 가져오기
        """
        self.options = options
        self.out_dir = Path(out_dir) if out_dir else None
        self.max_workers = max(1, max_workers)
        self.generator = EPUBGenerator(options, cover_fetcher)
        logger.debug(f"BatchConverter initialized: workers={self.max_workers}, out_dir={self.out_dir}")

    def output_path(self, source: Path) -> Path:
        folder = self.out_dir or source.parent
        return folder / f"{safe_file_stem(source.stem)}.epub"

    def plan_outputs(self, sources: List[Path]) -> List[Path]:
        """배치 전체의 출력 경로를 미리 정한다

        같은 파일로 모이는 입력(폴더만 다른 같은 이름 등)은 뒤쪽부터 `name (2).epub`,
        `name (3).epub` ... 으로 바꿔서 서로 덮어쓰지 않게 한다.
        """
        taken = set()
        planned = []
        for source in sources:
            path = self.output_path(source)
            candidate, n = path, 1
            while _path_key(candidate) in taken:
                n += 1
                candidate = path.with_name(f"{path.stem} ({n}){path.suffix}")
            if candidate != path:
                logger.warning(f"Output {path} is already used in this batch, writing {source} to {candidate}")
            taken.add(_path_key(candidate))
            planned.append(candidate)
        return planned

    def convert_one(self, source: Union[str, Path], output_path: Optional[Path] = None) -> ConvertResult:
        """문서 하나 변환. 문서 단위 에러는 결과에 담아 반환한다"""
        source = Path(source)
        result = ConvertResult(source=source)
        start = time.perf_counter()

        logger.info(f"converting {source}.")
        try:
            parsed = parse_txt(source, self.options)
            view = assemble(parsed)
            output, chapter_count = self.generator.write(view, output_path or self.output_path(source))
            result.output = output
            result.chapter_count = chapter_count
            result.has_parts = view.has_parts
        except (Txt2EpubError, OSError) as e:
            logger.error(f"Failed to convert {source}. Due to: {e}")
            result.error = str(e)
        finally:
            result.elapsed = time.perf_counter() - start

        if result.ok:
            logger.info(f"finish converting {source}, cost {result.elapsed:.2f}s.")
        return result

    def run(self, sources: Iterable[Union[str, Path]]) -> BatchReport:
        """배치 실행 (결과는 입력 순서대로)"""
        sources = [Path(s) for s in sources]
        report = BatchReport()
        if not sources:
            logger.warning("No files to process")
            return report

        logger.info(f"Batch start: {len(sources)} files, {self.max_workers} workers")

        results: Dict[int, ConvertResult] = {}
        with ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="txt2epub") as pool:
            futures = {
                pool.submit(self.convert_one, src, out): i
                for i, (src, out) in enumerate(zip(sources, self.plan_outputs(sources)))
            }
            for future in as_completed(futures):
                i = futures[future]
                try:
                    results[i] = future.result()
                except Exception as e:
                    # 예상하지 못한 에러도 해당 문서만 실패 처리
                    logger.exception(f"Unexpected error while converting {sources[i]}")
                    results[i] = ConvertResult(source=sources[i], error=f"{type(e).__name__}: {e}")

        report.results = [results[i] for i in range(len(sources))]

        logger.info(f"✅ Batch complete: {report.success} success, {report.failed} failed")
        return report
