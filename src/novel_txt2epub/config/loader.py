"""설정 파일 로더 (YAML)

config.yml 을 읽어서 dataclass 로 변환하고, 스캔에 쓰이는 ConvertOptions 를 만든다.
"""

import yaml
from pathlib import Path
from typing import Any, Dict, FrozenSet, List, Optional
from dataclasses import dataclass, field, replace
from novel_txt2epub.structure.pattern import TitlePattern
from novel_txt2epub.utils.logger import get_logger

logger = get_logger(__name__)

_NUMERALS = "0-9０-９零〇一二两三四五六七八九十百千万壹贰叁肆伍陆柒捌玖拾佰仟"

DEFAULT_PART_PATTERN = rf"^第[{_NUMERALS}]+[部卷]\s*(.*)$"
DEFAULT_CHAPTER_PATTERN = rf"^第[{_NUMERALS}]+章\s*(.*)$"
DEFAULT_DIVIDERS = ["---", "***", "＊＊＊"]


@dataclass
class ParsingConfig:
    """구조 스캔 설정"""
    part_pattern: str = DEFAULT_PART_PATTERN
    chapter_pattern: str = DEFAULT_CHAPTER_PATTERN
    dividers: List[str] = field(default_factory=lambda: list(DEFAULT_DIVIDERS))
    replace_quote: bool = True
    encoding: str = "utf-8"


@dataclass
class OutputConfig:
    """EPUB 출력 설정"""
    folder: Optional[str] = None
    language: str = "zh-CN"
    toc_name: str = "目录"


@dataclass
class ProcessingConfig:
    """처리 옵션"""
    max_workers: int = 4


@dataclass
class CoverConfig:
    """표지 다운로드 설정"""
    timeout: int = 10
    max_retries: int = 3
    width: int = 600
    height: int = 900


@dataclass
class LoggingConfig:
    """로깅 설정"""
    file_level: str = "DEBUG"
    console_level: str = "INFO"


@dataclass
class Config:
    """전체 설정"""
    parsing: ParsingConfig = field(default_factory=ParsingConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    processing: ProcessingConfig = field(default_factory=ProcessingConfig)
    cover: CoverConfig = field(default_factory=CoverConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


@dataclass(frozen=True)
class ConvertOptions:
    """모든 문서/워커가 읽기 전용으로 공유하는 변환 옵션

    패턴은 생성 시점에 이미 검증되어 있으므로 이후 코드는 캡처 그룹 존재를 가정한다.
    """
    part_pattern: TitlePattern
    chapter_pattern: TitlePattern
    dividers: FrozenSet[str] = frozenset(DEFAULT_DIVIDERS)
    replace_quote: bool = True
    encoding: str = "utf-8"
    language: str = "zh-CN"
    toc_name: str = "目录"

    def is_divider(self, trimmed_line: str) -> bool:
        return trimmed_line in self.dividers


def _section(data: Dict[str, Any], name: str, cls):
    values = data.get(name) or {}
    if not isinstance(values, dict):
        raise ValueError(f"Config section '{name}' must be a mapping")
    return cls(**values)


def load_config(config_path: Optional[str] = None) -> Config:
    """config.yml 로드

    Args:
        config_path: 설정 파일 경로 (None 이면 기본값)

    Returns:
        Config 객체

    Raises:
        FileNotFoundError: 설정 파일이 없을 때
        yaml.YAMLError: YAML 파싱 에러
    """
    if config_path is None:
        logger.debug("No config file given, using defaults")
        return Config()

    path = Path(config_path)
    if not path.exists():
        logger.error(f"Config file not found: {config_path}")
        raise FileNotFoundError(f"Config file not found: {config_path}")

    logger.debug(f"Loading config from: {config_path}")
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ValueError(f"Config file must contain a mapping: {config_path}")

    config = Config(
        parsing=_section(data, "parsing", ParsingConfig),
        output=_section(data, "output", OutputConfig),
        processing=_section(data, "processing", ProcessingConfig),
        cover=_section(data, "cover", CoverConfig),
        logging=_section(data, "logging", LoggingConfig),
    )

    logger.info(f"✅ Config loaded: {config_path}")
    return config


def override_parsing(config: Config, **overrides: Any) -> Config:
    """CLI 옵션으로 parsing 섹션 일부를 덮어쓴 새 Config 반환 (None 값은 무시)"""
    changes = {k: v for k, v in overrides.items() if v is not None}
    if not changes:
        return config
    return replace(config, parsing=replace(config.parsing, **changes))


def build_convert_options(config: Config) -> ConvertOptions:
    """설정에서 ConvertOptions 생성 (패턴 검증 포함)

    Raises:
        InvalidPatternError: 파트/챕터 패턴이 잘못됨. 어떤 파일도 열기 전에 발생한다.
    """
    parsing = config.parsing
    options = ConvertOptions(
        part_pattern=TitlePattern.compile(parsing.part_pattern),
        chapter_pattern=TitlePattern.compile(parsing.chapter_pattern),
        dividers=frozenset(d.strip() for d in parsing.dividers if d.strip()),
        replace_quote=parsing.replace_quote,
        encoding=parsing.encoding,
        language=config.output.language,
        toc_name=config.output.toc_name,
    )
    logger.debug(f"Convert options: part={options.part_pattern}, chapter={options.chapter_pattern}, "
                 f"dividers={sorted(options.dividers)}")
    return options


def save_config(config: Config, config_path: str = "config/config.yml") -> None:
    """config.yml 저장 (기본 설정 파일 생성용)"""
    path = Path(config_path)
    path.parent.mkdir(parents=True, exist_ok=True)

    data = {
        "parsing": {
            "part_pattern": config.parsing.part_pattern,
            "chapter_pattern": config.parsing.chapter_pattern,
            "dividers": config.parsing.dividers,
            "replace_quote": config.parsing.replace_quote,
            "encoding": config.parsing.encoding,
        },
        "output": {
            "folder": config.output.folder,
            "language": config.output.language,
            "toc_name": config.output.toc_name,
        },
        "processing": {
            "max_workers": config.processing.max_workers,
        },
        "cover": {
            "timeout": config.cover.timeout,
            "max_retries": config.cover.max_retries,
            "width": config.cover.width,
            "height": config.cover.height,
        },
        "logging": {
            "file_level": config.logging.file_level,
            "console_level": config.logging.console_level,
        },
    }

    with open(path, "w", encoding="utf-8") as f:
        yaml.dump(data, f, allow_unicode=True, default_flow_style=False, sort_keys=False)

    logger.info(f"✅ Config saved: {config_path}")
