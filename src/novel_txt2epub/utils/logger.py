"""로깅 초기화

`from novel_txt2epub.utils.logger import get_logger` 후 모듈마다 `get_logger(__name__)`.
임포트 시점에 기본 설정(파일 DEBUG + 콘솔 INFO)이 적용되고, CLI 가 config.yml 의
logging 섹션이나 --verbose 로 다시 호출할 수 있다.
"""

import logging
import sys
from pathlib import Path
from datetime import datetime
from typing import Optional

LOG_DIR = Path("data/logs")

# 워커 스레드 구분을 위해 파일 로그에는 threadName 포함
FILE_FORMAT = "%(asctime)s | %(levelname)-8s | %(threadName)s | %(name)s:%(lineno)d | %(message)s"
CONSOLE_FORMAT = "%(levelname)-8s | %(name)s | %(message)s"


def _to_level(name: str) -> int:
    level = logging.getLevelName(name.upper())
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {name}")
    return level


def setup_logging(level: str = "DEBUG", console_level: str = "INFO", log_dir: Optional[Path] = None,
                  to_file: bool = True) -> None:
    """루트 로거 핸들러 (재)구성

    Args:
        level: 파일 로그 레벨
        console_level: stdout 로그 레벨
        log_dir: 로그 폴더 (기본 data/logs, 파일명은 날짜)
        to_file: False 면 콘솔 핸들러만

    Raises:
        ValueError: 알 수 없는 레벨 이름
    """
    file_level = _to_level(level)
    stdout_level = _to_level(console_level)

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    log_file = None
    if to_file:
        folder = Path(log_dir) if log_dir else LOG_DIR
        folder.mkdir(parents=True, exist_ok=True)
        log_file = folder / f"{datetime.now().strftime('%Y-%m-%d')}.log"

        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(file_level)
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
        root.addHandler(file_handler)

    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setLevel(stdout_level)
    stdout_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT))
    root.addHandler(stdout_handler)

    root.debug(f"Logging ready: file={log_file}, file_level={level}, console_level={console_level}")


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """모듈 로거

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.debug("scanning novel parts.")
    """
    return logging.getLogger(name or "novel_txt2epub")


setup_logging()
