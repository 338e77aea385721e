"""Seek 가능한 줄 단위 리더

모든 스캔 패스는 이 커서만 통해 파일을 읽는다. 파일 전체를 메모리에 올리지 않고
바이트 오프셋(tell/seek)으로 파트/챕터 범위를 관리한다.
"""

import codecs
from pathlib import Path
from typing import BinaryIO, Tuple, Union
import chardet
from novel_txt2epub.errors import DocumentReadError
from novel_txt2epub.utils.logger import get_logger

logger = get_logger(__name__)


def detect_encoding(file_path: Union[str, Path], default: str = "utf-8", sample_size: int = 10000) -> str:
    """파일 앞부분 샘플로 인코딩 추정 (chardet)

    Args:
        file_path: 파일 경로
        default: 신뢰도가 낮을 때 사용할 인코딩
        sample_size: 샘플 바이트 수

    Returns:
        인코딩 이름
    """
    try:
        with open(file_path, "rb") as f:
            sample = f.read(sample_size)
    except OSError as e:
        raise DocumentReadError(str(file_path), f"cannot open file ({e})") from e

    result = chardet.detect(sample)
    encoding = result.get("encoding")
    confidence = result.get("confidence") or 0.0

    if encoding and confidence >= 0.7:
        logger.debug(f"Encoding detected: {encoding} ({confidence:.2f}) - {Path(file_path).name}")
        # ascii 로 판정돼도 이후 구간에 한글/한자가 있을 수 있음
        return default if encoding.lower() == "ascii" else encoding

    logger.debug(f"Low confidence encoding: {encoding} ({confidence:.2f}) - {Path(file_path).name}, using {default}")
    return default


class LineCursor:
    """바이트 스트림 위의 순차/seek 가능 줄 커서

    Contract:
        - `read_line()` 이후 `position()` 은 해당 줄 종결자 바로 뒤 오프셋
        - `line_start()` 는 마지막으로 읽은 줄의 시작 오프셋
    """

    def __init__(self, stream: BinaryIO, encoding: str = "utf-8", name: str = "<stream>"):
        self.stream = stream
        self.encoding = encoding
        self.name = name
        self._line_start = 0
        self._utf8 = codecs.lookup(encoding).name == "utf-8"

    @classmethod
    def open(cls, file_path: Union[str, Path], encoding: str = "utf-8") -> "LineCursor":
        """파일을 바이너리 모드로 열어 커서 생성 (호출자가 close 책임)"""
        try:
            stream = open(file_path, "rb")
        except OSError as e:
            raise DocumentReadError(str(file_path), f"cannot open file ({e})") from e
        return cls(stream, encoding=encoding, name=str(file_path))

    def read_line(self) -> Tuple[str, bool]:
        """한 줄 읽기

        Returns:
            (text, is_eof) - text 는 종결자를 포함한 원문, EOF 이면 ("", True)
        """
        start = self.position()
        try:
            raw = self.stream.readline()
        except OSError as e:
            raise DocumentReadError(self.name, f"read failed ({e})", offset=start) from e

        self._line_start = start
        if not raw:
            return "", True

        # UTF-8 BOM 은 텍스트에서만 제거, 오프셋 계산에는 포함
        if start == 0 and self._utf8 and raw.startswith(codecs.BOM_UTF8):
            raw_text = raw[len(codecs.BOM_UTF8):]
            bom_len = len(codecs.BOM_UTF8)
        else:
            raw_text = raw
            bom_len = 0

        try:
            text = raw_text.decode(self.encoding)
        except UnicodeDecodeError as e:
            raise DocumentReadError(
                self.name,
                f"cannot decode as {self.encoding} ({e.reason})",
                offset=start + bom_len + e.start,
            ) from e

        return text, False

    def position(self) -> int:
        try:
            return self.stream.tell()
        except OSError as e:
            raise DocumentReadError(self.name, f"tell failed ({e})") from e

    def line_start(self) -> int:
        return self._line_start

    def seek(self, offset: int) -> None:
        try:
            self.stream.seek(offset)
        except (OSError, ValueError) as e:
            raise DocumentReadError(self.name, f"seek failed ({e})", offset=offset) from e
        self._line_start = offset

    def rewind(self) -> None:
        self.seek(0)

    def end_offset(self) -> int:
        """스트림 전체 길이 (현재 위치는 유지)"""
        current = self.position()
        try:
            end = self.stream.seek(0, 2)
            self.stream.seek(current)
        except OSError as e:
            raise DocumentReadError(self.name, f"seek failed ({e})") from e
        return end

    def close(self) -> None:
        self.stream.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def __repr__(self):
        return f"<LineCursor {self.name} @ {self._line_start}>"
