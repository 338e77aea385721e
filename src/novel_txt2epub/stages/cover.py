"""표지 이미지 가져오기

메타데이터의 cover 값(URL 또는 로컬 경로)으로 이미지를 가져와 JPEG 로 정규화한다.
실패해도 변환은 계속된다. 경고만 남기고 None 을 반환한다.
"""

from io import BytesIO
from pathlib import Path
from typing import Optional
import requests
from PIL import Image, UnidentifiedImageError
from tenacity import Retrying, stop_after_attempt, wait_exponential, retry_if_exception_type
from novel_txt2epub.config.loader import CoverConfig
from novel_txt2epub.utils.logger import get_logger

logger = get_logger(__name__)


class CoverFetcher:
    """표지 다운로드 + 리사이즈"""

    def __init__(self, config: Optional[CoverConfig] = None, session: Optional[requests.Session] = None):
        """
        Args:
            config: 표지 설정 (timeout, max_retries, width, height)
            session: requests 세션. None 이면 다운로드마다 새 세션 (워커 스레드 간 공유하지 않음)
        """
        self.config = config or CoverConfig()
        self.session = session

    def fetch(self, ref: Optional[str]) -> Optional[bytes]:
        """표지 JPEG 바이트 반환, 실패 시 None"""
        if not ref:
            return None

        try:
            raw = self._load(ref)
            return self._normalize(raw)
        except (requests.RequestException, OSError, UnidentifiedImageError, ValueError) as e:
            logger.warning(f"⚠️  Failed to add cover image ({ref}): {e}")
            logger.warning("Skip adding cover image.")
            return None

    def _load(self, ref: str) -> bytes:
        if ref.startswith(("http://", "https://")):
            return self._download(ref)

        path = Path(ref).expanduser()
        logger.debug(f"Reading local cover: {path}")
        return path.read_bytes()

    def _download(self, url: str) -> bytes:
        if self.session is not None:
            return self._get_with_retry(self.session, url)

        with requests.Session() as session:
            return self._get_with_retry(session, url)

    def _get_with_retry(self, session: requests.Session, url: str) -> bytes:
        logger.debug(f"Downloading cover: {url}")

        for attempt in Retrying(
            stop=stop_after_attempt(max(1, self.config.max_retries)),
            wait=wait_exponential(multiplier=1, min=1, max=8),
            retry=retry_if_exception_type(requests.RequestException),
            reraise=True,
        ):
            with attempt:
                response = session.get(url, timeout=self.config.timeout)
                response.raise_for_status()
                return response.content

        raise requests.RequestException(f"no attempt made for {url}")

    def _normalize(self, raw: bytes) -> bytes:
        img = Image.open(BytesIO(raw))
        img.thumbnail((self.config.width, self.config.height), Image.Resampling.LANCZOS)

        out = BytesIO()
        img.convert("RGB").save(out, "JPEG", quality=90)
        return out.getvalue()
