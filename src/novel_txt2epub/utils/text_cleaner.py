"""텍스트 정리 유틸리티

렌더링 직전에 쓰이는 인용부호 치환, 중국어 숫자 표기, 출력 파일명 정리
"""

import re
import cn2an
from novel_txt2epub.utils.logger import get_logger

logger = get_logger(__name__)

# 가로쓰기 인용부호 -> 중국어 낫표
QUOTE_TABLE = str.maketrans({
    "“": "「",
    "”": "」",
    "‘": "『",
    "’": "』",
})

# Windows 금지 문자: <>:"/\|?*
FORBIDDEN_FILENAME_CHARS = '<>:"/\\|?*'


def quote_replace(text: str) -> str:
    """인용부호 치환

    Examples:
        >>> quote_replace("他说：“你好。”")
        '他说：「你好。」'
    """
    return text.translate(QUOTE_TABLE)


def to_chinese_number(number: int) -> str:
    """정수를 중국어 소문자 숫자로 (예: 12 -> 十二)"""
    if number < 0:
        raise ValueError(f"negative number: {number}")
    return cn2an.an2cn(number, "low")


def safe_file_stem(name: str, max_length: int = 150) -> str:
    """출력 파일명에 쓸 수 없는 문자 제거

    Examples:
        >>> safe_file_stem('a:b?c')
        'abc'
    """
    stem = "".join(c for c in name if c not in FORBIDDEN_FILENAME_CHARS)
    stem = re.sub(r'\s+', ' ', stem).strip()[:max_length]
    if not stem:
        logger.debug(f"File name '{name}' is empty after cleaning, using 'novel'")
        return "novel"
    return stem
