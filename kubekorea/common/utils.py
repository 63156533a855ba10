import random
import re
import string
import time
from datetime import datetime, timedelta, timezone
from typing import Optional

from dateutil.parser import isoparse

_BASE36 = string.digits + string.ascii_lowercase


def strip_html(html: str, max_length: Optional[int] = None) -> str:
    """
    HTML 태그를 공백으로 바꾸고 연속 공백을 정리한다.
    max_length를 넘으면 잘라서 말줄임표를 붙인다.
    """
    text = re.sub(r'<[^>]+>', ' ', html or '')
    text = re.sub(r'\s+', ' ', text).strip()
    if max_length is not None and len(text) > max_length:
        return text[:max_length] + '…'
    return text


def now_iso() -> str:
    """
    현재 UTC 시각을 밀리초 단위 ISO 8601 문자열(Z 접미사)로 반환.
    밀리초 미만은 올림하므로 호출 시각보다 이른 값이 나오지 않는다.
    """
    now = datetime.now(timezone.utc)
    remainder = now.microsecond % 1000
    if remainder:
        now += timedelta(microseconds=1000 - remainder)
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"


def parse_iso(value: str) -> datetime:
    """
    ISO 8601 문자열을 timezone-aware datetime으로 변환.
    타임존이 없으면 UTC로 간주한다.
    """
    parsed = isoparse(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def generate_id() -> str:
    # <epoch ms>-<base36 9자리>
    suffix = ''.join(random.choices(_BASE36, k=9))
    return f"{int(time.time() * 1000)}-{suffix}"
