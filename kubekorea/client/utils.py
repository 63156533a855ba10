from typing import Any, Dict, Optional
from urllib.parse import urlencode, urljoin


def _param_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return ",".join(str(v) for v in value)
    return str(value)


def build_url(base_url: str, endpoint: str, params: Optional[Dict[str, Any]] = None) -> str:
    """
    base_url에 endpoint를 붙이고 None이 아닌 쿼리 파라미터만 추가합니다.
    리스트 값은 콤마로 이어 붙입니다.
    """
    url = urljoin(base_url.rstrip("/") + "/", endpoint.lstrip("/")) if base_url else endpoint

    if params:
        query = {
            key: _param_value(value)
            for key, value in params.items()
            if value is not None
        }
        if query:
            separator = "&" if "?" in url else "?"
            url = f"{url}{separator}{urlencode(query)}"

    return url
