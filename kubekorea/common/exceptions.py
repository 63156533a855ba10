from typing import List, Optional


class CommunityError(Exception):
    """커뮤니티 데이터 계층에서 발생하는 모든 도메인 예외의 기반 클래스"""


class ConfigurationError(CommunityError):
    pass


class ValidationError(CommunityError):
    def __init__(self, messages: List[str]):
        self.messages = list(messages)
        super().__init__(", ".join(self.messages))


class AuthenticationRequiredError(CommunityError):
    def __init__(self, action: str = "이 작업", message: Optional[str] = None):
        self.action = action
        super().__init__(message or f"{action}을 위해서는 로그인이 필요합니다.")


class PermissionDeniedError(CommunityError):
    pass


class NotFoundError(CommunityError):
    def __init__(self, resource: str, resource_id: Optional[str] = None):
        self.resource = resource
        self.resource_id = resource_id
        message = f"{resource}을(를) 찾을 수 없습니다."
        if resource_id:
            message = f"{message} (id={resource_id})"
        super().__init__(message)


class DataServiceError(CommunityError):
    """API 호출과 로컬 저장소 fallback이 모두 실패했을 때 발생"""
