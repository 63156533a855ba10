# 사용자에게 노출되는 메시지 모음

ERROR_TYPE_MESSAGES = {
    "NETWORK": "네트워크 연결을 확인해주세요.",
    "TIMEOUT": "요청 시간이 초과되었습니다. 다시 시도해주세요.",
    "CANCELLED": "요청이 취소되었습니다.",
    "AUTHENTICATION": "로그인이 필요합니다.",
    "AUTHORIZATION": "권한이 없습니다.",
    "VALIDATION": "입력한 정보를 확인해주세요.",
    "NOT_FOUND": "요청한 리소스를 찾을 수 없습니다.",
    "CONFLICT": "이미 존재하는 데이터입니다.",
    "RATE_LIMIT": "너무 많은 요청을 보냈습니다. 잠시 후 다시 시도해주세요.",
    "SERVER_ERROR": "서버에 문제가 발생했습니다. 잠시 후 다시 시도해주세요.",
    "UNKNOWN": "알 수 없는 오류가 발생했습니다.",
}

ERROR_MESSAGES = {
    "GENERAL": "오류가 발생했습니다.",
    "LOGIN_REQUIRED": "로그인이 필요합니다.",
    "AUTHENTICATION_FAILED": "인증에 실패했습니다.",
    "POST_NOT_FOUND": "게시글을 찾을 수 없습니다.",
    "COMMENT_NOT_FOUND": "댓글을 찾을 수 없습니다.",
    "USER_NOT_FOUND": "사용자를 찾을 수 없습니다.",
    "POST_PERMISSION_DENIED": "게시글 수정 권한이 없습니다.",
    "COMMENT_PERMISSION_DENIED": "댓글 수정 권한이 없습니다.",
    "ADMIN_ONLY_PIN": "관리자만 게시글을 고정할 수 있습니다.",
    "SELF_FOLLOW": "자기 자신을 팔로우할 수 없습니다.",
    "OAUTH_FAILED": "GitHub 로그인에 실패했습니다.",
    "OAUTH_NOT_CONFIGURED": "GitHub OAuth 설정이 필요합니다.",
    "INVALID_TOKEN": "토큰이 없거나 유효하지 않습니다.",
    "SELF_ONLY": "본인 계정에 대해서만 수행할 수 있습니다.",
}

SUCCESS_MESSAGES = {
    "POST_CREATED": "게시글이 성공적으로 작성되었습니다.",
    "POST_UPDATED": "게시글이 성공적으로 수정되었습니다.",
    "POST_DELETED": "게시글이 성공적으로 삭제되었습니다.",
    "POST_PINNED": "게시글이 고정되었습니다.",
    "POST_UNPINNED": "게시글 고정이 해제되었습니다.",
    "COMMENT_CREATED": "댓글이 성공적으로 작성되었습니다.",
    "COMMENT_UPDATED": "댓글이 성공적으로 수정되었습니다.",
    "COMMENT_DELETED": "댓글이 성공적으로 삭제되었습니다.",
    "PROFILE_UPDATED": "프로필이 성공적으로 업데이트되었습니다.",
    "FOLLOW_SUCCESS": "팔로우했습니다.",
    "UNFOLLOW_SUCCESS": "언팔로우했습니다.",
    "ACCOUNT_DELETED": "계정이 성공적으로 삭제되었습니다.",
    "LOGGED_OUT": "로그아웃되었습니다.",
}

VALIDATION_MESSAGES = {
    "TITLE_REQUIRED": "제목은 필수입니다.",
    "TITLE_TOO_LONG": "제목은 {max}자를 넘을 수 없습니다.",
    "CONTENT_REQUIRED": "내용은 필수입니다.",
    "CONTENT_TOO_LONG": "내용은 {max}자를 넘을 수 없습니다.",
    "INVALID_CATEGORY": "올바른 카테고리가 아닙니다.",
    "INVALID_STATUS": "올바른 게시 상태가 아닙니다.",
    "TAG_EMPTY": "태그는 비어있을 수 없습니다.",
    "TAG_TOO_LONG": "태그는 {max}자를 넘을 수 없습니다.",
    "TOO_MANY_TAGS": "태그는 최대 {max}개까지 가능합니다.",
    "COMMENT_REQUIRED": "댓글 내용은 필수입니다.",
    "COMMENT_TOO_LONG": "댓글은 {max}자를 넘을 수 없습니다.",
    "NAME_REQUIRED": "이름은 필수입니다.",
    "NAME_TOO_LONG": "이름은 {max}자를 넘을 수 없습니다.",
    "BIO_TOO_LONG": "자기소개는 {max}자를 넘을 수 없습니다.",
    "QUERY_REQUIRED": "검색어를 입력해주세요.",
    "QUERY_TOO_LONG": "검색어는 {max}자를 넘을 수 없습니다.",
    "PAGE_MIN": "페이지는 1 이상이어야 합니다.",
    "LIMIT_RANGE": "제한 수는 1 이상 {max} 이하여야 합니다.",
    "ID_REQUIRED": "ID가 필요합니다.",
    "INVALID_SORT": "올바른 정렬 기준이 아닙니다.",
}
