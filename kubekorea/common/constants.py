# 페이지네이션 설정
POSTS_PER_PAGE = 10
USERS_PER_PAGE = 5
COMMENTS_PER_PAGE = 20
DEFAULT_PAGE = 1

# 제한 설정
POST_TITLE_MAX = 200
POST_CONTENT_MAX = 10000
COMMENT_MAX = 1000
BIO_MAX = 200
NAME_MAX = 50
TAGS_MAX = 10
TAG_LENGTH_MAX = 50
SEARCH_QUERY_MAX = 100
PAGE_LIMIT_MAX = 100

POST_CATEGORIES = {
    "announcement": {"label": "공지사항", "description": "중요한 공지사항과 업데이트"},
    "discussion": {"label": "토론", "description": "의견을 나누고 토론하는 공간"},
    "tutorial": {"label": "튜토리얼", "description": "단계별 가이드와 튜토리얼"},
    "tip": {"label": "팁", "description": "유용한 팁과 노하우"},
    "experience": {"label": "경험담", "description": "실제 경험과 사례 공유"},
    "question": {"label": "질문", "description": "궁금한 점을 묻고 답하는 공간"},
}

POST_STATUSES = ("draft", "published", "archived")

# 목록 화면 정렬 모드
FEED_SORT_MODES = ("latest", "popular", "commented", "unanswered")

# API 정렬 필드
SORT_FIELDS = ("createdAt", "likes", "comments")

# 로컬 저장소 키
STORAGE_KEY_POSTS = "posts"
STORAGE_KEY_USER_BIOS = "userBios"
STORAGE_KEY_USER_FOLLOWS = "userFollows"
STORAGE_KEY_USERS = "users"
LEGACY_FOLLOW_KEY_PREFIX = "follow_"

STORAGE_KEYS = (
    STORAGE_KEY_POSTS,
    STORAGE_KEY_USER_BIOS,
    STORAGE_KEY_USER_FOLLOWS,
    STORAGE_KEY_USERS,
)

# API 엔드포인트
API_POSTS = "/api/posts"
API_USERS = "/api/users"
API_AUTH = "/api/auth"
API_SEARCH = "/api/search"

DEFAULT_AVATAR = "https://api.dicebear.com/7.x/avataaars/svg"
