import logging
from typing import List, Optional

from kubekorea.common.constants import FEED_SORT_MODES, POSTS_PER_PAGE
from kubekorea.common.exceptions import ValidationError
from kubekorea.common.messages import VALIDATION_MESSAGES
from kubekorea.common.pagination import collect_tags, filter_by_tags, filter_posts, sort_posts, toggle_tag
from kubekorea.schemas.post import Post
from kubekorea.services.data_service import HybridDataService

logger = logging.getLogger(__name__)


class PostsFeed:
    """
    게시글 목록 화면 상태.

    검색어, 카테고리, 정렬 모드, 태그 필터를 바꾸면 무한 스크롤 목록이
    첫 페이지부터 다시 시작한다.
    """

    def __init__(
        self,
        service: HybridDataService,
        page_size: int = POSTS_PER_PAGE,
        tag_filters: Optional[List[str]] = None,
    ):
        self.service = service
        self.page_size = page_size

        self.posts: List[Post] = []
        self.search_term = ""
        self.category = "all"
        self.sort_by = "latest"
        self.tag_filters: List[str] = list(tag_filters or [])

        self.displayed_posts: List[Post] = []
        self.has_more = False
        self._next_page = 1

    async def refresh(self) -> List[Post]:
        result = await self.service.get_posts()
        self.posts = list(result.data)
        self._reset_scroll()
        return self.posts

    @property
    def filtered_posts(self) -> List[Post]:
        posts = filter_posts(self.posts, self.search_term, self.category)
        return filter_by_tags(posts, self.tag_filters)

    @property
    def sorted_posts(self) -> List[Post]:
        return sort_posts(self.filtered_posts, self.sort_by)

    @property
    def all_tags(self) -> List[str]:
        return collect_tags(self.posts)

    def set_search_term(self, term: str) -> None:
        self.search_term = term or ""
        self._reset_scroll()

    def set_category(self, category: Optional[str]) -> None:
        self.category = category or "all"
        self._reset_scroll()

    def set_sort_by(self, sort_by: str) -> None:
        if sort_by not in FEED_SORT_MODES:
            raise ValidationError([VALIDATION_MESSAGES["INVALID_SORT"]])
        self.sort_by = sort_by
        self._reset_scroll()

    def handle_tag_click(self, tag: str) -> List[str]:
        """선택된 태그면 빼고, 아니면 추가한다"""
        self.tag_filters = toggle_tag(self.tag_filters, tag)
        self._reset_scroll()
        return self.tag_filters

    # 무한 스크롤
    def _reset_scroll(self) -> None:
        posts = self.sorted_posts
        self.displayed_posts = posts[:self.page_size]
        self._next_page = 2
        self.has_more = len(posts) > self.page_size

    def load_more(self) -> List[Post]:
        if not self.has_more:
            return []

        posts = self.sorted_posts
        start = (self._next_page - 1) * self.page_size
        new_posts = posts[start:start + self.page_size]

        self.displayed_posts = self.displayed_posts + new_posts
        self._next_page += 1
        self.has_more = start + self.page_size < len(posts)

        logger.debug("게시글 추가 로드: %d개 (총 %d개)", len(new_posts), len(self.displayed_posts))
        return new_posts
