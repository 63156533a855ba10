import logging
from typing import List, Optional

from kubekorea.common import mentions
from kubekorea.common.exceptions import NotFoundError
from kubekorea.schemas.post import Comment, Post
from kubekorea.schemas.user import User
from kubekorea.services.data_service import HybridDataService

logger = logging.getLogger(__name__)


class PostDetail:
    """
    게시글 상세 화면 상태. 모든 변경은 서비스를 거친 뒤 게시글을 다시 읽는다.
    """

    def __init__(self, service: HybridDataService, post_id: str):
        self.service = service
        self.post_id = post_id
        self.post: Optional[Post] = None
        self.is_submitting_comment = False

    @property
    def current_user(self) -> Optional[User]:
        return self.service.current_user

    async def load(self) -> Optional[Post]:
        self.post = await self.service.get_post(self.post_id)
        if self.post is None:
            logger.debug("게시글 없음: %s", self.post_id)
        return self.post

    def _require_post(self) -> Post:
        if self.post is None:
            raise NotFoundError("게시글", self.post_id)
        return self.post

    @property
    def is_liked(self) -> bool:
        user = self.current_user
        return bool(self.post and user and user.id in self.post.likes)

    @property
    def can_edit(self) -> bool:
        user = self.current_user
        return bool(self.post and user and self.post.author.id == user.id)

    @property
    def can_delete(self) -> bool:
        return self.can_edit or self.service.is_admin(self.current_user)

    async def toggle_like(self) -> Post:
        self._require_post()
        self.post = await self.service.toggle_post_like(self.post_id)
        return self.post

    async def toggle_pin(self) -> Post:
        self._require_post()
        self.post = await self.service.toggle_post_pin(self.post_id)
        return self.post

    async def submit_comment(self, content: str) -> Comment:
        self.is_submitting_comment = True
        try:
            comment = await self.service.add_comment(self.post_id, content)
        finally:
            self.is_submitting_comment = False
        await self.load()
        return comment

    async def submit_reply(self, parent_id: str, content: str) -> Comment:
        reply = await self.service.add_comment(self.post_id, content, parent_id)
        await self.load()
        return reply

    async def edit_comment(self, comment_id: str, content: str) -> Comment:
        comment = await self.service.update_comment(self.post_id, comment_id, content)
        await self.load()
        return comment

    async def delete_comment(self, comment_id: str) -> bool:
        deleted = await self.service.delete_comment(self.post_id, comment_id)
        await self.load()
        return deleted

    async def delete_post(self) -> bool:
        deleted = await self.service.delete_post(self.post_id)
        if deleted:
            self.post = None
        return deleted

    # 멘션
    def available_users(self) -> List[User]:
        user = self.current_user
        return mentions.available_users(self.post, user.id if user else None)

    def mention_suggestions(self, text: str) -> List[User]:
        return mentions.mention_suggestions(text, self.available_users())

    def mentioned_users(self, text: str) -> List[User]:
        return mentions.extract_mentions(text, self.available_users())
