import copy
import logging
import re
from dataclasses import replace
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from kubekorea.client.auth_api import AuthApi
from kubekorea.client.error_handler import ErrorHandler
from kubekorea.client.posts_api import PostsApi
from kubekorea.client.users_api import UsersApi
from kubekorea.common.cache import TTLCache
from kubekorea.common.constants import POSTS_PER_PAGE, USERS_PER_PAGE
from kubekorea.common.exceptions import (
    AuthenticationRequiredError,
    NotFoundError,
    PermissionDeniedError,
)
from kubekorea.common.messages import ERROR_MESSAGES
from kubekorea.common.pagination import (
    filter_by_tags,
    filter_posts,
    filter_users,
    paginate,
    sort_by_field,
)
from kubekorea.common.validation import validate_data
from kubekorea.schemas.post import (
    Comment,
    CreateCommentForm,
    CreatePostForm,
    Post,
    PostsQuery,
    SearchQuery,
    UpdateCommentForm,
    UpdatePostForm,
)
from kubekorea.schemas.response import PaginatedResponse
from kubekorea.schemas.user import FollowRelation, UpdateUserForm, User, UserStats, UsersQuery
from kubekorea.services import transformers
from kubekorea.services.data_source import CallableDataSource, FallbackPolicy, resolve
from kubekorea.services.local_store import LocalStore

logger = logging.getLogger(__name__)

Options = Union[Dict[str, Any], None]


def _detached(value):
    """캐시 항목과 분리된 깊은 복사본"""
    return copy.deepcopy(value)


class HybridDataService:
    """
    API를 먼저 시도하고 실패하면 로컬 저장소로 대체하는 데이터 서비스.

    조회 결과는 캐시에 저장하고, 변경 작업은 영향을 받는 캐시 키를 무효화한다.
    로그인이 필요한 작업은 set_current_user로 지정한 사용자로 수행한다.
    """

    def __init__(
        self,
        store: LocalStore,
        cache: TTLCache,
        policy: Optional[FallbackPolicy] = None,
        posts_api: Optional[PostsApi] = None,
        users_api: Optional[UsersApi] = None,
        auth_api: Optional[AuthApi] = None,
        error_handler: Optional[ErrorHandler] = None,
        admin_emails: Optional[List[str]] = None,
    ):
        self.store = store
        self.cache = cache
        self.policy = policy or FallbackPolicy()
        self.posts_api = posts_api
        self.users_api = users_api
        self.auth_api = auth_api
        self.error_handler = error_handler
        self.admin_emails = list(admin_emails or [])
        self.current_user: Optional[User] = None

        logger.debug(
            "데이터 서비스 초기화: use_api=%s fallback_to_local=%s",
            self.policy.use_api,
            self.policy.fallback_to_local,
        )

    # 설정
    def set_use_api(self, use_api: bool) -> None:
        self.policy.use_api = use_api
        logger.debug("API 사용 여부 변경: %s", use_api)

    def set_fallback_to_local(self, fallback: bool) -> None:
        self.policy.fallback_to_local = fallback
        logger.debug("로컬 저장소 fallback 변경: %s", fallback)

    def set_current_user(self, user: Optional[User]) -> None:
        self.current_user = user

    def for_user(self, user: Optional[User], local_only: bool = False) -> "HybridDataService":
        """
        저장소와 캐시를 공유하면서 현재 사용자만 다른 서비스 복사본을 만든다.
        local_only면 API를 호출하지 않는다.
        """
        clone = copy.copy(self)
        clone.current_user = user
        # 정책은 복사본마다 따로 둔다
        clone.policy = replace(self.policy)
        if local_only:
            clone.policy.use_api = False
            clone.policy.fallback_to_local = True
        return clone

    def is_admin(self, user: Optional[User]) -> bool:
        if user is None:
            return False
        return user.email in self.admin_emails or user.name == "admin"

    # 내부 헬퍼
    def _require_user(self, action: str) -> User:
        if self.current_user is None:
            raise AuthenticationRequiredError(action)
        return self.current_user

    def _require_self(self, user_id: str, action: str) -> User:
        user = self._require_user(action)
        if user.id != user_id:
            raise PermissionDeniedError(ERROR_MESSAGES["SELF_ONLY"])
        return user

    @staticmethod
    def _author_snapshot(user: User) -> User:
        return user.model_copy(update={"bio": None})

    async def _run(
        self,
        operation: str,
        remote: Callable[[], Awaitable[Any]],
        local: Callable[[], Any],
        error_message: Optional[str] = None,
    ) -> Any:
        source = CallableDataSource(operation, remote, local, error_message)
        return await resolve(source, self.policy, self.error_handler)

    async def _cached(self, key: str, loader: Callable[[], Awaitable[Any]]) -> Any:
        # 호출자가 결과를 수정해도 캐시 항목은 그대로 유지
        cached = self.cache.get(key)
        if cached is not None:
            return _detached(cached)
        value = await loader()
        if value is not None:
            self.cache.set(key, value)
        return _detached(value)

    def _invalidate(self, *patterns: str) -> None:
        for pattern in patterns:
            self.cache.invalidate_pattern(pattern)

    def _invalidate_post(self, post_id: str) -> None:
        self._invalidate(r"^posts:", rf"^post:{re.escape(post_id)}$", r"^stats:")

    @staticmethod
    def _page(items: list, page: Optional[int], limit: Optional[int], default_limit: int) -> PaginatedResponse:
        # page/limit이 없으면 전체를 한 페이지로 반환
        if page or limit:
            return paginate(items, page or 1, limit or default_limit)
        return paginate(items, 1, max(len(items), 1))

    async def _get_post_or_raise(self, post_id: str) -> Post:
        post = await self.get_post(post_id)
        if post is None:
            raise NotFoundError("게시글", post_id)
        return post

    # Posts
    async def get_posts(self, options: Options = None) -> PaginatedResponse:
        query = validate_data(PostsQuery, options or {})

        def local() -> PaginatedResponse:
            posts = self.store.get_posts()
            if query.category:
                posts = [post for post in posts if post.category == query.category]
            if query.author:
                posts = [post for post in posts if post.author.id == query.author]
            if query.tags:
                posts = filter_by_tags(posts, query.tags)
            if query.search:
                posts = filter_posts(posts, query.search)
            if query.sort_by:
                posts = sort_by_field(posts, query.sort_by, query.sort_order or "desc")
            return self._page(posts, query.page, query.limit, POSTS_PER_PAGE)

        async def remote() -> PaginatedResponse:
            data = await self.posts_api.get_posts(query.model_dump())
            return transformers.paginated_from_api(data, transformers.post_from_api)

        async def load():
            return await self._run("get_posts", remote, local, "Failed to fetch posts")

        return await self._cached(f"posts:{query.model_dump_json(exclude_none=True)}", load)

    async def get_post(self, post_id: str) -> Optional[Post]:
        async def remote() -> Post:
            return transformers.post_from_api(await self.posts_api.get_post(post_id))

        async def load():
            return await self._run(
                "get_post", remote, lambda: self.store.get_post(post_id), "Failed to fetch post"
            )

        return await self._cached(f"post:{post_id}", load)

    async def create_post(self, form: Union[CreatePostForm, Dict[str, Any]]) -> Post:
        form = validate_data(CreatePostForm, form)
        user = self._require_user("게시글 작성")

        async def remote() -> Post:
            data = await self.posts_api.create_post(transformers.post_create_to_api(form))
            return transformers.post_from_api(data)

        post = await self._run(
            "create_post",
            remote,
            lambda: self.store.create_post(form, self._author_snapshot(user)),
            "Failed to create post",
        )
        self._invalidate(r"^posts:", r"^stats:", r"^users:")
        return post

    async def update_post(self, post_id: str, updates: Union[UpdatePostForm, Dict[str, Any]]) -> Post:
        form = validate_data(UpdatePostForm, updates)
        user = self._require_user("게시글 수정")
        post = await self._get_post_or_raise(post_id)
        if post.author.id != user.id:
            raise PermissionDeniedError(ERROR_MESSAGES["POST_PERMISSION_DENIED"])

        async def remote() -> Post:
            data = await self.posts_api.update_post(post_id, transformers.post_update_to_api(form))
            return transformers.post_from_api(data)

        updated = await self._run(
            "update_post",
            remote,
            lambda: self.store.update_post(post_id, form.model_dump(exclude_none=True)),
            "Failed to update post",
        )
        self._invalidate_post(post_id)
        return updated

    async def delete_post(self, post_id: str) -> bool:
        user = self._require_user("게시글 삭제")
        post = await self._get_post_or_raise(post_id)
        if post.author.id != user.id and not self.is_admin(user):
            raise PermissionDeniedError(ERROR_MESSAGES["POST_PERMISSION_DENIED"])

        async def remote() -> bool:
            await self.posts_api.delete_post(post_id)
            return True

        deleted = await self._run(
            "delete_post", remote, lambda: self.store.delete_post(post_id), "Failed to delete post"
        )
        self._invalidate_post(post_id)
        self._invalidate(r"^users:")
        return deleted

    async def toggle_post_like(self, post_id: str) -> Post:
        user = self._require_user("좋아요")

        async def remote() -> Post:
            return transformers.post_from_api(await self.posts_api.toggle_like(post_id))

        def local() -> Post:
            post = self.store.toggle_like(post_id, user.id)
            if post is None:
                raise NotFoundError("게시글", post_id)
            return post

        post = await self._run("toggle_post_like", remote, local, "Failed to toggle post like")
        self._invalidate_post(post_id)
        return post

    async def toggle_post_pin(self, post_id: str) -> Post:
        """관리자만 고정/해제할 수 있다. 동시에 고정하면 마지막 요청이 남는다."""
        user = self._require_user("게시글 고정")
        if not self.is_admin(user):
            raise PermissionDeniedError(ERROR_MESSAGES["ADMIN_ONLY_PIN"])

        async def remote() -> Post:
            return transformers.post_from_api(await self.posts_api.toggle_pin(post_id))

        def local() -> Post:
            post = self.store.toggle_pin(post_id)
            if post is None:
                raise NotFoundError("게시글", post_id)
            return post

        post = await self._run("toggle_post_pin", remote, local, "Failed to toggle post pin")
        self._invalidate_post(post_id)
        return post

    async def get_posts_by_user(self, user_id: str, options: Options = None) -> PaginatedResponse:
        query = validate_data(PostsQuery, options or {})

        async def remote() -> PaginatedResponse:
            data = await self.posts_api.get_posts_by_user(user_id, query.model_dump())
            return transformers.paginated_from_api(data, transformers.post_from_api)

        def local() -> PaginatedResponse:
            posts = self.store.get_posts_by_user(user_id)
            if query.sort_by:
                posts = sort_by_field(posts, query.sort_by, query.sort_order or "desc")
            return self._page(posts, query.page, query.limit, POSTS_PER_PAGE)

        async def load():
            return await self._run("get_posts_by_user", remote, local, "Failed to fetch user posts")

        return await self._cached(
            f"posts:user:{user_id}:{query.model_dump_json(exclude_none=True)}", load
        )

    # Comments
    @staticmethod
    def _find_comment(post: Post, comment_id: str) -> Optional[Comment]:
        for comment in post.comments:
            if comment.id == comment_id:
                return comment
            for reply in comment.replies:
                if reply.id == comment_id:
                    return reply
        return None

    async def add_comment(self, post_id: str, content: str, parent_id: Optional[str] = None) -> Comment:
        form = validate_data(
            CreateCommentForm, {"content": content, "post_id": post_id, "parent_id": parent_id}
        )
        user = self._require_user("댓글 작성")
        await self._get_post_or_raise(post_id)

        async def remote() -> Comment:
            data = await self.posts_api.create_comment(post_id, transformers.comment_create_to_api(form))
            return transformers.comment_from_api(data)

        def local() -> Comment:
            comment = self.store.add_comment(
                post_id, form.content, self._author_snapshot(user), form.parent_id
            )
            if comment is None:
                raise NotFoundError("댓글", form.parent_id)
            return comment

        comment = await self._run("add_comment", remote, local, "Failed to add comment")
        self._invalidate_post(post_id)
        return comment

    async def update_comment(self, post_id: str, comment_id: str, content: str) -> Comment:
        form = validate_data(UpdateCommentForm, {"content": content})
        user = self._require_user("댓글 수정")
        post = await self._get_post_or_raise(post_id)
        comment = self._find_comment(post, comment_id)
        if comment is None:
            raise NotFoundError("댓글", comment_id)
        if comment.author.id != user.id:
            raise PermissionDeniedError(ERROR_MESSAGES["COMMENT_PERMISSION_DENIED"])

        async def remote() -> Comment:
            data = await self.posts_api.update_comment(post_id, comment_id, form.content)
            return transformers.comment_from_api(data)

        updated = await self._run(
            "update_comment",
            remote,
            lambda: self.store.update_comment(post_id, comment_id, form.content),
            "Failed to update comment",
        )
        self._invalidate_post(post_id)
        return updated

    async def delete_comment(self, post_id: str, comment_id: str) -> bool:
        user = self._require_user("댓글 삭제")
        post = await self._get_post_or_raise(post_id)
        comment = self._find_comment(post, comment_id)
        if comment is None:
            raise NotFoundError("댓글", comment_id)
        if comment.author.id != user.id and not self.is_admin(user):
            raise PermissionDeniedError(ERROR_MESSAGES["COMMENT_PERMISSION_DENIED"])

        async def remote() -> bool:
            await self.posts_api.delete_comment(post_id, comment_id)
            return True

        deleted = await self._run(
            "delete_comment",
            remote,
            lambda: self.store.delete_comment(post_id, comment_id),
            "Failed to delete comment",
        )
        self._invalidate_post(post_id)
        return deleted

    # Users
    async def get_users(self, options: Options = None) -> PaginatedResponse:
        query = validate_data(UsersQuery, options or {})

        async def remote() -> PaginatedResponse:
            data = await self.users_api.get_users(query.model_dump())
            return transformers.paginated_from_api(data, transformers.user_from_api)

        def local() -> PaginatedResponse:
            users = self.store.get_users()
            if query.search:
                users = filter_users(users, query.search)
            return self._page(users, query.page, query.limit, USERS_PER_PAGE)

        async def load():
            return await self._run("get_users", remote, local, "Failed to fetch users")

        return await self._cached(f"users:{query.model_dump_json(exclude_none=True)}", load)

    async def get_user(self, user_id: str) -> Optional[User]:
        async def remote() -> User:
            return transformers.user_from_api(await self.users_api.get_user(user_id))

        async def load():
            return await self._run(
                "get_user", remote, lambda: self.store.get_user(user_id), "Failed to fetch user"
            )

        return await self._cached(f"user:{user_id}", load)

    async def update_user(self, user_id: str, form: Union[UpdateUserForm, Dict[str, Any]]) -> User:
        form = validate_data(UpdateUserForm, form)
        user = self._require_self(user_id, "프로필 수정")

        async def remote() -> User:
            data = await self.users_api.update_user(user_id, transformers.user_update_to_api(form))
            return transformers.user_from_api(data)

        def local() -> User:
            if self.store.get_user(user_id) is None:
                self.store.save_user(user)
            return self.store.update_user(user_id, form.model_dump(exclude_none=True))

        updated = await self._run("update_user", remote, local, "Failed to update user")
        self.current_user = updated
        self._invalidate(r"^users:", rf"^user:{re.escape(user_id)}$", r"^posts:", r"^post:")
        return updated

    async def update_user_bio(self, user_id: str, bio: str) -> bool:
        validate_data(UpdateUserForm, {"bio": bio})
        self._require_self(user_id, "자기소개 수정")

        async def remote() -> bool:
            await self.users_api.update_user_bio(user_id, bio)
            return True

        result = await self._run(
            "update_user_bio",
            remote,
            lambda: self.store.update_user_bio(user_id, bio),
            "Failed to update user bio",
        )
        self._invalidate(r"^users:", rf"^user:{re.escape(user_id)}$")
        return result

    async def get_user_stats(self, user_id: str) -> UserStats:
        async def remote() -> UserStats:
            return transformers.stats_from_api(await self.users_api.get_user_stats(user_id))

        async def load():
            return await self._run(
                "get_user_stats",
                remote,
                lambda: self.store.get_user_stats(user_id),
                "Failed to fetch user stats",
            )

        return await self._cached(f"stats:{user_id}", load)

    async def delete_account(self, user_id: str) -> bool:
        self._require_self(user_id, "계정 삭제")

        async def remote() -> bool:
            await self.auth_api.delete_account()
            return True

        result = await self._run(
            "delete_account",
            remote,
            lambda: self.store.delete_account(user_id),
            "Failed to delete account",
        )
        self.cache.clear()
        self.current_user = None
        return result

    # Follows
    async def get_follow_relation(self, user_id: str) -> FollowRelation:
        async def remote() -> FollowRelation:
            data = await self.users_api.get_follow_relation(user_id)
            return transformers.follow_from_api(data, user_id)

        async def load():
            return await self._run(
                "get_follow_relation",
                remote,
                lambda: self.store.get_follow_relation(user_id),
                "Failed to fetch follow relation",
            )

        return await self._cached(f"follow:{user_id}", load)

    def _invalidate_follow(self, user_id: str, target_user_id: str) -> None:
        for uid in (user_id, target_user_id):
            self._invalidate(
                rf"^follow:{re.escape(uid)}$",
                rf"^stats:{re.escape(uid)}$",
                rf"^follows:{re.escape(uid)}:",
            )

    async def follow_user(self, user_id: str, target_user_id: str) -> bool:
        self._require_self(user_id, "팔로우")
        # 자기 자신은 팔로우할 수 없음
        if user_id == target_user_id:
            return False

        async def remote() -> bool:
            await self.users_api.follow_user(target_user_id)
            return True

        result = await self._run(
            "follow_user",
            remote,
            lambda: self.store.follow_user(user_id, target_user_id),
            "Failed to follow user",
        )
        self._invalidate_follow(user_id, target_user_id)
        return result

    async def unfollow_user(self, user_id: str, target_user_id: str) -> bool:
        self._require_self(user_id, "언팔로우")

        async def remote() -> bool:
            await self.users_api.unfollow_user(target_user_id)
            return True

        result = await self._run(
            "unfollow_user",
            remote,
            lambda: self.store.unfollow_user(user_id, target_user_id),
            "Failed to unfollow user",
        )
        self._invalidate_follow(user_id, target_user_id)
        return result

    async def _follow_list(self, user_id: str, kind: str, options: Options) -> PaginatedResponse:
        query = validate_data(UsersQuery, options or {})
        fetch = self.users_api.get_followers if kind == "followers" else self.users_api.get_following

        async def remote() -> PaginatedResponse:
            data = await fetch(user_id, query.page, query.limit)
            return transformers.paginated_from_api(data, transformers.user_from_api)

        def local() -> PaginatedResponse:
            relation = self.store.get_follow_relation(user_id)
            known = {user.id: user for user in self.store.get_users()}
            ids = relation.followers if kind == "followers" else relation.following
            users = [known.get(uid) or User(id=uid) for uid in ids]
            return self._page(users, query.page, query.limit, USERS_PER_PAGE)

        async def load():
            return await self._run(f"get_{kind}", remote, local, f"Failed to fetch {kind}")

        return await self._cached(
            f"follows:{user_id}:{kind}:{query.model_dump_json(exclude_none=True)}", load
        )

    async def get_followers(self, user_id: str, options: Options = None) -> PaginatedResponse:
        return await self._follow_list(user_id, "followers", options)

    async def get_following(self, user_id: str, options: Options = None) -> PaginatedResponse:
        return await self._follow_list(user_id, "following", options)

    # Search
    async def search_posts(self, query: str, options: Options = None) -> PaginatedResponse:
        options = dict(options or {})
        search = validate_data(SearchQuery, {
            "query": query,
            "category": options.get("category"),
            "tags": options.get("tags"),
            "author": options.get("author"),
            "sort_by": options.get("sort_by") or "createdAt",
            "sort_order": options.get("sort_order") or "desc",
        })
        page_query = validate_data(PostsQuery, {"page": options.get("page"), "limit": options.get("limit")})

        async def remote() -> PaginatedResponse:
            data = await self.posts_api.search_posts(
                search.query,
                {**search.model_dump(exclude={"query"}), "page": page_query.page, "limit": page_query.limit},
            )
            return transformers.paginated_from_api(data, transformers.post_from_api)

        def local() -> PaginatedResponse:
            posts = filter_posts(self.store.get_posts(), search.query, search.category)
            if search.tags:
                posts = filter_by_tags(posts, search.tags)
            if search.author:
                posts = [post for post in posts if post.author.id == search.author]
            posts = sort_by_field(posts, search.sort_by, search.sort_order)
            return self._page(posts, page_query.page, page_query.limit, POSTS_PER_PAGE)

        return await self._run("search_posts", remote, local, "Failed to search posts")

    async def search_users(self, query: str, options: Options = None) -> PaginatedResponse:
        options = dict(options or {})
        validate_data(SearchQuery, {"query": query})
        page_query = validate_data(UsersQuery, {"page": options.get("page"), "limit": options.get("limit")})

        async def remote() -> PaginatedResponse:
            data = await self.users_api.search_users(query, {**options, **page_query.model_dump()})
            return transformers.paginated_from_api(data, transformers.user_from_api)

        def local() -> PaginatedResponse:
            users = filter_users(self.store.get_users(), query)
            return self._page(users, page_query.page, page_query.limit, USERS_PER_PAGE)

        return await self._run("search_users", remote, local, "Failed to search users")
