import logging
from typing import Optional

import httpx
from fastapi import APIRouter, Depends, Query, Request

from kubekorea.api.auth import create_session_token
from kubekorea.api.deps import get_context, get_current_user, get_service
from kubekorea.client import github_client
from kubekorea.client.github_client import GitHubOAuthError
from kubekorea.common.exceptions import NotFoundError
from kubekorea.common.messages import ERROR_MESSAGES, SUCCESS_MESSAGES
from kubekorea.core.context import AppContext
from kubekorea.schemas.post import CommentBody, CreatePostForm, UpdateCommentForm, UpdatePostForm
from kubekorea.schemas.response import AuthSession
from kubekorea.schemas.user import UpdateUserForm, User
from kubekorea.services.data_service import HybridDataService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


def _split_tags(tags: Optional[str]):
    if not tags:
        return None
    return [tag.strip() for tag in tags.split(",") if tag.strip()]


def _list_options(page, limit, sort_by=None, sort_order=None, **extra) -> dict:
    options = {"page": page, "limit": limit, "sort_by": sort_by, "sort_order": sort_order, **extra}
    return {key: value for key, value in options.items() if value is not None}


def _ok(message_key: str, data=None) -> dict:
    body = {"success": True, "message": SUCCESS_MESSAGES[message_key]}
    if data is not None:
        body["data"] = data
    return body


@router.get("/")
def read_root():
    return {"message": "Kubernetes Korea API"}


# Posts
@router.get("/posts")
async def list_posts(
    page: Optional[int] = None,
    limit: Optional[int] = None,
    category: Optional[str] = None,
    tags: Optional[str] = None,
    author: Optional[str] = None,
    search: Optional[str] = None,
    sort_by: Optional[str] = Query(default=None, alias="sortBy"),
    sort_order: Optional[str] = Query(default=None, alias="sortOrder"),
    service: HybridDataService = Depends(get_service),
):
    """
    게시글 목록을 페이지 단위로 반환합니다. tags는 쉼표로 구분합니다.
    """
    options = _list_options(
        page, limit, sort_by, sort_order,
        category=category, tags=_split_tags(tags), author=author, search=search,
    )
    result = await service.get_posts(options)
    return result.to_json_dict()


@router.post("/posts", status_code=201)
async def create_post(form: CreatePostForm, service: HybridDataService = Depends(get_service)):
    post = await service.create_post(form)
    return _ok("POST_CREATED", post.to_json_dict())


@router.get("/posts/{post_id}")
async def get_post(post_id: str, service: HybridDataService = Depends(get_service)):
    post = await service.get_post(post_id)
    if post is None:
        raise NotFoundError("게시글", post_id)
    return post.to_json_dict()


@router.patch("/posts/{post_id}")
async def update_post(post_id: str, form: UpdatePostForm, service: HybridDataService = Depends(get_service)):
    post = await service.update_post(post_id, form)
    return _ok("POST_UPDATED", post.to_json_dict())


@router.delete("/posts/{post_id}")
async def delete_post(post_id: str, service: HybridDataService = Depends(get_service)):
    await service.delete_post(post_id)
    return _ok("POST_DELETED")


@router.post("/posts/{post_id}/like")
async def toggle_like(post_id: str, service: HybridDataService = Depends(get_service)):
    post = await service.toggle_post_like(post_id)
    return post.to_json_dict()


@router.post("/posts/{post_id}/pin")
async def toggle_pin(post_id: str, service: HybridDataService = Depends(get_service)):
    """
    관리자 전용. 게시글 고정 상태를 토글합니다.
    """
    post = await service.toggle_post_pin(post_id)
    return _ok("POST_PINNED" if post.pinned else "POST_UNPINNED", post.to_json_dict())


# Comments
@router.get("/posts/{post_id}/comments")
async def list_comments(post_id: str, service: HybridDataService = Depends(get_service)):
    post = await service.get_post(post_id)
    if post is None:
        raise NotFoundError("게시글", post_id)
    return [comment.to_json_dict() for comment in post.comments]


@router.post("/posts/{post_id}/comments", status_code=201)
async def create_comment(post_id: str, body: CommentBody, service: HybridDataService = Depends(get_service)):
    """
    댓글을 작성합니다. parentId가 있으면 대댓글로 추가합니다.
    """
    comment = await service.add_comment(post_id, body.content, body.parent_id)
    return _ok("COMMENT_CREATED", comment.to_json_dict())


@router.patch("/posts/{post_id}/comments/{comment_id}")
async def update_comment(
    post_id: str,
    comment_id: str,
    form: UpdateCommentForm,
    service: HybridDataService = Depends(get_service),
):
    comment = await service.update_comment(post_id, comment_id, form.content)
    return _ok("COMMENT_UPDATED", comment.to_json_dict())


@router.delete("/posts/{post_id}/comments/{comment_id}")
async def delete_comment(post_id: str, comment_id: str, service: HybridDataService = Depends(get_service)):
    await service.delete_comment(post_id, comment_id)
    return _ok("COMMENT_DELETED")


# Users
@router.get("/users")
async def list_users(
    page: Optional[int] = None,
    limit: Optional[int] = None,
    search: Optional[str] = None,
    service: HybridDataService = Depends(get_service),
):
    result = await service.get_users(_list_options(page, limit, search=search))
    return result.to_json_dict()


@router.get("/users/me")
async def get_me(user: User = Depends(get_current_user)):
    return user.to_json_dict()


@router.get("/users/{user_id}")
async def get_user(user_id: str, service: HybridDataService = Depends(get_service)):
    user = await service.get_user(user_id)
    if user is None:
        raise NotFoundError("사용자", user_id)
    return user.to_json_dict()


@router.patch("/users/{user_id}")
async def update_user(user_id: str, form: UpdateUserForm, service: HybridDataService = Depends(get_service)):
    user = await service.update_user(user_id, form)
    return _ok("PROFILE_UPDATED", user.to_json_dict())


@router.get("/users/{user_id}/posts")
async def list_user_posts(
    user_id: str,
    page: Optional[int] = None,
    limit: Optional[int] = None,
    sort_by: Optional[str] = Query(default=None, alias="sortBy"),
    sort_order: Optional[str] = Query(default=None, alias="sortOrder"),
    service: HybridDataService = Depends(get_service),
):
    result = await service.get_posts_by_user(user_id, _list_options(page, limit, sort_by, sort_order))
    return result.to_json_dict()


@router.get("/users/{user_id}/stats")
async def get_user_stats(user_id: str, service: HybridDataService = Depends(get_service)):
    stats = await service.get_user_stats(user_id)
    return stats.to_json_dict()


# Follows
@router.get("/users/{user_id}/follow")
async def get_follow_relation(user_id: str, service: HybridDataService = Depends(get_service)):
    relation = await service.get_follow_relation(user_id)
    return relation.to_json_dict()


@router.post("/users/{user_id}/follow")
async def follow_user(
    user_id: str,
    user: User = Depends(get_current_user),
    service: HybridDataService = Depends(get_service),
):
    """
    로그인한 사용자가 user_id를 팔로우합니다. 자기 자신은 팔로우할 수 없습니다.
    """
    followed = await service.follow_user(user.id, user_id)
    relation = await service.get_follow_relation(user.id)
    return {
        "success": followed,
        "message": SUCCESS_MESSAGES["FOLLOW_SUCCESS"] if followed else ERROR_MESSAGES["SELF_FOLLOW"],
        "data": relation.to_json_dict(),
    }


@router.delete("/users/{user_id}/follow")
async def unfollow_user(
    user_id: str,
    user: User = Depends(get_current_user),
    service: HybridDataService = Depends(get_service),
):
    await service.unfollow_user(user.id, user_id)
    relation = await service.get_follow_relation(user.id)
    return _ok("UNFOLLOW_SUCCESS", relation.to_json_dict())


@router.get("/users/{user_id}/followers")
async def list_followers(
    user_id: str,
    page: Optional[int] = None,
    limit: Optional[int] = None,
    service: HybridDataService = Depends(get_service),
):
    result = await service.get_followers(user_id, _list_options(page, limit))
    return result.to_json_dict()


@router.get("/users/{user_id}/following")
async def list_following(
    user_id: str,
    page: Optional[int] = None,
    limit: Optional[int] = None,
    service: HybridDataService = Depends(get_service),
):
    result = await service.get_following(user_id, _list_options(page, limit))
    return result.to_json_dict()


# Search
@router.get("/search/posts")
async def search_posts(
    q: str = "",
    page: Optional[int] = None,
    limit: Optional[int] = None,
    category: Optional[str] = None,
    tags: Optional[str] = None,
    author: Optional[str] = None,
    sort_by: Optional[str] = Query(default=None, alias="sortBy"),
    sort_order: Optional[str] = Query(default=None, alias="sortOrder"),
    service: HybridDataService = Depends(get_service),
):
    options = _list_options(
        page, limit, sort_by, sort_order, category=category, tags=_split_tags(tags), author=author,
    )
    result = await service.search_posts(q, options)
    return result.to_json_dict()


@router.get("/search/users")
async def search_users(
    q: str = "",
    page: Optional[int] = None,
    limit: Optional[int] = None,
    service: HybridDataService = Depends(get_service),
):
    result = await service.search_users(q, _list_options(page, limit))
    return result.to_json_dict()


# Auth
@router.get("/auth/oauth/github/url")
def github_auth_url(
    state: Optional[str] = None,
    redirect_uri: Optional[str] = Query(default=None, alias="redirectUri"),
    context: AppContext = Depends(get_context),
):
    settings = context.settings
    if not settings.github_client_id:
        raise GitHubOAuthError(ERROR_MESSAGES["OAUTH_NOT_CONFIGURED"])
    return {"url": github_client.build_authorize_url(settings.github_client_id, redirect_uri, state)}


@router.get("/auth/callback/github")
async def github_callback(
    request: Request,
    code: str,
    state: Optional[str] = None,
    context: AppContext = Depends(get_context),
):
    """
    GitHub OAuth 콜백. code를 access token으로 교환하고 사용자 정보를 저장한 뒤
    세션 토큰을 발급합니다.
    """
    settings = context.settings
    if not settings.github_client_id or not settings.github_client_secret:
        raise GitHubOAuthError(ERROR_MESSAGES["OAUTH_NOT_CONFIGURED"])

    transport = getattr(request.app.state, "github_transport", None)
    async with httpx.AsyncClient(transport=transport, timeout=settings.api_timeout) as client:
        try:
            access_token = await github_client.exchange_code_for_token(
                code, settings.github_client_id, settings.github_client_secret, client
            )
            profile = await github_client.fetch_user_profile(access_token, client)
        except httpx.HTTPError as e:
            logger.warning("GitHub OAuth 요청 실패: %s", e)
            raise GitHubOAuthError(ERROR_MESSAGES["OAUTH_FAILED"]) from e

    user = context.store.save_user(profile)
    context.cache.invalidate_pattern(r"^users:")
    context.cache.invalidate(f"user:{user.id}")
    logger.info("GitHub 로그인: %s", user.github_username)

    session = AuthSession(
        token=create_session_token(user, access_token, settings),
        expires_in=settings.auth_token_ttl,
        user=user,
    )
    return {"success": True, "data": session.to_json_dict()}


@router.get("/auth/me")
async def auth_me(user: User = Depends(get_current_user)):
    return user.to_json_dict()


@router.post("/auth/logout")
async def logout(user: User = Depends(get_current_user)):
    # 세션 토큰은 서버에 저장하지 않으므로 클라이언트가 토큰을 버리면 된다
    logger.debug("로그아웃: %s", user.id)
    return _ok("LOGGED_OUT")


@router.delete("/auth/account")
async def delete_account(
    user: User = Depends(get_current_user),
    service: HybridDataService = Depends(get_service),
):
    await service.delete_account(user.id)
    return _ok("ACCOUNT_DELETED")
