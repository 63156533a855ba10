from typing import Any, Callable, Dict, List, Optional, Tuple, Type, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from kubekorea.common import constants
from kubekorea.common.exceptions import ValidationError
from kubekorea.common.messages import VALIDATION_MESSAGES
from kubekorea.common.utils import strip_html
from kubekorea.schemas.post import (
    CreateCommentForm,
    CreatePostForm,
    PostsQuery,
    SearchQuery,
    UpdateCommentForm,
    UpdatePostForm,
)
from kubekorea.schemas.user import UpdateUserForm, UsersQuery

M = TypeVar("M", bound=BaseModel)


def _msg(key: str, **kwargs) -> str:
    return VALIDATION_MESSAGES[key].format(**kwargs)


def _check_title(title: Optional[str], errors: List[str]):
    if not title or not title.strip():
        errors.append(_msg("TITLE_REQUIRED"))
    elif len(title) > constants.POST_TITLE_MAX:
        errors.append(_msg("TITLE_TOO_LONG", max=constants.POST_TITLE_MAX))


def _check_content(content: Optional[str], errors: List[str]):
    # 리치 텍스트이므로 태그를 걷어낸 본문이 비어있으면 안 된다
    if not content or not strip_html(content):
        errors.append(_msg("CONTENT_REQUIRED"))
    elif len(content) > constants.POST_CONTENT_MAX:
        errors.append(_msg("CONTENT_TOO_LONG", max=constants.POST_CONTENT_MAX))


def _check_category(category: Optional[str], errors: List[str]):
    if category not in constants.POST_CATEGORIES:
        errors.append(_msg("INVALID_CATEGORY"))


def _check_status(status: Optional[str], errors: List[str]):
    if status not in constants.POST_STATUSES:
        errors.append(_msg("INVALID_STATUS"))


def _check_tags(tags: Optional[List[str]], errors: List[str]):
    if tags is None:
        return
    if len(tags) > constants.TAGS_MAX:
        errors.append(_msg("TOO_MANY_TAGS", max=constants.TAGS_MAX))
    for tag in tags:
        if not tag:
            errors.append(_msg("TAG_EMPTY"))
        elif len(tag) > constants.TAG_LENGTH_MAX:
            errors.append(_msg("TAG_TOO_LONG", max=constants.TAG_LENGTH_MAX))


def _check_comment_content(content: Optional[str], errors: List[str]):
    if not content or not content.strip():
        errors.append(_msg("COMMENT_REQUIRED"))
    elif len(content) > constants.COMMENT_MAX:
        errors.append(_msg("COMMENT_TOO_LONG", max=constants.COMMENT_MAX))


def _check_page(page: Optional[int], limit: Optional[int], errors: List[str]):
    if page is not None and page < 1:
        errors.append(_msg("PAGE_MIN"))
    if limit is not None and not (1 <= limit <= constants.PAGE_LIMIT_MAX):
        errors.append(_msg("LIMIT_RANGE", max=constants.PAGE_LIMIT_MAX))


def check_create_post(form: CreatePostForm) -> List[str]:
    errors: List[str] = []
    _check_title(form.title, errors)
    _check_content(form.content, errors)
    _check_category(form.category, errors)
    _check_tags(form.tags, errors)
    _check_status(form.status, errors)
    return errors


def check_update_post(form: UpdatePostForm) -> List[str]:
    errors: List[str] = []
    if form.title is not None:
        _check_title(form.title, errors)
    if form.content is not None:
        _check_content(form.content, errors)
    if form.category is not None:
        _check_category(form.category, errors)
    if form.status is not None:
        _check_status(form.status, errors)
    _check_tags(form.tags, errors)
    return errors


def check_create_comment(form: CreateCommentForm) -> List[str]:
    errors: List[str] = []
    _check_comment_content(form.content, errors)
    if not form.post_id:
        errors.append(_msg("ID_REQUIRED"))
    if form.parent_id is not None and not form.parent_id:
        errors.append(_msg("ID_REQUIRED"))
    return errors


def check_update_comment(form: UpdateCommentForm) -> List[str]:
    errors: List[str] = []
    _check_comment_content(form.content, errors)
    return errors


def check_update_user(form: UpdateUserForm) -> List[str]:
    errors: List[str] = []
    if form.name is not None:
        if not form.name.strip():
            errors.append(_msg("NAME_REQUIRED"))
        elif len(form.name) > constants.NAME_MAX:
            errors.append(_msg("NAME_TOO_LONG", max=constants.NAME_MAX))
    if form.bio is not None and len(form.bio) > constants.BIO_MAX:
        errors.append(_msg("BIO_TOO_LONG", max=constants.BIO_MAX))
    return errors


def check_posts_query(query: PostsQuery) -> List[str]:
    errors: List[str] = []
    _check_page(query.page, query.limit, errors)
    if query.category is not None:
        _check_category(query.category, errors)
    if query.sort_by is not None and query.sort_by not in constants.SORT_FIELDS:
        errors.append(_msg("INVALID_SORT"))
    if query.sort_order is not None and query.sort_order not in ("asc", "desc"):
        errors.append(_msg("INVALID_SORT"))
    return errors


def check_users_query(query: UsersQuery) -> List[str]:
    errors: List[str] = []
    _check_page(query.page, query.limit, errors)
    return errors


def check_search_query(query: SearchQuery) -> List[str]:
    errors: List[str] = []
    if not query.query or not query.query.strip():
        errors.append(_msg("QUERY_REQUIRED"))
    elif len(query.query) > constants.SEARCH_QUERY_MAX:
        errors.append(_msg("QUERY_TOO_LONG", max=constants.SEARCH_QUERY_MAX))
    if query.category is not None:
        _check_category(query.category, errors)
    if query.sort_by not in constants.SORT_FIELDS or query.sort_order not in ("asc", "desc"):
        errors.append(_msg("INVALID_SORT"))
    return errors


_RULES: Dict[Type[BaseModel], Callable[[Any], List[str]]] = {
    CreatePostForm: check_create_post,
    UpdatePostForm: check_update_post,
    CreateCommentForm: check_create_comment,
    UpdateCommentForm: check_update_comment,
    UpdateUserForm: check_update_user,
    PostsQuery: check_posts_query,
    UsersQuery: check_users_query,
    SearchQuery: check_search_query,
}


def _format_pydantic_error(error: dict) -> str:
    location = ".".join(str(part) for part in error.get("loc", ()))
    return f"{location}: {error.get('msg')}" if location else str(error.get("msg"))


def validate_data(model: Type[M], data: Any) -> M:
    """
    데이터를 모델로 변환하고 규칙을 검사한다.
    실패하면 메시지를 모아 ValidationError를 발생시킨다.
    """
    if isinstance(data, model):
        instance = data
    else:
        try:
            instance = model.model_validate(data)
        except PydanticValidationError as e:
            raise ValidationError([_format_pydantic_error(err) for err in e.errors()]) from e

    rule = _RULES.get(model)
    errors = rule(instance) if rule else []
    if errors:
        raise ValidationError(errors)
    return instance


def safe_validate_data(model: Type[M], data: Any) -> Tuple[bool, Optional[M], Optional[str]]:
    try:
        return True, validate_data(model, data), None
    except ValidationError as e:
        return False, None, str(e)
